"""Read a frab/pentabarf ``schedule.xml`` feed into a :class:`Schedule`.

Only the ``guid`` attribute identifies an event; the numeric ``id`` is used
as a fallback for feeds that do not carry guids.
"""

from __future__ import annotations

import datetime as dt
import re
import xml.etree.ElementTree as ET
from pathlib import Path

from schedule_model import Event, Schedule, ScheduleError, build_schedule

DURATION_RE = re.compile(r"^(\d{1,3}):(\d{2})(?::(\d{2}))?$")


def normalize_space(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


def child_text(element: ET.Element, tag: str) -> str:
    child = element.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def parse_timestamp(value: str) -> dt.datetime | None:
    value = value.strip()
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return dt.datetime.fromisoformat(value)
    except ValueError:
        return None


def parse_duration(value: str) -> dt.timedelta | None:
    match = DURATION_RE.match(value.strip())
    if not match:
        return None
    hours = int(match.group(1))
    minutes = int(match.group(2))
    seconds = int(match.group(3) or 0)
    if minutes >= 60 or seconds >= 60:
        return None
    return dt.timedelta(hours=hours, minutes=minutes, seconds=seconds)


def event_start(
    element: ET.Element, day_date: str, day_tz: dt.tzinfo | None
) -> dt.datetime | None:
    start = parse_timestamp(child_text(element, "date"))
    if start is not None:
        return start
    clock = child_text(element, "start")
    if not day_date or not clock:
        return None
    start = parse_timestamp(f"{day_date}T{clock}")
    if start is not None and start.tzinfo is None:
        # borrow the offset the <day> itself was declared with
        start = start.replace(tzinfo=day_tz)
    return start


def parse_event(
    element: ET.Element, room_name: str, day_date: str, day_tz: dt.tzinfo | None = None
) -> Event:
    event_id = (element.get("guid") or element.get("id") or "").strip()
    title = normalize_space(child_text(element, "title"))
    label = event_id or title or "<unnamed>"
    if not event_id:
        raise ScheduleError(f"event {title!r} has neither a guid nor an id")

    start = event_start(element, day_date, day_tz)
    if start is None:
        raise ScheduleError(f"event {label!r} has a missing or invalid start time")

    raw_duration = child_text(element, "duration")
    duration = parse_duration(raw_duration)
    if duration is None:
        raise ScheduleError(f"event {label!r} has an invalid duration {raw_duration!r}")
    if duration <= dt.timedelta(0):
        raise ScheduleError(f"event {label!r} has a zero-length duration")

    room = normalize_space(child_text(element, "room")) or room_name
    if not room:
        raise ScheduleError(f"event {label!r} has no room")

    speakers = tuple(
        normalize_space(person.text or "")
        for person in element.findall("persons/person")
        if person.text and person.text.strip()
    )
    links = tuple(
        (normalize_space(link.text or "") or link.get("href", ""), link.get("href", ""))
        for link in element.findall("links/link")
        if link.get("href")
    )

    return Event(
        id=event_id,
        title=title,
        start=start,
        duration=duration,
        room=room,
        subtitle=normalize_space(child_text(element, "subtitle")),
        abstract=child_text(element, "abstract"),
        description=child_text(element, "description"),
        track=normalize_space(child_text(element, "track")),
        type=normalize_space(child_text(element, "type")),
        language=normalize_space(child_text(element, "language")),
        url=child_text(element, "url"),
        feedback_url=child_text(element, "feedback_url"),
        speakers=speakers,
        links=links,
    )


def parse_schedule_xml(text: str | bytes) -> Schedule:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise ScheduleError(f"malformed schedule XML: {exc}") from exc
    if root.tag != "schedule":
        raise ScheduleError(f"expected a <schedule> document, found <{root.tag}>")

    conference = root.find("conference")
    title = ""
    acronym = ""
    if conference is not None:
        title = normalize_space(child_text(conference, "title"))
        acronym = normalize_space(child_text(conference, "acronym"))

    room_order: list[str] = []
    events: list[Event] = []
    for day in root.findall("day"):
        day_date = (day.get("date") or "").strip()
        day_start = parse_timestamp(day.get("start") or "")
        day_tz = day_start.tzinfo if day_start else None
        for room in day.findall("room"):
            room_name = normalize_space(room.get("name") or "")
            if room_name and room_name not in room_order:
                room_order.append(room_name)
            for element in room.findall("event"):
                events.append(parse_event(element, room_name, day_date, day_tz))

    return build_schedule(events, room_order=room_order, title=title, acronym=acronym)


def load_schedule(path: Path) -> Schedule:
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise ScheduleError(f"could not read schedule {path}: {exc.strerror or exc}") from exc
    return parse_schedule_xml(data)
