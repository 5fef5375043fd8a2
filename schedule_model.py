"""Immutable in-memory schedule: days, rooms and events."""

from __future__ import annotations

import collections
import datetime as dt
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence


class ScheduleError(ValueError):
    """Raised when a feed cannot be turned into a valid schedule."""


@dataclass(frozen=True)
class Event:
    id: str
    title: str
    start: dt.datetime
    duration: dt.timedelta
    room: str
    subtitle: str = ""
    abstract: str = ""
    description: str = ""
    track: str = ""
    type: str = ""
    language: str = ""
    url: str = ""
    feedback_url: str = ""
    speakers: tuple[str, ...] = ()
    links: tuple[tuple[str, str], ...] = ()

    @property
    def end(self) -> dt.datetime:
        return self.start + self.duration

    @property
    def day(self) -> dt.date:
        # local date in the timestamp's own offset
        return self.start.date()


@dataclass(frozen=True)
class Room:
    name: str
    order: int
    events: tuple[Event, ...]


@dataclass(frozen=True)
class Day:
    index: int
    date: dt.date
    rooms: tuple[Room, ...]

    @property
    def events(self) -> list[Event]:
        return [event for room in self.rooms for event in room.events]


@dataclass(frozen=True)
class Schedule:
    title: str
    acronym: str
    days: tuple[Day, ...]
    events: Mapping[str, Event] = field(repr=False)
    day_by_event: Mapping[str, int] = field(repr=False)
    timeline: tuple[str, ...] = field(repr=False)

    @property
    def is_empty(self) -> bool:
        return not self.events

    @property
    def event_count(self) -> int:
        return len(self.events)

    def resolve_event(self, event_id: str) -> Event:
        try:
            return self.events[event_id]
        except KeyError:
            raise KeyError(f"event {event_id!r} is not part of this schedule") from None

    def day_index_of(self, event_id: str) -> int:
        return self.day_by_event[event_id]


def event_sort_key(event: Event) -> tuple:
    return (event.start, event.end, event.id)


def build_schedule(
    events: Iterable[Event],
    room_order: Sequence[str] = (),
    title: str = "",
    acronym: str = "",
) -> Schedule:
    events = list(events)
    if len({event.start.tzinfo is None for event in events}) > 1:
        raise ScheduleError("schedule mixes timestamps with and without UTC offsets")
    by_id: dict[str, Event] = {}
    for event in events:
        if event.id in by_id:
            raise ScheduleError(f"duplicate event id {event.id!r}")
        if event.duration <= dt.timedelta(0):
            raise ScheduleError(
                f"event {event.id!r} ({event.title or 'untitled'}) has a non-positive duration"
            )
        if not event.room:
            raise ScheduleError(f"event {event.id!r} has no room")
        by_id[event.id] = event

    room_rank: dict[str, int] = {}
    for name in room_order:
        if name and name not in room_rank:
            room_rank[name] = len(room_rank)
    for event in events:
        if event.room not in room_rank:
            room_rank[event.room] = len(room_rank)

    events_by_date: dict[dt.date, dict[str, list[Event]]] = collections.defaultdict(
        lambda: collections.defaultdict(list)
    )
    for event in events:
        events_by_date[event.day][event.room].append(event)

    days: list[Day] = []
    day_by_event: dict[str, int] = {}
    for index, date in enumerate(sorted(events_by_date)):
        rooms_for_day = events_by_date[date]
        rooms = tuple(
            Room(
                name=name,
                order=room_rank[name],
                events=tuple(sorted(rooms_for_day[name], key=event_sort_key)),
            )
            for name in sorted(rooms_for_day, key=lambda r: room_rank[r])
        )
        days.append(Day(index=index, date=date, rooms=rooms))
        for room in rooms:
            for event in room.events:
                day_by_event[event.id] = index

    timeline = tuple(
        event.id
        for event, _ in sorted(
            ((event, room.order) for day in days for room in day.rooms for event in room.events),
            key=lambda pair: (pair[0].start, pair[1], pair[0].end, pair[0].id),
        )
    )

    return Schedule(
        title=title,
        acronym=acronym,
        days=tuple(days),
        events=MappingProxyType(by_id),
        day_by_event=MappingProxyType(day_by_event),
        timeline=timeline,
    )
