"""Per-frame view data handed to the terminal renderer."""

from __future__ import annotations

import datetime as dt
import textwrap
from dataclasses import dataclass
from typing import Union

from grid_layout import DayGrid, GridCell
from navigation import Navigator, SingleMode
from schedule_model import Day, Event, Schedule

NO_EVENTS_MESSAGE = "No events in this schedule."


@dataclass(frozen=True)
class LabeledCell:
    cell: GridCell
    lines: tuple[str, ...]
    selected: bool


@dataclass(frozen=True)
class GridFrame:
    title: str
    day: Day
    day_count: int
    grid: DayGrid
    cells: tuple[LabeledCell, ...]
    selected: GridCell | None


@dataclass(frozen=True)
class SingleFrame:
    title: str
    event: Event
    position: int
    event_count: int
    scroll_offset: int


@dataclass(frozen=True)
class EmptyFrame:
    title: str
    message: str = NO_EVENTS_MESSAGE


Frame = Union[GridFrame, SingleFrame, EmptyFrame]


def truncate_text(text: str, max_length: int | None) -> str:
    if not text:
        return ""
    if not max_length or max_length <= 0:
        return text
    if len(text) <= max_length:
        return text
    suffix = "..."
    if max_length <= len(suffix):
        return text[:max_length]
    trimmed = text[: max_length - len(suffix)].rstrip()
    if not trimmed:
        return text[:max_length]
    return trimmed + suffix


def join_speakers(speakers: tuple[str, ...] | list[str]) -> str:
    """``A``, ``A and B``, ``A, B and C``."""
    names = [name for name in speakers if name]
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    return ", ".join(names[:-1]) + " and " + names[-1]


def format_duration(duration: dt.timedelta) -> str:
    total = int(duration.total_seconds() // 60)
    hours, minutes = divmod(total, 60)
    if hours and minutes:
        return f"{hours}h {minutes}m"
    if hours:
        return f"{hours}h"
    return f"{minutes}m"


def format_when(point: dt.datetime, reference: dt.date | None = None) -> str:
    # time only when it falls on the reference day
    if reference is not None and point.date() == reference:
        return point.strftime("%H:%M")
    return point.strftime("%Y-%m-%d  %H:%M")


def schedule_title(schedule: Schedule) -> str:
    if schedule.title and schedule.acronym:
        return f"{schedule.title} ({schedule.acronym})"
    return schedule.title or schedule.acronym or "Schedule"


def cell_lines(event: Event, display: dict, title_max_length: int | None) -> tuple[str, ...]:
    lines = [truncate_text(event.title or "(Untitled)", title_max_length)]
    if display.get("show_time"):
        lines.append(f"{event.start:%H:%M} - {event.end:%H:%M}")
    if display.get("show_speakers") and event.speakers:
        lines.append(truncate_text(join_speakers(event.speakers), title_max_length))
    if display.get("show_track") and event.track:
        lines.append(event.track)
    if display.get("show_room"):
        lines.append(event.room)
    return tuple(lines)


def wrap_paragraphs(text: str, width: int) -> list[str]:
    lines: list[str] = []
    for paragraph in text.splitlines():
        if not paragraph.strip():
            if lines and lines[-1]:
                lines.append("")
            continue
        lines.extend(textwrap.wrap(paragraph, width=width) or [""])
    while lines and not lines[-1]:
        lines.pop()
    return lines


def detail_lines(event: Event, width: int) -> list[str]:
    """Scrollable body of the single-event view, wrapped to ``width``."""
    width = max(1, width)
    lines: list[str] = []
    sections = [
        ("abstract", event.abstract),
        ("description", event.description),
    ]
    for heading, text in sections:
        if not text.strip():
            continue
        if lines:
            lines.append("")
        lines.append(heading)
        lines.extend(wrap_paragraphs(text, width))
    links = list(event.links)
    if event.url:
        links.insert(0, ("event page", event.url))
    if links:
        if lines:
            lines.append("")
        lines.append("links")
        for title, href in links:
            if title != href:
                lines.append(f"{title}:")
            # urls stay whole so they can be copied out of the terminal
            lines.extend(
                textwrap.wrap(href, width=width, break_long_words=False, break_on_hyphens=False)
                or [href]
            )
    return lines


def build_frame(
    navigator: Navigator, display: dict, title_max_length: int | None
) -> Frame:
    schedule = navigator.schedule
    title = schedule_title(schedule)
    state = navigator.state
    if isinstance(state, SingleMode):
        return SingleFrame(
            title=title,
            event=schedule.resolve_event(state.event_id),
            position=schedule.timeline.index(state.event_id),
            event_count=schedule.event_count,
            scroll_offset=state.scroll_offset,
        )

    grid = navigator.current_grid()
    if schedule.is_empty or grid is None:
        return EmptyFrame(title=title)

    selected = navigator.selected_cell()
    cells = tuple(
        LabeledCell(
            cell=cell,
            lines=cell_lines(schedule.resolve_event(cell.event_id), display, title_max_length),
            selected=cell == selected,
        )
        for cell in grid.cells
    )
    return GridFrame(
        title=title,
        day=schedule.days[grid.day_index],
        day_count=len(schedule.days),
        grid=grid,
        cells=cells,
        selected=selected,
    )
