"""Place a day's events into a room-major, time-ordered grid.

Every room gets one column per concurrently running event.  Rows are
``slot_minutes`` long and counted from the start of the day's bounds, so
vertical position is proportional to time.
"""

from __future__ import annotations

import datetime as dt
import heapq
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Sequence

from schedule_model import Day, Event, Schedule

DEFAULT_SLOT_MINUTES = 15


@dataclass(frozen=True)
class DayWindow:
    """Fixed daily bounds in minutes after local midnight.

    ``end_min`` may exceed 24 * 60; an end at or before the start wraps to the
    next day.
    """

    start_min: int
    end_min: int


@dataclass(frozen=True)
class GridCell:
    column: int
    room_column: int
    lane: int
    row_start: int
    row_end: int
    event_id: str

    @property
    def row_span(self) -> int:
        return self.row_end - self.row_start

    def covers(self, row: int) -> bool:
        return self.row_start <= row < self.row_end


@dataclass(frozen=True)
class RoomColumn:
    name: str
    first_column: int
    width: int

    @property
    def columns(self) -> range:
        return range(self.first_column, self.first_column + self.width)


@dataclass(frozen=True)
class DayGrid:
    day_index: int
    date: dt.date
    start: dt.datetime | None
    slot_minutes: int
    row_count: int
    rooms: tuple[RoomColumn, ...]
    cells: tuple[GridCell, ...]
    cell_by_event: Mapping[str, int] = field(repr=False)
    column_cells: tuple[tuple[int, ...], ...] = field(repr=False)
    overlap_count: int = 0

    @property
    def column_count(self) -> int:
        return len(self.column_cells)

    @property
    def is_empty(self) -> bool:
        return not self.cells

    def cells_in_column(self, column: int) -> list[GridCell]:
        if column < 0 or column >= len(self.column_cells):
            return []
        return [self.cells[idx] for idx in self.column_cells[column]]

    def cell_at(self, column: int, row: int) -> GridCell | None:
        for cell in self.cells_in_column(column):
            if cell.row_start == row:
                return cell
        return None

    def cell_for_event(self, event_id: str) -> GridCell | None:
        idx = self.cell_by_event.get(event_id)
        if idx is None:
            return None
        return self.cells[idx]

    def room_for_column(self, column: int) -> RoomColumn | None:
        for room in self.rooms:
            if column in room.columns:
                return room
        return None

    def room_named(self, name: str) -> RoomColumn | None:
        for room in self.rooms:
            if room.name == name:
                return room
        return None

    def row_time(self, row: int) -> dt.datetime | None:
        if self.start is None:
            return None
        return self.start + dt.timedelta(minutes=row * self.slot_minutes)


def minutes_between(start: dt.datetime, end: dt.datetime) -> float:
    return (end - start).total_seconds() / 60


def local_midnight(date: dt.date, tzinfo: dt.tzinfo | None) -> dt.datetime:
    return dt.datetime.combine(date, dt.time(0), tzinfo=tzinfo)


def day_bounds(
    day: Day, slot_minutes: int, window: DayWindow | None = None
) -> tuple[dt.datetime, int]:
    """Return the grid's first row time and its row count."""
    events = day.events
    earliest = min(event.start for event in events)
    midnight = local_midnight(day.date, earliest.tzinfo)

    if window is not None:
        start_min = window.start_min
        end_min = window.end_min
        if end_min <= start_min:
            end_min += 24 * 60
    else:
        latest = max(event.end for event in events)
        start_min = minutes_between(midnight, earliest)
        end_min = minutes_between(midnight, latest)

    start_min = math.floor(start_min / slot_minutes) * slot_minutes
    end_min = math.ceil(end_min / slot_minutes) * slot_minutes
    row_count = max(1, (end_min - start_min) // slot_minutes)
    return midnight + dt.timedelta(minutes=start_min), row_count


def event_rows(
    event: Event, grid_start: dt.datetime, slot_minutes: int, row_count: int
) -> tuple[int, int]:
    """Half-open row span of an event, clamped into ``[0, row_count)``."""
    row_start = math.floor(minutes_between(grid_start, event.start) / slot_minutes)
    row_end = math.ceil(minutes_between(grid_start, event.end) / slot_minutes)
    row_start = min(max(row_start, 0), row_count - 1)
    row_end = min(max(row_end, row_start + 1), row_count)
    return row_start, row_end


def assign_lanes(spans: Sequence[tuple[int, int]]) -> list[int]:
    """Greedy interval colouring of half-open spans.

    Spans are swept by start; each takes the lowest lane whose previous
    occupant has already ended.
    """
    lanes = [0] * len(spans)
    order = sorted(range(len(spans)), key=lambda idx: (spans[idx][0], spans[idx][1], idx))
    active: list[tuple[int, int]] = []
    free: list[int] = []
    next_lane = 0
    for idx in order:
        start, end = spans[idx]
        while active and active[0][0] <= start:
            _, lane = heapq.heappop(active)
            heapq.heappush(free, lane)
        if free:
            lane = heapq.heappop(free)
        else:
            lane = next_lane
            next_lane += 1
        lanes[idx] = lane
        heapq.heappush(active, (end, lane))
    return lanes


def layout_day(
    day: Day,
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
    window: DayWindow | None = None,
) -> DayGrid:
    if slot_minutes < 1:
        raise ValueError(f"slot_minutes must be positive, got {slot_minutes}")

    if not day.events:
        return DayGrid(
            day_index=day.index,
            date=day.date,
            start=None,
            slot_minutes=slot_minutes,
            row_count=0,
            rooms=(),
            cells=(),
            cell_by_event=MappingProxyType({}),
            column_cells=(),
        )

    grid_start, row_count = day_bounds(day, slot_minutes, window)

    cells: list[GridCell] = []
    rooms: list[RoomColumn] = []
    overlap_count = 0
    column = 0
    for room_column, room in enumerate(day.rooms):
        spans = [event_rows(event, grid_start, slot_minutes, row_count) for event in room.events]
        lanes = assign_lanes(spans)
        width = max(lanes, default=0) + 1
        rooms.append(RoomColumn(name=room.name, first_column=column, width=width))
        for event, (row_start, row_end), lane in zip(room.events, spans, lanes):
            if lane:
                overlap_count += 1
            cells.append(
                GridCell(
                    column=column + lane,
                    room_column=room_column,
                    lane=lane,
                    row_start=row_start,
                    row_end=row_end,
                    event_id=event.id,
                )
            )
        column += width

    cells.sort(key=lambda c: (c.column, c.row_start))
    column_cells: list[list[int]] = [[] for _ in range(column)]
    for idx, cell in enumerate(cells):
        column_cells[cell.column].append(idx)

    return DayGrid(
        day_index=day.index,
        date=day.date,
        start=grid_start,
        slot_minutes=slot_minutes,
        row_count=row_count,
        rooms=tuple(rooms),
        cells=tuple(cells),
        cell_by_event=MappingProxyType({cell.event_id: idx for idx, cell in enumerate(cells)}),
        column_cells=tuple(tuple(indices) for indices in column_cells),
        overlap_count=overlap_count,
    )


def layout_schedule(
    schedule: Schedule,
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
    window: DayWindow | None = None,
) -> tuple[DayGrid, ...]:
    return tuple(layout_day(day, slot_minutes, window) for day in schedule.days)
