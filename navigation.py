"""Selection cursor and view mode, driven by abstract commands.

The navigator only ever reads the schedule and its grids.  ``step`` is pure:
the same state and command always give the same next state.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Sequence, Union

from grid_layout import DayGrid, GridCell
from schedule_model import Event, Schedule


class Command(enum.Enum):
    MOVE_LEFT = "move_left"
    MOVE_RIGHT = "move_right"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    NEXT_DAY = "next_day"
    PREV_DAY = "prev_day"
    CONFIRM = "confirm"
    BACK = "back"
    MOVE_NEXT = "move_next"
    MOVE_PREV = "move_prev"
    SCROLL_UP = "scroll_up"
    SCROLL_DOWN = "scroll_down"
    QUIT = "quit"


@dataclass(frozen=True)
class GridPosition:
    day_index: int
    column: int
    row: int


@dataclass(frozen=True)
class GridMode:
    # None only when the schedule has no events at all
    position: GridPosition | None

    @property
    def day_index(self) -> int:
        return self.position.day_index if self.position else 0


@dataclass(frozen=True)
class SingleMode:
    event_id: str
    scroll_offset: int = 0


State = Union[GridMode, SingleMode]


@dataclass(frozen=True)
class DetailViewport:
    """What the renderer currently shows of the focused event's text."""

    content_lines: int
    height: int

    @property
    def max_offset(self) -> int:
        return max(0, self.content_lines - self.height)


def nearest_cell(cells: Sequence[GridCell], row: int) -> GridCell | None:
    """Cell covering ``row``, else the one starting closest to it."""
    best: GridCell | None = None
    best_key: tuple[int, int] | None = None
    for cell in cells:
        distance = 0 if cell.covers(row) else abs(cell.row_start - row)
        key = (distance, cell.row_start)
        if best_key is None or key < best_key:
            best = cell
            best_key = key
    return best


class Navigator:
    def __init__(self, schedule: Schedule, grids: Sequence[DayGrid]):
        if len(grids) != len(schedule.days):
            raise ValueError("expected one grid per schedule day")
        self.schedule = schedule
        self.grids = tuple(grids)
        self._timeline_index = {event_id: idx for idx, event_id in enumerate(schedule.timeline)}
        self.state: State = self.initial_state()

    def initial_state(self) -> State:
        for grid in self.grids:
            if grid.cells:
                return GridMode(self.position_for(grid, grid.cells[0]))
        return GridMode(None)

    @staticmethod
    def position_for(grid: DayGrid, cell: GridCell) -> GridPosition:
        return GridPosition(day_index=grid.day_index, column=cell.column, row=cell.row_start)

    def cell_at(self, position: GridPosition) -> GridCell | None:
        if not 0 <= position.day_index < len(self.grids):
            return None
        return self.grids[position.day_index].cell_at(position.column, position.row)

    def position_of_event(self, event_id: str) -> GridPosition:
        grid = self.grids[self.schedule.day_index_of(event_id)]
        cell = grid.cell_for_event(event_id)
        if cell is None:
            raise KeyError(f"event {event_id!r} has no grid cell")
        return self.position_for(grid, cell)

    def current_grid(self) -> DayGrid | None:
        if not self.grids:
            return None
        if isinstance(self.state, SingleMode):
            return self.grids[self.schedule.day_index_of(self.state.event_id)]
        return self.grids[self.state.day_index]

    def selected_cell(self) -> GridCell | None:
        if isinstance(self.state, SingleMode):
            grid = self.current_grid()
            return grid.cell_for_event(self.state.event_id) if grid else None
        if self.state.position is None:
            return None
        return self.cell_at(self.state.position)

    def selected_event(self) -> Event | None:
        if isinstance(self.state, SingleMode):
            return self.schedule.resolve_event(self.state.event_id)
        cell = self.selected_cell()
        if cell is None:
            return None
        return self.schedule.resolve_event(cell.event_id)

    def dispatch(self, command: Command, viewport: DetailViewport | None = None) -> bool:
        """Apply ``command``; return False when the user asked to quit."""
        if command is Command.QUIT:
            return False
        self.state = self.step(self.state, command, viewport)
        return True

    def step(
        self, state: State, command: Command, viewport: DetailViewport | None = None
    ) -> State:
        if isinstance(state, SingleMode):
            return self._step_single(state, command, viewport)
        return self._step_grid(state, command)

    def _step_grid(self, state: GridMode, command: Command) -> State:
        position = state.position
        if position is None:
            return state
        cell = self.cell_at(position)
        if cell is None:
            return state
        grid = self.grids[position.day_index]

        if command is Command.CONFIRM:
            return SingleMode(cell.event_id, 0)
        if command in (Command.MOVE_UP, Command.MOVE_DOWN):
            target = self._vertical_neighbour(grid, cell, command is Command.MOVE_DOWN)
        elif command in (Command.MOVE_LEFT, Command.MOVE_RIGHT):
            target = self._horizontal_neighbour(grid, cell, command is Command.MOVE_RIGHT)
        elif command in (Command.NEXT_DAY, Command.PREV_DAY):
            delta = 1 if command is Command.NEXT_DAY else -1
            return self._switch_day(state, grid, cell, position.day_index + delta)
        else:
            return state

        if target is None:
            return state
        return GridMode(self.position_for(grid, target))

    @staticmethod
    def _vertical_neighbour(grid: DayGrid, cell: GridCell, down: bool) -> GridCell | None:
        column = grid.cells_in_column(cell.column)
        idx = column.index(cell)
        idx += 1 if down else -1
        if 0 <= idx < len(column):
            return column[idx]
        return None

    @staticmethod
    def _horizontal_neighbour(grid: DayGrid, cell: GridCell, right: bool) -> GridCell | None:
        step = 1 if right else -1
        column = cell.column + step
        while 0 <= column < grid.column_count:
            target = nearest_cell(grid.cells_in_column(column), cell.row_start)
            if target is not None:
                return target
            column += step
        return None

    def _switch_day(
        self, state: GridMode, grid: DayGrid, cell: GridCell, day_index: int
    ) -> State:
        if not 0 <= day_index < len(self.grids):
            return state
        target_grid = self.grids[day_index]
        if not target_grid.cells:
            return state
        room = grid.room_for_column(cell.column)
        target_room = target_grid.room_named(room.name) if room else None
        target: GridCell | None = None
        if target_room is not None:
            lane = min(cell.lane, target_room.width - 1)
            column = target_room.first_column + lane
            target = nearest_cell(target_grid.cells_in_column(column), cell.row_start)
        if target is None:
            target = target_grid.cells[0]
        return GridMode(self.position_for(target_grid, target))

    def _step_single(
        self, state: SingleMode, command: Command, viewport: DetailViewport | None
    ) -> State:
        if viewport is not None and state.scroll_offset > viewport.max_offset:
            # the detail pane shrank since the last scroll
            state = SingleMode(state.event_id, viewport.max_offset)
        if command is Command.BACK:
            return GridMode(self.position_of_event(state.event_id))
        if command in (Command.MOVE_NEXT, Command.MOVE_PREV):
            idx = self._timeline_index[state.event_id]
            idx += 1 if command is Command.MOVE_NEXT else -1
            if not 0 <= idx < len(self.schedule.timeline):
                return state
            return SingleMode(self.schedule.timeline[idx], 0)
        if command in (Command.SCROLL_UP, Command.SCROLL_DOWN):
            max_offset = viewport.max_offset if viewport else 0
            delta = 1 if command is Command.SCROLL_DOWN else -1
            offset = min(max(state.scroll_offset + delta, 0), max_offset)
            if offset == state.scroll_offset:
                return state
            return SingleMode(state.event_id, offset)
        return state
