import datetime as dt
import random

import pytest

from grid_layout import layout_schedule
from navigation import (
    Command,
    DetailViewport,
    GridMode,
    GridPosition,
    Navigator,
    SingleMode,
)
from schedule_model import build_schedule


def selected_id(navigator):
    return navigator.selected_event().id


def run_commands(navigator, *commands, viewport=None):
    for command in commands:
        navigator.dispatch(command, viewport)
    return navigator.state


def test_initial_state_selects_first_cell_of_first_day(scenario_navigator) -> None:
    assert scenario_navigator.state == GridMode(GridPosition(day_index=0, column=0, row=0))
    assert selected_id(scenario_navigator) == "E1"


def test_confirm_enters_single_mode_on_the_selected_event(scenario_navigator) -> None:
    state = run_commands(scenario_navigator, Command.CONFIRM)
    assert state == SingleMode("E1", 0)
    assert selected_id(scenario_navigator) == "E1"


def test_move_next_follows_the_whole_schedule_timeline(scenario_navigator) -> None:
    run_commands(scenario_navigator, Command.CONFIRM)
    visited = []
    for _ in range(6):
        scenario_navigator.dispatch(Command.MOVE_NEXT)
        visited.append(scenario_navigator.state.event_id)
    assert visited == ["E3", "E2", "E4", "E5", "E5", "E5"]


def test_move_prev_clamps_at_first_event(scenario_navigator) -> None:
    state = run_commands(scenario_navigator, Command.CONFIRM, Command.MOVE_PREV)
    assert state == SingleMode("E1", 0)


def test_back_returns_to_the_cell_of_the_focused_event(scenario_navigator) -> None:
    state = run_commands(scenario_navigator, Command.CONFIRM, Command.MOVE_NEXT, Command.BACK)
    assert state == GridMode(GridPosition(day_index=0, column=1, row=2))
    assert selected_id(scenario_navigator) == "E3"


def test_back_switches_day_when_focus_moved_across_days(scenario_navigator) -> None:
    state = run_commands(
        scenario_navigator,
        Command.CONFIRM,
        Command.MOVE_NEXT,
        Command.MOVE_NEXT,
        Command.MOVE_NEXT,
        Command.BACK,
    )
    assert state.day_index == 1
    assert selected_id(scenario_navigator) == "E4"


def test_confirm_then_back_round_trips_every_cell(scenario_navigator) -> None:
    for grid in scenario_navigator.grids:
        for cell in grid.cells:
            start = GridMode(Navigator.position_for(grid, cell))
            single = scenario_navigator.step(start, Command.CONFIRM)
            assert single == SingleMode(cell.event_id, 0)
            assert scenario_navigator.step(single, Command.BACK) == start


def test_moves_at_the_edges_are_no_ops(scenario_navigator) -> None:
    start = scenario_navigator.state
    for command in (Command.MOVE_LEFT, Command.MOVE_UP, Command.PREV_DAY):
        assert scenario_navigator.step(start, command) == start


def test_move_down_and_up_within_a_column(scenario_navigator) -> None:
    run_commands(scenario_navigator, Command.MOVE_DOWN)
    assert selected_id(scenario_navigator) == "E2"
    run_commands(scenario_navigator, Command.MOVE_DOWN)
    assert selected_id(scenario_navigator) == "E2"
    run_commands(scenario_navigator, Command.MOVE_UP)
    assert selected_id(scenario_navigator) == "E1"


def test_move_right_picks_the_nearest_row(scenario_navigator) -> None:
    run_commands(scenario_navigator, Command.MOVE_RIGHT)
    assert selected_id(scenario_navigator) == "E3"
    run_commands(scenario_navigator, Command.MOVE_RIGHT)
    assert selected_id(scenario_navigator) == "E3"
    run_commands(scenario_navigator, Command.MOVE_LEFT)
    assert selected_id(scenario_navigator) == "E1"


def test_move_left_prefers_the_cell_covering_the_row(scenario_navigator) -> None:
    run_commands(scenario_navigator, Command.MOVE_DOWN, Command.MOVE_RIGHT)
    assert selected_id(scenario_navigator) == "E3"
    run_commands(scenario_navigator, Command.MOVE_LEFT)
    # E3 starts at row 2, which E1 (rows 0-4) covers
    assert selected_id(scenario_navigator) == "E1"


def test_next_day_keeps_the_room_when_it_exists(scenario_navigator) -> None:
    run_commands(scenario_navigator, Command.MOVE_RIGHT, Command.NEXT_DAY)
    assert scenario_navigator.state.day_index == 1
    assert selected_id(scenario_navigator) == "E4"


def test_next_day_resets_to_first_cell_without_counterpart(scenario_navigator) -> None:
    run_commands(scenario_navigator, Command.NEXT_DAY)
    grid = scenario_navigator.grids[1]
    assert scenario_navigator.state == GridMode(Navigator.position_for(grid, grid.cells[0]))
    state = run_commands(scenario_navigator, Command.NEXT_DAY)
    assert state.day_index == 1
    run_commands(scenario_navigator, Command.PREV_DAY)
    assert scenario_navigator.state.day_index == 0


def test_scroll_is_clamped_to_the_viewport(scenario_navigator) -> None:
    viewport = DetailViewport(content_lines=10, height=4)
    run_commands(scenario_navigator, Command.CONFIRM)
    run_commands(scenario_navigator, Command.SCROLL_UP, viewport=viewport)
    assert scenario_navigator.state.scroll_offset == 0
    run_commands(scenario_navigator, *[Command.SCROLL_DOWN] * 9, viewport=viewport)
    assert scenario_navigator.state.scroll_offset == 6
    run_commands(scenario_navigator, Command.SCROLL_UP, viewport=viewport)
    assert scenario_navigator.state.scroll_offset == 5


def test_scroll_without_overflow_stays_at_top(scenario_navigator) -> None:
    run_commands(scenario_navigator, Command.CONFIRM)
    run_commands(scenario_navigator, Command.SCROLL_DOWN, viewport=DetailViewport(3, 10))
    assert scenario_navigator.state.scroll_offset == 0
    run_commands(scenario_navigator, Command.SCROLL_DOWN)
    assert scenario_navigator.state.scroll_offset == 0


def test_moving_focus_resets_scroll(scenario_navigator) -> None:
    viewport = DetailViewport(content_lines=10, height=4)
    run_commands(scenario_navigator, Command.CONFIRM, Command.SCROLL_DOWN, viewport=viewport)
    assert scenario_navigator.state.scroll_offset == 1
    run_commands(scenario_navigator, Command.MOVE_NEXT)
    assert scenario_navigator.state == SingleMode("E3", 0)


def test_commands_outside_their_mode_are_no_ops(scenario_navigator) -> None:
    grid_state = scenario_navigator.state
    for command in (Command.BACK, Command.MOVE_NEXT, Command.SCROLL_DOWN):
        assert scenario_navigator.step(grid_state, command) == grid_state
    single = SingleMode("E1", 0)
    for command in (Command.MOVE_LEFT, Command.MOVE_DOWN, Command.NEXT_DAY, Command.CONFIRM):
        assert scenario_navigator.step(single, command) == single


def test_quit_is_reported_without_changing_state(scenario_navigator) -> None:
    before = scenario_navigator.state
    assert scenario_navigator.dispatch(Command.QUIT) is False
    assert scenario_navigator.state == before
    assert scenario_navigator.dispatch(Command.MOVE_DOWN) is True


def test_empty_schedule_has_no_selection() -> None:
    schedule = build_schedule([])
    navigator = Navigator(schedule, layout_schedule(schedule))
    assert navigator.state == GridMode(None)
    assert navigator.selected_event() is None
    assert navigator.selected_cell() is None
    assert navigator.current_grid() is None
    for command in Command:
        if command is Command.QUIT:
            continue
        navigator.dispatch(command, DetailViewport(10, 2))
        assert navigator.state == GridMode(None)


def test_navigator_requires_one_grid_per_day(scenario_schedule) -> None:
    with pytest.raises(ValueError):
        Navigator(scenario_schedule, layout_schedule(scenario_schedule)[:1])


def test_same_room_overlap_is_reachable_sideways(make_event) -> None:
    schedule = build_schedule([
        make_event("1", "Room A", "10:00", "11:00"),
        make_event("2", "Room A", "10:30", "11:30"),
        make_event("3", "Room B", "10:00", "11:00"),
    ])
    navigator = Navigator(schedule, layout_schedule(schedule))
    seen = [selected_id(navigator)]
    for _ in range(3):
        navigator.dispatch(Command.MOVE_RIGHT)
        seen.append(selected_id(navigator))
    assert seen == ["1", "2", "3", "3"]


def test_random_walks_are_deterministic_and_always_valid(scenario_schedule) -> None:
    rng = random.Random(7)
    commands = [command for command in Command if command is not Command.QUIT]
    sequence = [rng.choice(commands) for _ in range(400)]
    viewport = DetailViewport(content_lines=12, height=5)

    first = Navigator(scenario_schedule, layout_schedule(scenario_schedule))
    second = Navigator(scenario_schedule, layout_schedule(scenario_schedule))
    for command in sequence:
        first.dispatch(command, viewport)
        second.dispatch(command, viewport)
        assert first.state == second.state
        event = first.selected_event()
        assert event is not None
        assert scenario_schedule.resolve_event(event.id) is event
        if isinstance(first.state, GridMode):
            assert first.cell_at(first.state.position) is not None
        else:
            assert 0 <= first.state.scroll_offset <= viewport.max_offset


def test_next_day_keeps_the_sub_column_of_the_room(make_event) -> None:
    second_day = dt.date(2023, 12, 28)
    schedule = build_schedule(
        [
            make_event("1", "Room A", "10:00", "11:00"),
            make_event("2", "Room A", "10:30", "11:30"),
            make_event("3", "Room A", "10:00", "11:00", day=second_day),
            make_event("4", "Room A", "10:30", "11:30", day=second_day),
            make_event("5", "Room B", "09:00", "10:00", day=second_day),
        ],
        room_order=["Room A", "Room B"],
    )
    navigator = Navigator(schedule, layout_schedule(schedule))
    run_commands(navigator, Command.MOVE_RIGHT)
    assert selected_id(navigator) == "2"
    run_commands(navigator, Command.NEXT_DAY)
    assert selected_id(navigator) == "4"
    run_commands(navigator, Command.MOVE_RIGHT, Command.PREV_DAY)
    assert selected_id(navigator) == "1"


def test_stale_scroll_offset_is_clamped_to_a_smaller_viewport(scenario_navigator) -> None:
    tall = DetailViewport(content_lines=10, height=4)
    run_commands(scenario_navigator, Command.CONFIRM, *[Command.SCROLL_DOWN] * 6, viewport=tall)
    assert scenario_navigator.state.scroll_offset == 6
    run_commands(scenario_navigator, Command.MOVE_LEFT, viewport=DetailViewport(10, 8))
    assert scenario_navigator.state == SingleMode("E1", 2)
