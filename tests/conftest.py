from __future__ import annotations

import datetime as dt

import pytest

from grid_layout import layout_schedule
from navigation import Navigator
from schedule_model import Event, build_schedule

TZ = dt.timezone(dt.timedelta(hours=1))
DAY_ONE = dt.date(2023, 12, 27)
DAY_TWO = dt.date(2023, 12, 28)


def at(day: dt.date, clock: str) -> dt.datetime:
    hour, minute = (int(part) for part in clock.split(":"))
    return dt.datetime.combine(day, dt.time(hour, minute), tzinfo=TZ)


def new_event(
    event_id: str,
    room: str,
    start: str,
    end: str,
    day: dt.date = DAY_ONE,
    **fields,
) -> Event:
    start_at = at(day, start)
    end_at = at(day, end)
    if end_at <= start_at:
        end_at += dt.timedelta(days=1)
    fields.setdefault("title", f"Talk {event_id}")
    return Event(
        id=event_id,
        start=start_at,
        duration=end_at - start_at,
        room=room,
        **fields,
    )


@pytest.fixture
def make_event():
    return new_event


@pytest.fixture
def scenario_schedule():
    """Two days; Saal A stacks E1/E2 while Saal B runs E3 across both."""
    events = [
        new_event("E1", "Saal A", "09:00", "10:00"),
        new_event("E2", "Saal A", "10:00", "11:00"),
        new_event("E3", "Saal B", "09:30", "10:30"),
        new_event("E4", "Saal B", "09:00", "09:45", day=DAY_TWO),
        new_event("E5", "Saal C", "11:00", "12:00", day=DAY_TWO),
    ]
    return build_schedule(events, room_order=["Saal A", "Saal B", "Saal C"], title="Congress")


@pytest.fixture
def scenario_navigator(scenario_schedule):
    return Navigator(scenario_schedule, layout_schedule(scenario_schedule))
