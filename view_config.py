"""Helpers for reading the viewer's JSON overrides (keys, grid, display)."""

from __future__ import annotations

import copy
import json
import re
from pathlib import Path

from grid_layout import DEFAULT_SLOT_MINUTES, DayWindow
from navigation import Command

DEFAULT_CONFIG_PATH = Path("fahrplan.json")

KEYMAP_MODES = ("global", "grid", "single")

DEFAULT_KEYMAP = {
    "global": {
        "q": "quit",
    },
    "grid": {
        "left": "move_left",
        "h": "move_left",
        "right": "move_right",
        "l": "move_right",
        "up": "move_up",
        "k": "move_up",
        "down": "move_down",
        "j": "move_down",
        "]": "next_day",
        "tab": "next_day",
        "[": "prev_day",
        "btab": "prev_day",
        "enter": "confirm",
        "space": "confirm",
    },
    "single": {
        "esc": "back",
        "backspace": "back",
        "enter": "back",
        "n": "move_next",
        "l": "move_next",
        "right": "move_next",
        "p": "move_prev",
        "h": "move_prev",
        "left": "move_prev",
        "j": "scroll_down",
        "down": "scroll_down",
        "k": "scroll_up",
        "up": "scroll_up",
    },
}

DEFAULT_DISPLAY_OPTIONS = {
    "show_time": True,
    "show_room": True,
    "show_track": False,
    "show_speakers": True,
}

DEFAULT_TITLE_MAX_LENGTH = 60

DEFAULT_CONFIG = {
    "keymap": DEFAULT_KEYMAP,
    "slot_minutes": DEFAULT_SLOT_MINUTES,
    "day_window": None,
    "display_options": DEFAULT_DISPLAY_OPTIONS,
    "title_max_length": DEFAULT_TITLE_MAX_LENGTH,
}

CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
COMMANDS_BY_NAME = {command.value: command for command in Command}


def parse_clock(value: object) -> int | None:
    if not isinstance(value, str):
        return None
    match = CLOCK_RE.match(value.strip())
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2))
    if minute >= 60 or hour > 24 or (hour == 24 and minute):
        return None
    return hour * 60 + minute


def normalize_config(data: dict | None) -> dict:
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not isinstance(data, dict):
        return config

    keymap = data.get("keymap")
    if isinstance(keymap, dict):
        for mode, bindings in keymap.items():
            if mode not in KEYMAP_MODES or not isinstance(bindings, dict):
                continue
            for key, command in bindings.items():
                if not key or not isinstance(key, str):
                    continue
                if command is None:
                    config["keymap"][mode].pop(key, None)
                elif command in COMMANDS_BY_NAME:
                    config["keymap"][mode][key] = command

    slot_minutes = data.get("slot_minutes")
    if slot_minutes is not None:
        try:
            slot_minutes = int(slot_minutes)
        except (TypeError, ValueError):
            slot_minutes = None
        if slot_minutes and slot_minutes > 0:
            config["slot_minutes"] = slot_minutes

    window = data.get("day_window")
    if isinstance(window, dict):
        start_min = parse_clock(window.get("start"))
        end_min = parse_clock(window.get("end"))
        if start_min is not None and end_min is not None:
            config["day_window"] = {"start": window["start"].strip(), "end": window["end"].strip()}

    display_options = data.get("display_options")
    if isinstance(display_options, dict):
        for key in DEFAULT_DISPLAY_OPTIONS:
            value = display_options.get(key)
            if isinstance(value, bool):
                config["display_options"][key] = value

    title_max_length = data.get("title_max_length")
    if title_max_length is not None:
        try:
            config["title_max_length"] = max(0, int(title_max_length))
        except (TypeError, ValueError):
            pass

    return config


def load_config(path: Path) -> dict:
    if not path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return copy.deepcopy(DEFAULT_CONFIG)
    return normalize_config(data)


def get_display_settings(config: dict | None) -> tuple[dict, int]:
    display = copy.deepcopy(DEFAULT_DISPLAY_OPTIONS)
    title_max_length = DEFAULT_TITLE_MAX_LENGTH
    if config:
        display.update(config.get("display_options", {}))
        title_max_length = config.get("title_max_length", title_max_length)
    return display, title_max_length


def get_day_window(config: dict | None) -> DayWindow | None:
    window = (config or {}).get("day_window")
    if not window:
        return None
    start_min = parse_clock(window.get("start"))
    end_min = parse_clock(window.get("end"))
    if start_min is None or end_min is None:
        return None
    return DayWindow(start_min=start_min, end_min=end_min)


def resolve_keymap(config: dict | None) -> dict[tuple[str, str], Command]:
    """Flatten the keymap into ``{(mode, key): command}``.

    Global bindings apply in every mode unless the mode rebinds the key.
    """
    keymap = (config or DEFAULT_CONFIG).get("keymap", DEFAULT_KEYMAP)
    resolved: dict[tuple[str, str], Command] = {}
    for mode in ("grid", "single"):
        for source in ("global", mode):
            for key, name in keymap.get(source, {}).items():
                command = COMMANDS_BY_NAME.get(name)
                if command is not None:
                    resolved[(mode, key)] = command
    return resolved
