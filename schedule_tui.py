#!/usr/bin/env python3
"""Browse a conference schedule.xml in the terminal."""

from __future__ import annotations

import argparse
import curses
import os
from pathlib import Path

import render_grid_pdf
import view_config
from grid_layout import layout_schedule
from navigation import Command, DetailViewport, Navigator, SingleMode
from schedule_model import ScheduleError
from schedule_xml import load_schedule
from view_frame import (
    EmptyFrame,
    Frame,
    GridFrame,
    SingleFrame,
    build_frame,
    detail_lines,
    format_duration,
    format_when,
    join_speakers,
    truncate_text,
)

GUTTER_WIDTH = 7
MIN_COLUMN_WIDTH = 14
BODY_TOP = 2
METADATA_LABELS = ("where", "when", "+", "=", "", "track", "type", "lang")

GRID_HINTS = "arrows/hjkl move  enter open  [ ] day  q quit"
SINGLE_HINTS = "esc back  n/p next/prev  j/k scroll  q quit"

KEY_NAMES = {
    curses.KEY_LEFT: "left",
    curses.KEY_RIGHT: "right",
    curses.KEY_UP: "up",
    curses.KEY_DOWN: "down",
    curses.KEY_ENTER: "enter",
    10: "enter",
    13: "enter",
    27: "esc",
    9: "tab",
    curses.KEY_BTAB: "btab",
    curses.KEY_BACKSPACE: "backspace",
    127: "backspace",
    8: "backspace",
    curses.KEY_NPAGE: "pgdn",
    curses.KEY_PPAGE: "pgup",
    curses.KEY_HOME: "home",
    curses.KEY_END: "end",
    32: "space",
}


def key_name(ch: int) -> str | None:
    if ch in KEY_NAMES:
        return KEY_NAMES[ch]
    if 32 < ch < 127:
        return chr(ch)
    return None


def lookup_command(
    keymap: dict[tuple[str, str], Command], navigator: Navigator, ch: int
) -> Command | None:
    name = key_name(ch)
    if name is None:
        return None
    mode = "single" if isinstance(navigator.state, SingleMode) else "grid"
    return keymap.get((mode, name))


def follow(first: int, selected_start: int, selected_end: int, visible: int, total: int) -> int:
    """Scroll offset that keeps ``[selected_start, selected_end)`` in view."""
    if selected_start < first:
        first = selected_start
    elif selected_end > first + visible:
        first = min(selected_start, selected_end - visible)
    return min(max(first, 0), max(0, total - visible))


def safe_addnstr(stdscr: curses.window, y: int, x: int, text: str, width: int, attr: int = 0) -> None:
    if width <= 0:
        return
    try:
        stdscr.addnstr(y, x, text, width, attr)
    except curses.error:
        return


def safe_addch(stdscr: curses.window, y: int, x: int, ch: int | str, attr: int = 0) -> None:
    try:
        stdscr.addch(y, x, ch, attr)
    except curses.error:
        return


class TerminalView:
    """Draws frames; keeps only its own scroll caches between frames."""

    def __init__(self, stdscr: curses.window):
        self.stdscr = stdscr
        self.top_row = 0
        self.left_column = 0
        self.day_index: int | None = None

    def draw(self, frame: Frame) -> DetailViewport | None:
        self.stdscr.erase()
        height, width = self.stdscr.getmaxyx()
        viewport = None
        if isinstance(frame, GridFrame):
            self.draw_grid(frame, height, width)
        elif isinstance(frame, SingleFrame):
            viewport = self.draw_single(frame, height, width)
        else:
            self.draw_empty(frame, height, width)
        self.stdscr.refresh()
        return viewport

    def draw_status(self, text: str, height: int, width: int) -> None:
        safe_addnstr(self.stdscr, height - 1, 0, text.ljust(width), width - 1, curses.A_REVERSE)

    def draw_empty(self, frame: EmptyFrame, height: int, width: int) -> None:
        safe_addnstr(self.stdscr, 0, 0, frame.title, width, curses.A_BOLD)
        message = frame.message
        safe_addnstr(
            self.stdscr, height // 2, max(0, (width - len(message)) // 2), message, width
        )
        self.draw_status("q quit", height, width)

    def draw_grid(self, frame: GridFrame, height: int, width: int) -> None:
        grid = frame.grid
        if self.day_index != grid.day_index:
            self.day_index = grid.day_index
            self.top_row = 0
            self.left_column = 0

        column_count = max(1, grid.column_count)
        column_width = max(MIN_COLUMN_WIDTH, (width - GUTTER_WIDTH) // column_count)
        visible_columns = max(1, (width - GUTTER_WIDTH) // column_width)
        body_height = max(1, height - BODY_TOP - 1)

        selected = frame.selected
        if selected is not None:
            self.left_column = follow(
                self.left_column, selected.column, selected.column + 1,
                visible_columns, grid.column_count,
            )
            self.top_row = follow(
                self.top_row, selected.row_start, selected.row_end,
                body_height, grid.row_count,
            )

        header = (
            f"{frame.title}  |  day {frame.day.index + 1}/{frame.day_count}"
            f"  {frame.day.date:%Y-%m-%d %A}"
        )
        safe_addnstr(self.stdscr, 0, 0, header, width, curses.A_BOLD)

        last_column = self.left_column + visible_columns
        for room in grid.rooms:
            first = max(room.first_column, self.left_column)
            end = min(room.first_column + room.width, last_column)
            if first >= end:
                continue
            x = GUTTER_WIDTH + (first - self.left_column) * column_width
            label = room.name if room.width == 1 else f"{room.name} ({room.width})"
            safe_addnstr(
                self.stdscr, 1, x, label, (end - first) * column_width - 1, curses.A_UNDERLINE
            )

        for line in range(body_height):
            row = self.top_row + line
            if row >= grid.row_count:
                break
            point = grid.row_time(row)
            if point is not None and (line == 0 or point.minute % 30 == 0):
                safe_addnstr(self.stdscr, BODY_TOP + line, 0, f"{point:%H:%M}", GUTTER_WIDTH - 1)

        for labeled in frame.cells:
            cell = labeled.cell
            if not self.left_column <= cell.column < last_column:
                continue
            x = GUTTER_WIDTH + (cell.column - self.left_column) * column_width
            for offset in range(cell.row_span):
                row = cell.row_start + offset
                line = row - self.top_row
                if not 0 <= line < body_height:
                    continue
                text = labeled.lines[offset] if offset < len(labeled.lines) else ""
                if labeled.selected:
                    attr = curses.A_REVERSE
                elif offset == 0:
                    attr = curses.A_BOLD
                else:
                    attr = curses.A_NORMAL
                safe_addch(self.stdscr, BODY_TOP + line, x, curses.ACS_VLINE)
                safe_addnstr(
                    self.stdscr, BODY_TOP + line, x + 1,
                    text.ljust(column_width - 2), column_width - 2, attr,
                )

        status = GRID_HINTS
        if grid.overlap_count:
            status += f"  |  {grid.overlap_count} overlapping events split"
        self.draw_status(status, height, width)

    def draw_single(self, frame: SingleFrame, height: int, width: int) -> DetailViewport:
        event = frame.event
        meta_width = max(20, width // 4)
        label_width = 7
        values = (
            event.room,
            format_when(event.start),
            format_duration(event.duration),
            format_when(event.end, event.start.date()),
            "",
            event.track,
            event.type,
            event.language,
        )
        for idx, (label, value) in enumerate(zip(METADATA_LABELS, values)):
            y = 4 + idx
            safe_addnstr(self.stdscr, y, 0, label.rjust(label_width - 1), label_width - 1, curses.A_DIM)
            safe_addnstr(self.stdscr, y, label_width, value, meta_width - label_width - 1)

        content_x = meta_width + 1
        content_width = max(1, width - content_x - 1)

        def centered(y: int, text: str, attr: int) -> None:
            text = truncate_text(text, content_width)
            x = content_x + max(0, (content_width - len(text)) // 2)
            safe_addnstr(self.stdscr, y, x, text, content_width, attr)

        centered(1, event.title or "(Untitled)", curses.A_BOLD)
        centered(2, event.subtitle, curses.A_DIM)
        speakers = join_speakers(event.speakers)
        if speakers:
            centered(4, f"by {speakers}", curses.A_NORMAL)

        lines = detail_lines(event, content_width)
        text_top = 6
        text_height = max(1, height - text_top - 1)
        viewport = DetailViewport(content_lines=len(lines), height=text_height)
        offset = min(frame.scroll_offset, viewport.max_offset)
        for idx, line in enumerate(lines[offset : offset + text_height]):
            attr = curses.A_DIM if line in ("abstract", "description", "links") else curses.A_NORMAL
            safe_addnstr(self.stdscr, text_top + idx, content_x, line, content_width, attr)

        status = f"{SINGLE_HINTS}  |  event {frame.position + 1}/{frame.event_count}"
        if viewport.max_offset:
            status += f"  |  line {offset + 1}/{viewport.content_lines}"
        self.draw_status(status, height, width)
        return viewport


def run(
    stdscr: curses.window,
    navigator: Navigator,
    keymap: dict[tuple[str, str], Command],
    display: dict,
    title_max_length: int,
) -> None:
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    stdscr.keypad(True)
    view = TerminalView(stdscr)
    while True:
        frame = build_frame(navigator, display, title_max_length)
        viewport = view.draw(frame)
        ch = stdscr.getch()
        if ch == curses.KEY_RESIZE:
            continue
        command = lookup_command(keymap, navigator, ch)
        if command is None:
            continue
        if not navigator.dispatch(command, viewport):
            return


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Browse a conference schedule.xml in the terminal."
    )
    parser.add_argument("schedule", type=Path, help="Path to the schedule XML feed")
    parser.add_argument(
        "--config",
        type=Path,
        default=view_config.DEFAULT_CONFIG_PATH,
        help="Viewer overrides JSON",
    )
    parser.add_argument("--slot-minutes", type=int, help="Minutes per grid row")
    parser.add_argument(
        "--export-pdf",
        type=Path,
        metavar="DIR",
        help="Write one grid PDF per day instead of starting the viewer",
    )
    args = parser.parse_args(argv)

    config = view_config.load_config(args.config)
    if args.slot_minutes is not None:
        if args.slot_minutes < 1:
            parser.error("--slot-minutes must be positive")
        config["slot_minutes"] = args.slot_minutes

    try:
        schedule = load_schedule(args.schedule)
    except ScheduleError as exc:
        raise SystemExit(f"Could not load schedule: {exc}")

    grids = layout_schedule(
        schedule, config["slot_minutes"], view_config.get_day_window(config)
    )

    if args.export_pdf:
        outputs = render_grid_pdf.export_pdfs(schedule, grids, args.export_pdf, config)
        if outputs:
            print(f"Rendered {len(outputs)} PDFs in {args.export_pdf}")
        else:
            print("No events found to render.")
        return

    navigator = Navigator(schedule, grids)
    display, title_max_length = view_config.get_display_settings(config)
    os.environ.setdefault("ESCDELAY", "25")
    curses.wrapper(
        run, navigator, view_config.resolve_keymap(config), display, title_max_length
    )


if __name__ == "__main__":
    main()
