"""Render each day's schedule grid into a printable PDF."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from pathlib import Path

from fpdf import FPDF

import view_config
from grid_layout import DayGrid
from schedule_model import Schedule
from view_frame import cell_lines, schedule_title

ELLIPSIS = "..."
ASCII_PUNCTUATION = str.maketrans({
    "–": "-",
    "—": "-",
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
    "…": ELLIPSIS,
})

HEADER_FILL = (236, 230, 219)
TIME_FILL = (244, 239, 231)
EMPTY_FILL = (250, 248, 243)
EVENT_FILL = (255, 253, 247)


@dataclass
class RenderConfig:
    page_size: str = "A4"
    orientation: str = "landscape"
    margin: float = 8.0
    header_height: float = 16.0
    time_col_width: float = 16.0
    header_font_size: float = 7.0
    body_font_size: float = 6.5
    padding: float = 1.2


def sanitize_text(value: str | None) -> str:
    # the core PDF fonts only cover latin-1, so fold to plain ascii
    if not value:
        return ""
    text = unicodedata.normalize("NFKD", str(value).translate(ASCII_PUNCTUATION))
    return " ".join(text.encode("ascii", "ignore").decode("ascii").split())


def split_word(pdf: FPDF, word: str, max_width: float) -> list[str]:
    pieces: list[str] = []
    piece = ""
    for char in word:
        if piece and pdf.get_string_width(piece + char) > max_width:
            pieces.append(piece)
            piece = char
        else:
            piece += char
    if piece:
        pieces.append(piece)
    return pieces


def fit_lines(
    pdf: FPDF, parts: list[str] | tuple[str, ...], max_width: float, max_lines: int | None = None
) -> list[str]:
    """Word-wrap each part on its own lines using the current font.

    When ``max_lines`` cuts text off, the last kept line ends in an ellipsis.
    """
    lines: list[str] = []
    for part in parts:
        current = ""
        for word in sanitize_text(part).split():
            candidate = f"{current} {word}" if current else word
            if pdf.get_string_width(candidate) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
            *full, current = split_word(pdf, word, max_width)
            lines.extend(full)
        if current:
            lines.append(current)

    if max_lines is None or len(lines) <= max_lines:
        return lines
    kept = lines[:max_lines]
    last = kept[-1]
    while last and pdf.get_string_width(last + ELLIPSIS) > max_width:
        last = last[:-1]
    kept[-1] = last.rstrip() + ELLIPSIS
    return kept


def draw_cell(
    pdf: FPDF,
    x: float,
    y: float,
    width: float,
    height: float,
    parts: list[str] | tuple[str, ...],
    fill_color: tuple[int, int, int],
    align: str = "L",
    bold: bool = False,
    font_size: float = 7.0,
    padding: float = 1.0,
) -> None:
    pdf.set_fill_color(*fill_color)
    pdf.rect(x, y, width, height, style="DF")
    if not parts:
        return

    pdf.set_font("Helvetica", style="B" if bold else "", size=font_size)
    line_height = pdf.font_size * 1.2
    max_lines = max(1, int((height - 2 * padding) / line_height))
    cursor_y = y + padding
    for line in fit_lines(pdf, parts, width - 2 * padding, max_lines):
        pdf.set_xy(x + padding, cursor_y)
        pdf.cell(width - 2 * padding, line_height, line, align=align)
        cursor_y += line_height


def render_day(
    pdf: FPDF,
    schedule: Schedule,
    grid: DayGrid,
    config: RenderConfig,
    display: dict,
    title_max_length: int | None,
) -> None:
    if grid.is_empty:
        return

    pdf.add_page()
    pdf.set_auto_page_break(auto=False, margin=0)

    pdf.set_font("Helvetica", style="B", size=14)
    pdf.set_xy(config.margin, config.margin)
    pdf.cell(0, 6, sanitize_text(schedule_title(schedule)))
    pdf.set_font("Helvetica", size=9)
    pdf.set_xy(config.margin, config.margin + 6)
    pdf.cell(0, 5, f"{grid.date:%A, %Y-%m-%d}")

    table_x = config.margin
    table_y = config.margin + config.header_height
    table_width = pdf.w - 2 * config.margin
    table_height = pdf.h - config.margin - table_y
    column_width = (table_width - config.time_col_width) / max(1, grid.column_count)
    body_x = table_x + config.time_col_width

    # room names may wrap; the tallest one sets the header row height
    pdf.set_font("Helvetica", style="B", size=config.header_font_size)
    header_lines = max(
        len(fit_lines(pdf, [room.name], room.width * column_width - 2 * config.padding)) or 1
        for room in grid.rooms
    )
    header_height = pdf.font_size * 1.2 * header_lines + 2 * config.padding
    body_y = table_y + header_height
    row_height = max(1.0, table_height - header_height) / max(1, grid.row_count)

    pdf.set_draw_color(180, 170, 160)
    pdf.set_line_width(0.1)

    header_style = dict(
        align="C", bold=True, font_size=config.header_font_size, padding=config.padding
    )
    draw_cell(pdf, table_x, table_y, config.time_col_width, header_height, ["Time"],
              HEADER_FILL, **header_style)
    for room in grid.rooms:
        draw_cell(pdf, body_x + room.first_column * column_width, table_y,
                  room.width * column_width, header_height, [room.name],
                  HEADER_FILL, **header_style)

    for row in range(grid.row_count):
        point = grid.row_time(row)
        y = body_y + row * row_height
        label = f"{point:%H:%M}" if point.minute % 30 == 0 else ""
        draw_cell(pdf, table_x, y, config.time_col_width, row_height,
                  [label] if label else [], TIME_FILL, align="C",
                  bold=point.minute == 0, font_size=config.body_font_size,
                  padding=config.padding)
        for column in range(grid.column_count):
            draw_cell(pdf, body_x + column * column_width, y, column_width, row_height,
                      [], EMPTY_FILL)

    for cell in grid.cells:
        event = schedule.resolve_event(cell.event_id)
        draw_cell(
            pdf,
            body_x + cell.column * column_width,
            body_y + cell.row_start * row_height,
            column_width,
            cell.row_span * row_height,
            cell_lines(event, display, title_max_length),
            EVENT_FILL,
            font_size=config.body_font_size,
            padding=config.padding,
        )


def export_pdfs(
    schedule: Schedule,
    grids: tuple[DayGrid, ...] | list[DayGrid],
    outdir: Path,
    config: dict | None = None,
    render_config: RenderConfig | None = None,
) -> list[Path]:
    render_config = render_config or RenderConfig()
    display, title_max_length = view_config.get_display_settings(config)
    outdir.mkdir(parents=True, exist_ok=True)
    outputs: list[Path] = []
    for grid in grids:
        if grid.is_empty:
            continue
        pdf = FPDF(
            orientation=render_config.orientation[0].upper(),
            unit="mm",
            format=render_config.page_size,
        )
        render_day(pdf, schedule, grid, render_config, display, title_max_length)
        output_path = outdir / f"day-{grid.date:%Y-%m-%d}.pdf"
        pdf.output(str(output_path))
        outputs.append(output_path)
    return outputs
