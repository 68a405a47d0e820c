"""Excel roster writer for the week grid."""
from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import BinaryIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from ...rules.timeutil import to_short_label
from ...services.grid import GridCell, WeekGrid

HEADER_FONT = Font(bold=True)
CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)
LEAVE_FILL = PatternFill(fill_type="solid", start_color="FFE0E0", end_color="FFE0E0")
PENDING_FILL = PatternFill(fill_type="solid", start_color="FFF4CC", end_color="FFF4CC")


def _cell_text(cell: GridCell) -> str:
    lines = []
    for shift in cell.shifts:
        draft = "" if shift.is_published else " [DRAFT]"
        lines.append(f"{shift.start_time}-{shift.end_time} {shift.property_name} ({shift.service_type}){draft}")
    if cell.on_approved_leave:
        lines.append(f"ON LEAVE: {cell.leave_kind}")
    elif cell.on_pending_leave:
        lines.append(f"Leave pending: {cell.leave_kind}")
    return "\n".join(lines)


def write_roster(target: str | Path | BinaryIO, grid: WeekGrid, *, title: str | None = None) -> str | Path | BinaryIO:
    wb = Workbook()
    ws = wb.active
    ws.title = title or f"Week {grid.week_start.isoformat()}"

    ws.cell(row=1, column=1, value="Staff").font = HEADER_FONT
    for idx, day in enumerate(grid.days, start=2):
        cell = ws.cell(row=1, column=idx, value=f"{day.strftime('%a')} {to_short_label(day)}")
        cell.font = HEADER_FONT
        cell.alignment = CENTER

    for row_idx, row in enumerate(grid.rows, start=2):
        label = f"{row.staff.name} *" if row.active_now else row.staff.name
        ws.cell(row=row_idx, column=1, value=label).font = HEADER_FONT
        for col_idx, grid_cell in enumerate(row.cells, start=2):
            cell = ws.cell(row=row_idx, column=col_idx, value=_cell_text(grid_cell))
            cell.alignment = CENTER
            if grid_cell.on_approved_leave:
                cell.fill = LEAVE_FILL
            elif grid_cell.on_pending_leave:
                cell.fill = PENDING_FILL

    if grid.open_shifts:
        row_idx = len(grid.rows) + 2
        ws.cell(row=row_idx, column=1, value="Unassigned").font = HEADER_FONT
        for col_idx, day in enumerate(grid.days, start=2):
            items = grid.open_shifts.get(day, [])
            text = "\n".join(f"{s.start_time}-{s.end_time} {s.property_name} ({s.service_type})" for s in items)
            ws.cell(row=row_idx, column=col_idx, value=text).alignment = CENTER

    ws.column_dimensions["A"].width = 24
    for col_idx in range(2, len(grid.days) + 2):
        ws.column_dimensions[get_column_letter(col_idx)].width = 32

    if isinstance(target, (str, Path)):
        target = Path(target)
    wb.save(target)
    return target


def roster_bytes(grid: WeekGrid) -> BytesIO:
    stream = BytesIO()
    write_roster(stream, grid)
    stream.seek(0)
    return stream
