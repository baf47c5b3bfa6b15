"""
Cell reading utilities: turn openpyxl / xlrd worksheets into
``SheetModel`` objects.

Formula resolution for openpyxl sheets:
  1. The formula text comes from the workbook loaded with ``data_only=False``
     (plain ``=...`` strings or ``ArrayFormula`` objects).
  2. The displayed value comes from Excel's own cache, read from a second
     load with ``data_only=True``.  Uncomputed formulas keep ``value=None``.
"""

from __future__ import annotations

import datetime as _dt
import logging
from typing import Any, Dict, Optional

import xlrd
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.formula import ArrayFormula
from openpyxl.worksheet.worksheet import Worksheet
from xlrd.xldate import xldate_as_datetime

from dto.workbook import SheetModel

logger = logging.getLogger(__name__)


def coord(col: int, row: int) -> str:
    """Return an A1-style coordinate from 1-based col/row indices."""
    return f"{get_column_letter(col)}{row}"


def _strip_marker(text: str) -> str:
    return text[1:] if text.startswith("=") else text


def read_cached_values(ws: Optional[Worksheet]) -> Dict[str, Any]:
    """Return ``{coordinate: cached value}`` for every non-empty cell."""
    cached: Dict[str, Any] = {}
    if ws is None:
        return cached
    for row in ws.iter_rows():
        for cell in row:
            if cell.value is None:
                continue
            cached[coord(cell.column, cell.row)] = cell.value
    return cached


def read_openpyxl_sheet(
    ws: Worksheet,
    cached_ws: Optional[Worksheet] = None,
) -> SheetModel:
    """
    Read every non-empty cell of *ws* (row-major) into a ``SheetModel``.

    *cached_ws* is the same sheet from a ``data_only=True`` load and
    supplies the last computed value of formula cells.
    """
    sheet = SheetModel(name=ws.title)
    cached = read_cached_values(cached_ws)

    for row in ws.iter_rows():
        for cell in row:
            value = cell.value
            if value is None:
                continue
            address = coord(cell.column, cell.row)

            if isinstance(value, ArrayFormula):
                text = getattr(value, "text", None) or ""
                sheet.set_cell(
                    address,
                    value=cached.get(address),
                    formula=_strip_marker(text),
                    array_range=value.ref,
                )
            elif cell.data_type == "f" and isinstance(value, str):
                sheet.set_cell(
                    address,
                    value=cached.get(address),
                    formula=_strip_marker(value),
                )
            else:
                sheet.set_cell(address, value=value)

    logger.debug("  [CellReader] %s: %d cell(s)", sheet.name, len(sheet.cells))
    return sheet


def read_xlrd_sheet(book, xs) -> SheetModel:
    """
    Read a legacy .xls sheet.  xlrd exposes cached values only, never the
    formula text, so every cell comes back as a plain value.
    """
    sheet = SheetModel(name=xs.name)
    for r in range(xs.nrows):
        for c in range(xs.ncols):
            cell = xs.cell(r, c)
            if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
                continue
            value: Any = cell.value
            if cell.ctype == xlrd.XL_CELL_NUMBER and float(value).is_integer():
                value = int(value)
            elif cell.ctype == xlrd.XL_CELL_DATE:
                value = xldate_as_datetime(value, book.datemode)
                if value.time() == _dt.time(0, 0):
                    value = value.date()
            elif cell.ctype == xlrd.XL_CELL_BOOLEAN:
                value = bool(value)
            elif cell.ctype == xlrd.XL_CELL_ERROR:
                value = xlrd.error_text_from_code.get(value, "#N/A")
            sheet.set_cell(coord(c + 1, r + 1), value=value)
    return sheet
