"""
In-memory workbook model shared by the codec, the formula extractor and
the converter.

    WorkbookModel
      └─ sheets: List[SheetModel]            (ordered, names unique)
           └─ cells: Dict[str, CellModel]    ("A1" → cell, insertion order)

Formulas are stored *without* the leading ``=``; use
``CellModel.display_formula`` to get the form a user would type.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Tuple

from openpyxl.utils.cell import coordinate_from_string, column_index_from_string
from pydantic import BaseModel, field_validator


def split_address(address: str) -> Tuple[int, int]:
    """Parse 'AB12' → (row=12, col=28).  Both 1-based."""
    col_str, row = coordinate_from_string(address)
    return row, column_index_from_string(col_str)


class CellModel(BaseModel):
    value: Any = None
    formula: Optional[str] = None
    array_range: Optional[str] = None  # e.g. "C1:C3" for a legacy CSE array formula

    @property
    def has_formula(self) -> bool:
        return bool(self.formula)

    @property
    def display_formula(self) -> Optional[str]:
        return f"={self.formula}" if self.formula else None


class SheetModel(BaseModel):
    """A single named grid of addressed cells."""

    name: str
    cells: Dict[str, CellModel] = {}

    def iter_cells(self) -> Iterator[Tuple[str, CellModel]]:
        """Yield ``(address, cell)`` pairs in insertion order."""
        yield from self.cells.items()

    def set_cell(
        self,
        address: str,
        value: Any = None,
        formula: Optional[str] = None,
        array_range: Optional[str] = None,
    ) -> CellModel:
        if formula is not None and formula.startswith("="):
            formula = formula[1:]
        cell = CellModel(value=value, formula=formula, array_range=array_range)
        self.cells[address.upper()] = cell
        return cell

    def get_cell(self, address: str) -> Optional[CellModel]:
        return self.cells.get(address.upper())

    @property
    def max_row(self) -> int:
        return max((split_address(a)[0] for a in self.cells), default=0)

    @property
    def max_column(self) -> int:
        return max((split_address(a)[1] for a in self.cells), default=0)

    def rows(self) -> List[List[Optional[CellModel]]]:
        """
        Dense row-major grid from A1 to the bottom-right used cell.

        Missing cells are ``None``.
        """
        grid: List[List[Optional[CellModel]]] = [
            [None] * self.max_column for _ in range(self.max_row)
        ]
        for address, cell in self.cells.items():
            row, col = split_address(address)
            grid[row - 1][col - 1] = cell
        return grid


class WorkbookModel(BaseModel):
    sheets: List[SheetModel] = []

    @field_validator("sheets")
    @classmethod
    def _unique_sheet_names(cls, sheets: List[SheetModel]) -> List[SheetModel]:
        seen = set()
        for sheet in sheets:
            if sheet.name in seen:
                raise ValueError(f"Duplicate sheet name: {sheet.name!r}")
            seen.add(sheet.name)
        return sheets

    @property
    def sheet_names(self) -> List[str]:
        return [s.name for s in self.sheets]

    @property
    def first_sheet(self) -> Optional[SheetModel]:
        return self.sheets[0] if self.sheets else None

    def get_sheet(self, name: str) -> SheetModel:
        for sheet in self.sheets:
            if sheet.name == name:
                return sheet
        raise KeyError(f"Worksheet '{name}' not found in workbook")

    def add_sheet(self, name: str) -> SheetModel:
        if name in self.sheet_names:
            raise ValueError(f"Duplicate sheet name: {name!r}")
        sheet = SheetModel(name=name)
        self.sheets.append(sheet)
        return sheet
