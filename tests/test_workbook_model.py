"""Tests for the in-memory workbook model."""

import pytest
from pydantic import ValidationError

from dto.workbook import SheetModel, WorkbookModel, split_address


class TestCellModel:
    def test_set_cell_strips_formula_marker(self) -> None:
        sheet = SheetModel(name="S")
        cell = sheet.set_cell("a1", formula="=SUM(B1:B3)")

        assert cell.formula == "SUM(B1:B3)"
        assert cell.display_formula == "=SUM(B1:B3)"
        assert sheet.get_cell("A1") is cell

    def test_plain_value_has_no_formula(self) -> None:
        cell = SheetModel(name="S").set_cell("B2", value=3)

        assert cell.has_formula is False
        assert cell.display_formula is None

    def test_empty_formula_is_not_a_formula(self) -> None:
        cell = SheetModel(name="S").set_cell("B2", value=3, formula="")

        assert cell.has_formula is False


class TestSheetModel:
    def test_iter_cells_keeps_insertion_order(self) -> None:
        sheet = SheetModel(name="S")
        for address in ("C3", "A1", "B2"):
            sheet.set_cell(address, value=address)

        assert [a for a, _ in sheet.iter_cells()] == ["C3", "A1", "B2"]

    def test_rows_builds_dense_grid_from_a1(self) -> None:
        sheet = SheetModel(name="S")
        sheet.set_cell("B1", value="x")
        sheet.set_cell("A3", value=1)

        grid = sheet.rows()

        assert sheet.max_row == 3
        assert sheet.max_column == 2
        assert grid[0][0] is None
        assert grid[0][1].value == "x"
        assert grid[2][0].value == 1

    def test_empty_sheet_has_no_rows(self) -> None:
        assert SheetModel(name="S").rows() == []

    def test_split_address(self) -> None:
        assert split_address("AB12") == (12, 28)


class TestWorkbookModel:
    def test_duplicate_sheet_names_rejected(self) -> None:
        with pytest.raises(ValidationError):
            WorkbookModel(sheets=[SheetModel(name="A"), SheetModel(name="A")])

    def test_add_sheet_rejects_duplicates(self) -> None:
        wb = WorkbookModel()
        wb.add_sheet("A")
        with pytest.raises(ValueError):
            wb.add_sheet("A")

    def test_first_sheet_and_lookup(self) -> None:
        wb = WorkbookModel()
        first = wb.add_sheet("First")
        wb.add_sheet("Second")

        assert wb.first_sheet is first
        assert wb.sheet_names == ["First", "Second"]
        assert wb.get_sheet("Second").name == "Second"
        with pytest.raises(KeyError):
            wb.get_sheet("Missing")

    def test_empty_workbook_has_no_first_sheet(self) -> None:
        assert WorkbookModel().first_sheet is None
