"""
FormulaExtractor — collapses the formula cells of a workbook into
frequency-weighted records, one ``SheetFormulaSet`` per sheet.

Deduplication key is the exact display text (``"=" + formula``):
case- and whitespace-sensitive.  Records keep first-seen order and the
list is truncated to ``MAX_FORMULAS_PER_SHEET`` *after* deduplication,
so the cap applies to distinct formulas, not to raw cell count.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from dto.formula import FormulaRecord, SheetFormulaSet
from dto.workbook import SheetModel, WorkbookModel

logger = logging.getLogger(__name__)

# Upper bound on distinct formulas sent per sheet; keeps the request small.
MAX_FORMULAS_PER_SHEET = 50


class FormulaExtractor:
    """
    Usage::

        sheets = FormulaExtractor().extract(workbook)
        if not sheets:
            raise EmptyResultError()
    """

    def extract(self, workbook: WorkbookModel) -> List[SheetFormulaSet]:
        """
        Return the formula sets of every sheet that has at least one
        formula.  An empty list means the workbook holds no formulas.
        """
        result: List[SheetFormulaSet] = []

        for sheet in workbook.sheets:
            records = self._collect(sheet)
            if not records:
                continue

            if len(records) > MAX_FORMULAS_PER_SHEET:
                logger.info(
                    "  [Extractor] %s: keeping first %d of %d distinct formula(s)",
                    sheet.name,
                    MAX_FORMULAS_PER_SHEET,
                    len(records),
                )
                records = records[:MAX_FORMULAS_PER_SHEET]

            result.append(SheetFormulaSet(name=sheet.name, formulas=records))
            logger.info(
                "  [Extractor] %s -> %d distinct formula(s)", sheet.name, len(records)
            )

        return result

    @staticmethod
    def _collect(sheet: SheetModel) -> List[FormulaRecord]:
        by_text: Dict[str, FormulaRecord] = {}
        for address, cell in sheet.iter_cells():
            if not cell.has_formula:
                continue
            text = cell.display_formula
            existing = by_text.get(text)
            if existing is not None:
                existing.frequency += 1
            else:
                by_text[text] = FormulaRecord(
                    formula=text,
                    location=f"{sheet.name}!{address}",
                )
        return list(by_text.values())
