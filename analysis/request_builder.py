from __future__ import annotations

import copy
from typing import List, Optional

from analysis.schema import ANALYSIS_RESULT_SCHEMA
from dto.formula import SheetFormulaSet
from dto.request import AnalysisRequest
from prompts.analysis import (
    DEFAULT_RESPONSE_LANGUAGE,
    get_analysis_prompt,
    get_analysis_system_instruction,
)


class AnalysisRequestBuilder:
    """
    Turns extracted formula sets plus optional user context into an
    ``AnalysisRequest``.  Pure: no I/O, and equal inputs give an equal
    request.
    """

    def __init__(self, language: str = DEFAULT_RESPONSE_LANGUAGE) -> None:
        self._language = language

    def build(
        self,
        sheets: List[SheetFormulaSet],
        user_context: Optional[str] = None,
    ) -> AnalysisRequest:
        return AnalysisRequest(
            prompt=get_analysis_prompt(sheets, user_context, self._language),
            system_instruction=get_analysis_system_instruction(self._language),
            response_schema=copy.deepcopy(ANALYSIS_RESULT_SCHEMA),
        )
