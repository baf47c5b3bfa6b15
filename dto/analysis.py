"""
DTOs for the structured critique returned by the reasoning service.

Field names are snake_case in Python and camelCase on the wire
(``overallScore``, ``improvedFormula``, ...).  Results are immutable
once validated.
"""

from __future__ import annotations

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class IssueType(str, Enum):
    EFFICIENCY = "Efficiency"
    READABILITY = "Readability"
    ERROR = "Error"
    MODERNIZATION = "Modernization"


class ComplexityLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class AnalysisSuggestion(_WireModel):
    original_formula: str
    issue_type: IssueType
    description: str
    suggestion: str
    improved_formula: str
    compatibility: str  # e.g. "All Versions", "Excel 2021+", "Google Sheets Only"


class AnalysisResult(_WireModel):
    overall_score: float = Field(ge=0, le=100)
    complexity_level: ComplexityLevel
    summary: str
    suggestions: Tuple[AnalysisSuggestion, ...]

    def to_json(self, indent: int = 2) -> str:
        """Serialise with the wire (camelCase) field names."""
        return self.model_dump_json(by_alias=True, indent=indent)
