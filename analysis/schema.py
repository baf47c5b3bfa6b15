"""
Static JSON schema describing ``AnalysisResult`` on the wire.

Built once from the enums in ``dto.analysis`` and handed to every
provider (Gemini ``response_json_schema``, OpenAI strict ``json_schema``,
Claude tool ``input_schema``).  Never mutate it; the request builder
hands out deep copies.
"""

from __future__ import annotations

from typing import Any, Dict

from dto.analysis import ComplexityLevel, IssueType

SCHEMA_NAME = "formula_analysis"

_SUGGESTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "originalFormula": {
            "type": "string",
            "description": "The formula exactly as it appears in the input.",
        },
        "issueType": {
            "type": "string",
            "enum": [t.value for t in IssueType],
        },
        "description": {
            "type": "string",
            "description": "Explanation of the issue.",
        },
        "suggestion": {
            "type": "string",
            "description": "How to fix it.",
        },
        "improvedFormula": {
            "type": "string",
            "description": (
                "The optimised formula. MUST be a valid, directly executable "
                "Excel/Sheets formula using the original cell references."
            ),
        },
        "compatibility": {
            "type": "string",
            "description": (
                "Minimum environment required, e.g. 'All Versions', "
                "'Excel 2019+', 'Office 365', 'Google Sheets Only'."
            ),
        },
    },
    "required": [
        "originalFormula",
        "issueType",
        "description",
        "suggestion",
        "improvedFormula",
        "compatibility",
    ],
    "additionalProperties": False,
}

ANALYSIS_RESULT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "overallScore": {
            "type": "number",
            "description": "Score from 0 to 100 representing the quality of the formulas.",
        },
        "complexityLevel": {
            "type": "string",
            "enum": [c.value for c in ComplexityLevel],
            "description": "The overall complexity of the spreadsheet logic.",
        },
        "summary": {
            "type": "string",
            "description": "A short paragraph about the spreadsheet's health.",
        },
        "suggestions": {
            "type": "array",
            "items": _SUGGESTION_SCHEMA,
        },
    },
    "required": ["overallScore", "complexityLevel", "summary", "suggestions"],
    "additionalProperties": False,
}
