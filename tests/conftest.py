from __future__ import annotations

import io
from typing import Any, Callable, Dict, List, Optional

import openpyxl
import pytest

from dto.analysis import AnalysisResult
from dto.request import AnalysisRequest
from dto.workbook import WorkbookModel

# Environment variables that could leak a real key into the tests.
_KEY_ENV_VARS = (
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "AI_ANALYSIS_PROVIDER",
    "AI_ANALYSIS_MODEL",
)

VALID_REPLY: Dict[str, Any] = {
    "overallScore": 72,
    "complexityLevel": "Medium",
    "summary": "Bảng tính khá tốt.",
    "suggestions": [
        {
            "originalFormula": "=VLOOKUP(A1,B:C,2,0)",
            "issueType": "Modernization",
            "description": "VLOOKUP phụ thuộc vào vị trí cột.",
            "suggestion": "Dùng XLOOKUP.",
            "improvedFormula": "=XLOOKUP(A1,B:B,C:C)",
            "compatibility": "Excel 2021+, Office 365",
        }
    ],
}


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in _KEY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv(
        "FORMULA_ANALYST_CREDENTIALS_FILE", str(tmp_path / "credentials.json")
    )


@pytest.fixture
def make_xlsx() -> Callable[[Dict[str, Dict[str, Any]]], bytes]:
    """
    Build an .xlsx in memory from ``{sheet_name: {address: value}}``.
    String values starting with ``=`` become formulas.
    """

    def _make(sheets: Dict[str, Dict[str, Any]]) -> bytes:
        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        for name, cells in sheets.items():
            ws = wb.create_sheet(title=name)
            for address, value in cells.items():
                ws[address] = value
        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()

    return _make


@pytest.fixture
def sales_workbook() -> WorkbookModel:
    wb = WorkbookModel()
    sales = wb.add_sheet("Sales")
    sales.set_cell("A1", value="key")
    sales.set_cell("B5", value=10, formula="VLOOKUP(A1,B:C,2,0)")
    sales.set_cell("B6", value=10, formula="VLOOKUP(A1,B:C,2,0)")
    return wb


class FakeService:
    """Stands in for a provider-backed AIService."""

    def __init__(self, reply: Optional[str] = None, error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def get_structured_decision(self, prompt, *, system_instruction, response_schema):
        self.calls.append(
            {
                "prompt": prompt,
                "system_instruction": system_instruction,
                "response_schema": response_schema,
            }
        )
        if self.error is not None:
            raise self.error
        return self.reply


class FakeClient:
    """Stands in for AnalysisClient inside a session."""

    def __init__(self, result: AnalysisResult, release=None):
        self.result = result
        self.release = release
        self.requests: List[AnalysisRequest] = []
        self.credentials: List[Optional[str]] = []

    def run(self, request: AnalysisRequest, credential: Optional[str] = None) -> AnalysisResult:
        if self.release is not None:
            self.release.wait(timeout=5)
        self.requests.append(request)
        self.credentials.append(credential)
        return self.result


@pytest.fixture
def valid_result() -> AnalysisResult:
    return AnalysisResult.model_validate(VALID_REPLY)
