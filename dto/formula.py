from pydantic import BaseModel, Field
from typing import List


class FormulaRecord(BaseModel):
    formula: str  # display form, e.g. "=SUM(A1:A3)"
    location: str  # first occurrence, e.g. "Sheet1!B5"
    frequency: int = Field(default=1, ge=1)


class SheetFormulaSet(BaseModel):
    name: str
    formulas: List[FormulaRecord] = []
