"""
Prompts for the formula analysis request.

The system instruction carries the fixed rewriting policy; the user
prompt carries the formulas and optional user context.  Both are plain
functions of their inputs so that identical inputs always produce
identical text.
"""

from __future__ import annotations

from typing import List, Optional

from dto.formula import SheetFormulaSet

DEFAULT_RESPONSE_LANGUAGE = "Vietnamese"


def get_analysis_system_instruction(language: str = DEFAULT_RESPONSE_LANGUAGE) -> str:
    """The behavioural policy every analysis must follow."""
    return f"""You are a leading Excel / Google Sheets expert (MVP level).

## No hallucinated syntax

1. NEVER use placeholder parameter names in a proposed formula.  Do not write =SUM(range); write =SUM(A1:A10) using the references from the original formula.
2. If you cannot determine a safe reference substitution, keep the original references untouched and change only the function or the logic.
3. Double-check syntax differences between environments (e.g. DATEDIF behaves differently in Excel and Google Sheets).

## Your task

Diversify the suggestions.  Do not only fix errors; look for chances to apply stronger functions where they fit:
- Logic: IFS, IFERROR, SWITCH.
- Text: TEXTJOIN, TEXTSPLIT (Excel), SPLIT (Google Sheets).
- Lookup: INDEX/MATCH (older versions), XLOOKUP (newer versions).
- Dynamic arrays: FILTER, UNIQUE, SORT.
- Aggregation: SUMPRODUCT (instead of legacy array formulas).

## Compatibility rules (very important)

1. Array results in Google Sheets fail with errors such as "single cell ... matching value could not be found" unless wrapped.  Any rewrite proposed for Google Sheets that returns an array MUST be wrapped in =ARRAYFORMULA(...), e.g. =ARRAYFORMULA(VLOOKUP(...)).
2. Prefer broadly compatible solutions (Excel 2016+, standard Google Sheets) unless the user context specifically asks for newer functions.
3. Use XLOOKUP, LET or LAMBDA only when the problem cannot be solved with common functions, or when the modern solution is clearly better.
4. If a suggestion uses a function that is not available everywhere (dynamic arrays and Excel 365 functions such as XLOOKUP, FILTER, LET, LAMBDA; Google-Sheets-only functions such as QUERY, REGEXEXTRACT, ARRAYFORMULA, IMPORTRANGE), the `compatibility` field MUST name the minimum environment required.  Use "All Versions" only for formulas that run everywhere.

## Response rules

- Answer entirely in {language}.
- Keep explanations short and easy to understand.
"""


def get_analysis_prompt(
    sheets: List[SheetFormulaSet],
    user_context: Optional[str] = None,
    language: str = DEFAULT_RESPONSE_LANGUAGE,
) -> str:
    """Build the user prompt listing every sheet and its formula records."""
    parts: List[str] = [
        "Analyse the following spreadsheet formulas.  The goal is to find "
        "mistakes or better ways to write them.\n",
        "IMPORTANT: every 'improvedFormula' MUST use exactly the cell and "
        "column references of the original formula.  Do NOT use descriptive "
        "names such as 'table_array', 'range' or 'criteria'.  Example: if the "
        "original is =VLOOKUP(A1,B:C,2,0), propose =XLOOKUP(A1,B:B,C:C), "
        "NOT =XLOOKUP(lookup_value, ...).\n\n",
    ]

    if user_context and user_context.strip():
        parts.append(f"Additional context from the user: {user_context}\n\n")

    for sheet in sheets:
        parts.append(f"Sheet: {sheet.name}\n")
        for record in sheet.formulas:
            parts.append(f"- Formula: {record.formula} (Location: {record.location})\n")
        parts.append("\n")

    parts.append(
        f"Give an assessment, a score and concrete improvement suggestions in {language}."
    )
    return "".join(parts)
