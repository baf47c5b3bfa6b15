"""
Exception hierarchy for the formula analyst.

    FormulaAnalystError (base)
    ├── FormatError           unparseable / unsupported input bytes or file name
    ├── EmptyResultError      the workbook holds no formulas
    ├── AuthError             missing or rejected API key
    ├── SchemaViolationError  the service reply does not match the result schema
    ├── ServiceError          any other transport / service failure
    ├── SessionBusyError      an analysis is already in flight
    └── ConfigError           unknown provider or other bad setting

Every error carries a ``user_message`` that is safe to show to an end
user.  The ``message`` and ``details`` may contain internal information
and are meant for logs only.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Stable error codes, grouped by category (E1 input, E2 auth, E3 service, E4 session, E5 configuration)."""

    UNSUPPORTED_FORMAT = "E1001"
    NO_FORMULAS = "E1002"
    MISSING_OR_INVALID_KEY = "E2001"
    SCHEMA_VIOLATION = "E3001"
    SERVICE_FAILURE = "E3002"
    SESSION_BUSY = "E4001"
    INVALID_CONFIGURATION = "E5001"


class FormulaAnalystError(Exception):
    """Base class for every error raised by the core."""

    error_code: ErrorCode = ErrorCode.SERVICE_FAILURE
    user_message: str = "Something went wrong. Please try again."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        user_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        if user_message is not None:
            self.user_message = user_message
        self.message = message or self.user_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialisable form for callers; deliberately omits ``details``."""
        return {
            "error_code": self.error_code.value,
            "message": self.user_message,
        }

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"


class FormatError(FormulaAnalystError):
    error_code = ErrorCode.UNSUPPORTED_FORMAT
    user_message = "The file could not be read. Please upload a valid .xlsx, .xls or .csv file."


class EmptyResultError(FormulaAnalystError):
    error_code = ErrorCode.NO_FORMULAS
    user_message = "No formulas were found in this file."


class AuthError(FormulaAnalystError):
    error_code = ErrorCode.MISSING_OR_INVALID_KEY
    user_message = (
        "The API key is missing, invalid or out of quota. "
        "Please check it in the settings."
    )


class SchemaViolationError(FormulaAnalystError):
    error_code = ErrorCode.SCHEMA_VIOLATION
    user_message = "The analysis could not be completed right now. Please try again."


class ServiceError(FormulaAnalystError):
    error_code = ErrorCode.SERVICE_FAILURE
    user_message = "The analysis could not be completed right now. Please try again."


class SessionBusyError(FormulaAnalystError):
    error_code = ErrorCode.SESSION_BUSY
    user_message = "An analysis is already running. Please wait for it to finish."


class ConfigError(FormulaAnalystError):
    error_code = ErrorCode.INVALID_CONFIGURATION
    user_message = "The configuration is invalid. Please check the selected AI provider."
