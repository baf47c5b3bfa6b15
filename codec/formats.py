"""
Format identification for uploaded files.

Two independent concerns live here:

  * **content sniffing** (``detect_source_format``, libmagic) decides how bytes are
    decoded, regardless of the file name;
  * **file-name checks** (``check_file_name``, ``strip_known_suffixes``,
    ``converted_file_name``) are a user-facing pre-filter and the naming
    contract for converted output.
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache
from typing import Iterable, Optional, Tuple

import magic

from utils.exceptions import FormatError

logger = logging.getLogger(__name__)


class TargetFormat(str, Enum):
    XLSX = "xlsx"
    CSV = "csv"

    @property
    def extension(self) -> str:
        return f".{self.value}"


class SourceFormat(str, Enum):
    XLSX = "xlsx"  # Office Open XML (zip container), also .xlsm
    XLS = "xls"  # legacy BIFF inside an OLE2 compound document
    TEXT = "text"  # delimited text

    @property
    def is_workbook(self) -> bool:
        return self is not SourceFormat.TEXT


# libmagic reports OOXML workbooks either by their own type or as plain zip.
_XLSX_MIME_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel.sheet.macroenabled.12",
    "application/zip",
    "application/x-zip-compressed",
}

# Legacy BIFF workbooks live in an OLE2 / CDF container; libmagic names the
# container rather than the workbook when the directory cannot be walked.
_XLS_MIME_TYPES = {
    "application/vnd.ms-excel",
    "application/vnd.ms-office",
    "application/msword",
    "application/x-ole-storage",
}
_XLS_MIME_PREFIXES = ("application/cdfv2",)

_TEXT_MIME_TYPES = {"application/csv", "application/x-csv"}

# Upper bound on the bytes handed to libmagic.
_MAGIC_SAMPLE_BYTES = 1024 * 1024

WORKBOOK_SUFFIXES: Tuple[str, ...] = (".xlsx", ".xlsm", ".xls")
TEXT_SUFFIXES: Tuple[str, ...] = (".csv", ".tsv")

ANALYSIS_SUFFIXES: Tuple[str, ...] = WORKBOOK_SUFFIXES
CONVERTER_SUFFIXES: Tuple[str, ...] = TEXT_SUFFIXES + WORKBOOK_SUFFIXES


@lru_cache(maxsize=1)
def _mime_detector() -> magic.Magic:
    return magic.Magic(mime=True)


def sniff_mime_type(data: bytes) -> str:
    """Return the lower-cased MIME type libmagic reports for *data*."""
    try:
        detected = _mime_detector().from_buffer(data[:_MAGIC_SAMPLE_BYTES])
    except magic.MagicException as exc:
        logger.warning("Magic detection failed: %s", exc)
        raise FormatError(f"Could not identify content type: {exc}") from exc
    return (detected or "").lower()


def source_format_for_mime(mime_type: str) -> Optional[SourceFormat]:
    """Map a MIME type to the decoder that handles it, or ``None``."""
    if mime_type in _XLSX_MIME_TYPES:
        return SourceFormat.XLSX
    if mime_type in _XLS_MIME_TYPES or mime_type.startswith(_XLS_MIME_PREFIXES):
        return SourceFormat.XLS
    if mime_type.startswith("text/") or mime_type in _TEXT_MIME_TYPES:
        return SourceFormat.TEXT
    return None


def detect_source_format(data: bytes) -> SourceFormat:
    """Classify raw bytes by their content type, never by file name."""
    if not data:
        raise FormatError("Empty input", user_message="The file is empty.")

    mime_type = sniff_mime_type(data)
    source = source_format_for_mime(mime_type)
    if source is None:
        raise FormatError(
            f"Unsupported content type {mime_type!r}",
            user_message="Unsupported file format. Please upload an .xlsx, .xls or .csv file.",
        )
    logger.debug("Detected content type %s -> %s", mime_type, source.value)
    return source


def has_accepted_suffix(file_name: str, accepted: Iterable[str]) -> bool:
    lowered = file_name.lower()
    return any(lowered.endswith(suffix) for suffix in accepted)


def check_file_name(file_name: str, accepted: Iterable[str]) -> None:
    """Raise ``FormatError`` if *file_name* has none of the *accepted* suffixes."""
    accepted = tuple(accepted)
    if not has_accepted_suffix(file_name, accepted):
        raise FormatError(
            f"Rejected file name {file_name!r}",
            user_message=(
                "Please upload a file with one of these extensions: "
                + ", ".join(accepted)
            ),
        )


def strip_known_suffixes(file_name: str) -> str:
    """
    Remove every trailing recognised suffix.

    ``data.csv.xlsx.xlsx`` → ``data``;  ``report.final.csv`` → ``report.final``.
    """
    stem = file_name
    while True:
        lowered = stem.lower()
        for suffix in CONVERTER_SUFFIXES:
            if lowered.endswith(suffix) and len(stem) > len(suffix):
                stem = stem[: -len(suffix)]
                break
        else:
            return stem


def converted_file_name(file_name: str, target: TargetFormat) -> str:
    return f"{strip_known_suffixes(file_name)}_converted{target.extension}"
