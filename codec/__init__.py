from codec.formats import (
    ANALYSIS_SUFFIXES,
    CONVERTER_SUFFIXES,
    SourceFormat,
    TargetFormat,
    check_file_name,
    converted_file_name,
    detect_source_format,
    strip_known_suffixes,
)
from codec.workbook_codec import WorkbookCodec

__all__ = [
    "ANALYSIS_SUFFIXES",
    "CONVERTER_SUFFIXES",
    "SourceFormat",
    "TargetFormat",
    "WorkbookCodec",
    "check_file_name",
    "converted_file_name",
    "detect_source_format",
    "strip_known_suffixes",
]
