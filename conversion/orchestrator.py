"""
ConversionOrchestrator — CSV ⇄ XLSX conversion built on WorkbookCodec.

The conversion path is independent of analysis:

    bytes → WorkbookCodec.decode → WorkbookCodec.encode(target) → bytes
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional

from codec.formats import (
    CONVERTER_SUFFIXES,
    TargetFormat,
    check_file_name,
    converted_file_name,
    detect_source_format,
)
from codec.workbook_codec import WorkbookCodec

logger = logging.getLogger(__name__)


class ConvertedFile(NamedTuple):
    file_name: str
    data: bytes
    target_format: TargetFormat


class ConversionOrchestrator:
    def __init__(self, codec: Optional[WorkbookCodec] = None) -> None:
        self._codec = codec or WorkbookCodec()

    def convert(
        self,
        data: bytes,
        source_hint: Optional[str],
        target_format: TargetFormat,
    ) -> bytes:
        model = self._codec.decode(data, source_hint)
        return self._codec.encode(model, TargetFormat(target_format))

    def convert_file(
        self,
        file_name: str,
        data: bytes,
        target_format: Optional[TargetFormat] = None,
    ) -> ConvertedFile:
        """
        Validate *file_name*, convert *data* and name the output.

        Without an explicit *target_format*, text becomes XLSX and any
        workbook becomes CSV.
        """
        check_file_name(file_name, CONVERTER_SUFFIXES)
        if target_format is None:
            source = detect_source_format(data)
            target_format = TargetFormat.CSV if source.is_workbook else TargetFormat.XLSX
        target_format = TargetFormat(target_format)

        output = self.convert(data, file_name, target_format)
        out_name = converted_file_name(file_name, target_format)
        logger.info("Converted %s -> %s (%d bytes)", file_name, out_name, len(output))
        return ConvertedFile(out_name, output, target_format)
