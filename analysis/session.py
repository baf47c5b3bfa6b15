"""
AnalysisSession — one user's analysis workflow.

    file bytes → WorkbookCodec.decode → FormulaExtractor.extract
               → AnalysisRequestBuilder.build → AnalysisClient.run

The session owns the single result slot.  Decoding and the service call
run in worker threads so the event loop stays responsive; a second
``analyze_file`` while one is in flight is rejected rather than queued.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from analysis.client import AnalysisClient
from analysis.credentials import CredentialProvider, InMemoryCredentialProvider
from analysis.request_builder import AnalysisRequestBuilder
from codec.formats import ANALYSIS_SUFFIXES, check_file_name
from codec.workbook_codec import WorkbookCodec
from dto.analysis import AnalysisResult
from extractors.formula import FormulaExtractor
from utils.exceptions import EmptyResultError, FormatError, SessionBusyError

logger = logging.getLogger(__name__)

_REMOTE_PREFIXES = ("http://", "https://")


class AnalysisSession:
    def __init__(
        self,
        credentials: Optional[CredentialProvider] = None,
        *,
        codec: Optional[WorkbookCodec] = None,
        extractor: Optional[FormulaExtractor] = None,
        builder: Optional[AnalysisRequestBuilder] = None,
        client: Optional[AnalysisClient] = None,
    ) -> None:
        self._credentials = credentials or InMemoryCredentialProvider()
        self._codec = codec or WorkbookCodec()
        self._extractor = extractor or FormulaExtractor()
        self._builder = builder or AnalysisRequestBuilder()
        self._client = client or AnalysisClient()
        self._busy = False
        self.result: Optional[AnalysisResult] = None

    @property
    def busy(self) -> bool:
        return self._busy

    async def analyze_file(
        self,
        file_name: str,
        data: bytes,
        user_context: Optional[str] = None,
    ) -> AnalysisResult:
        """Run the whole analysis for one uploaded file and store the result."""
        if self._busy:
            raise SessionBusyError(f"Analysis already in flight; rejected {file_name!r}")

        check_file_name(file_name, ANALYSIS_SUFFIXES)
        credential = self._credentials.get()

        self._busy = True
        try:
            logger.info("=" * 60)
            logger.info("Analysing %s", file_name)
            workbook = await asyncio.to_thread(self._codec.decode, data, file_name)

            sheets = self._extractor.extract(workbook)
            if not sheets:
                raise EmptyResultError(f"No formulas found in {file_name!r}")

            request = self._builder.build(sheets, user_context)
            result = await asyncio.to_thread(self._client.run, request, credential)
        finally:
            self._busy = False

        self.result = result
        return result

    def reset(self) -> None:
        self.result = None


def is_remote_link(source: str) -> bool:
    return source.lower().startswith(_REMOTE_PREFIXES)


def reject_remote_link(link: str) -> None:
    """Remote spreadsheet links are never fetched; always raises ``FormatError``."""
    raise FormatError(
        f"Remote spreadsheet link rejected: {link}",
        user_message=(
            "Reading private Google Sheets links is not supported. "
            "Please download the sheet as .xlsx and upload the file instead."
        ),
    )
