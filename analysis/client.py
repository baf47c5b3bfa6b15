"""
AnalysisClient — sends one ``AnalysisRequest`` to the reasoning service
and turns the reply into an ``AnalysisResult``.

Failure mapping:
  - no key from caller or environment → ``AuthError`` (raised before any
    service object exists, so no network call is attempted)
  - provider rejects the key          → ``AuthError``
  - empty / non-JSON / invalid reply  → ``SchemaViolationError``
  - anything else                     → ``ServiceError``

There is exactly one attempt per call; retrying is the caller's decision.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from pydantic import ValidationError

from ai.factory import api_key_env_vars, get_analysis_service, normalise_provider
from ai.response_parser import parse_reply_object
from ai.service import AIService
from analysis.credentials import resolve_credential
from dto.analysis import AnalysisResult
from dto.request import AnalysisRequest
from utils.exceptions import FormulaAnalystError, SchemaViolationError, ServiceError

logger = logging.getLogger(__name__)

ServiceFactory = Callable[..., AIService]

# How much of a bad reply to keep in the logs.
_MAX_LOGGED_REPLY_CHARS = 2000


class AnalysisClient:
    def __init__(
        self,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        service_factory: ServiceFactory = get_analysis_service,
    ) -> None:
        self._provider = normalise_provider(provider)
        self._model = model
        self._service_factory = service_factory

    @property
    def provider(self) -> str:
        return self._provider

    def run(self, request: AnalysisRequest, credential: Optional[str] = None) -> AnalysisResult:
        api_key = resolve_credential(credential, api_key_env_vars(self._provider))
        service = self._service_factory(api_key, provider=self._provider, model=self._model)

        logger.info(
            "Sending analysis request to %s (%d prompt chars)",
            self._provider,
            len(request.prompt),
        )
        try:
            raw = service.get_structured_decision(
                request.prompt,
                system_instruction=request.system_instruction,
                response_schema=request.response_schema,
            )
        except FormulaAnalystError:
            raise
        except Exception as exc:
            logger.exception("Analysis request to %s failed", self._provider)
            raise ServiceError(f"Analysis request failed: {exc}") from exc

        result = parse_analysis_result(raw)
        logger.info(
            "  -> score %.0f, %d suggestion(s)",
            result.overall_score,
            len(result.suggestions),
        )
        return result


def parse_analysis_result(raw: Optional[str]) -> AnalysisResult:
    """Validate a raw reply against the ``AnalysisResult`` shape."""
    if not raw or not raw.strip():
        logger.error("Analysis service returned an empty reply")
        raise SchemaViolationError("Empty reply from the analysis service")

    parsed = parse_reply_object(raw)
    if not isinstance(parsed, dict):
        logger.error(
            "Analysis reply is not a JSON object: %s", raw[:_MAX_LOGGED_REPLY_CHARS]
        )
        raise SchemaViolationError("Analysis reply is not a JSON object")

    try:
        return AnalysisResult.model_validate(parsed)
    except ValidationError as exc:
        logger.error(
            "Analysis reply violates the result schema: %s\nReply: %s",
            exc,
            raw[:_MAX_LOGGED_REPLY_CHARS],
        )
        raise SchemaViolationError(
            f"Analysis reply violates the result schema ({exc.error_count()} error(s))",
            details={"errors": str(exc)},
        ) from exc
