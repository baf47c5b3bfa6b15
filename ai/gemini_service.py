import logging
from typing import Any, Dict

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ai.service import AIService
from utils.exceptions import AuthError, ServiceError

logger = logging.getLogger(__name__)

_DEFAULT_MODEL = "gemini-2.5-flash"

_AUTH_STATUS_CODES = (401, 403)


class GeminiService(AIService):
    """AIService backed by the Google Gemini API."""

    def __init__(self, api_key: str, model: str = _DEFAULT_MODEL):
        self._model = model
        self._client = genai.Client(api_key=api_key)

    def get_structured_decision(
        self,
        prompt: str,
        *,
        system_instruction: str,
        response_schema: Dict[str, Any],
    ) -> str:
        logger.debug("  [Gemini] %s, prompt %d chars", self._model, len(prompt))
        try:
            response = self._client.models.generate_content(
                model=self._model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=system_instruction,
                    response_mime_type="application/json",
                    response_json_schema=response_schema,
                ),
            )
        except genai_errors.ClientError as exc:
            # An invalid key comes back as 400 INVALID_ARGUMENT "API key not valid".
            if exc.code in _AUTH_STATUS_CODES or "API key" in str(exc):
                raise AuthError(f"Gemini rejected the API key: {exc}") from exc
            raise ServiceError(f"Gemini request failed: {exc}") from exc
        except genai_errors.APIError as exc:
            raise ServiceError(f"Gemini request failed: {exc}") from exc

        return response.text or ""
