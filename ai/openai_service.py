import logging
from typing import Any, Dict

from openai import AuthenticationError, OpenAI, OpenAIError, PermissionDeniedError

from ai.service import AIService
from utils.exceptions import AuthError, ServiceError

logger = logging.getLogger(__name__)

_DEFAULT_MODEL = "gpt-5.2"

_SCHEMA_NAME = "formula_analysis"


class OpenAIService(AIService):
    """AIService backed by the OpenAI API (strict JSON-schema responses)."""

    def __init__(self, api_key: str, model: str = _DEFAULT_MODEL):
        self._model = model
        self._client = OpenAI(api_key=api_key)

    def get_structured_decision(
        self,
        prompt: str,
        *,
        system_instruction: str,
        response_schema: Dict[str, Any],
    ) -> str:
        logger.debug("  [OpenAI] %s, prompt %d chars", self._model, len(prompt))
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": _SCHEMA_NAME,
                        "strict": True,
                        "schema": response_schema,
                    },
                },
            )
        except (AuthenticationError, PermissionDeniedError) as exc:
            raise AuthError(f"OpenAI rejected the API key: {exc}") from exc
        except OpenAIError as exc:
            raise ServiceError(f"OpenAI request failed: {exc}") from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
