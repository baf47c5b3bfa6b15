"""
AIService implementation backed by the Anthropic Claude API.

Claude has no JSON response mode on the plain messages endpoint, so the
schema is enforced with a single forced tool call: the tool's
``input_schema`` is the response schema and the tool input is returned
as the JSON reply.

Default model: claude-opus-4-6
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from anthropic import (
    Anthropic,
    AnthropicError,
    AuthenticationError,
    PermissionDeniedError,
)

from ai.service import AIService
from utils.exceptions import AuthError, ServiceError

logger = logging.getLogger(__name__)

_DEFAULT_MODEL = "claude-opus-4-6"

_TOOL_NAME = "record_formula_analysis"


class ClaudeService(AIService):
    """AIService backed by the Anthropic Claude API."""

    def __init__(self, api_key: str, model: str = _DEFAULT_MODEL):
        self._model = model
        self._client = Anthropic(api_key=api_key)

    def get_structured_decision(
        self,
        prompt: str,
        *,
        system_instruction: str,
        response_schema: Dict[str, Any],
    ) -> str:
        try:
            message = self._client.messages.create(
                model=self._model,
                max_tokens=16384,
                system=system_instruction,
                messages=[{"role": "user", "content": prompt}],
                tools=[
                    {
                        "name": _TOOL_NAME,
                        "description": "Record the structured analysis of the formulas.",
                        "input_schema": response_schema,
                    }
                ],
                tool_choice={"type": "tool", "name": _TOOL_NAME},
            )
        except (AuthenticationError, PermissionDeniedError) as exc:
            raise AuthError(f"Anthropic rejected the API key: {exc}") from exc
        except AnthropicError as exc:
            raise ServiceError(f"Anthropic request failed: {exc}") from exc

        for block in message.content:
            if block.type == "tool_use" and block.name == _TOOL_NAME:
                return json.dumps(block.input, ensure_ascii=False)

        logger.debug("  [Claude] Reply contained no %s tool call", _TOOL_NAME)
        return ""
