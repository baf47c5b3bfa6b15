"""Tests for the provider-backed AIService implementations (SDK clients mocked)."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import pytest
from google.genai import errors as genai_errors

from ai.claude_service import ClaudeService
from ai.factory import api_key_env_vars, get_analysis_service, normalise_provider
from ai.gemini_service import GeminiService
from ai.openai_service import OpenAIService
from analysis.schema import ANALYSIS_RESULT_SCHEMA
from utils.exceptions import AuthError, ConfigError, ErrorCode, ServiceError

SCHEMA = ANALYSIS_RESULT_SCHEMA


class TestFactory:
    def test_default_provider_is_gemini(self) -> None:
        assert normalise_provider() == "gemini"

    def test_provider_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("AI_ANALYSIS_PROVIDER", " Anthropic ")

        assert normalise_provider() == "claude"

    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            normalise_provider("watson")

        assert exc_info.value.error_code is ErrorCode.INVALID_CONFIGURATION
        assert "gemini" in exc_info.value.user_message

    def test_unknown_provider_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("AI_ANALYSIS_PROVIDER", "watson")

        with pytest.raises(ConfigError):
            api_key_env_vars()

    def test_key_env_vars(self) -> None:
        assert api_key_env_vars("gemini") == ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY")
        assert api_key_env_vars("openai") == ("OPENAI_API_KEY",)

    @patch("ai.factory.OpenAIService")
    def test_model_from_environment(self, service_cls, monkeypatch) -> None:
        monkeypatch.setenv("AI_ANALYSIS_MODEL", "gpt-test")

        get_analysis_service("key", provider="openai")

        service_cls.assert_called_once_with("key", model="gpt-test")

    @patch("ai.factory.GeminiService")
    def test_provider_default_model_when_unset(self, service_cls) -> None:
        get_analysis_service("key", provider="gemini")

        service_cls.assert_called_once_with("key")


class TestGeminiService:
    @patch("ai.gemini_service.genai.Client")
    def test_sends_schema_and_policy(self, client_cls) -> None:
        client = client_cls.return_value
        client.models.generate_content.return_value = SimpleNamespace(text='{"ok": true}')

        reply = GeminiService("key").get_structured_decision(
            "prompt", system_instruction="policy", response_schema=SCHEMA
        )

        assert reply == '{"ok": true}'
        client_cls.assert_called_once_with(api_key="key")
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["contents"] == "prompt"
        assert kwargs["config"].system_instruction == "policy"
        assert kwargs["config"].response_mime_type == "application/json"
        assert kwargs["config"].response_json_schema == SCHEMA

    @patch("ai.gemini_service.genai.Client")
    def test_missing_text_is_empty_string(self, client_cls) -> None:
        client_cls.return_value.models.generate_content.return_value = SimpleNamespace(text=None)

        assert GeminiService("key").get_structured_decision(
            "p", system_instruction="s", response_schema=SCHEMA
        ) == ""

    @pytest.mark.parametrize(
        "code,message",
        [
            (403, "Permission denied"),
            (400, "API key not valid. Please pass a valid API key."),
        ],
    )
    @patch("ai.gemini_service.genai.Client")
    def test_rejected_key_is_auth_error(self, client_cls, code, message) -> None:
        client_cls.return_value.models.generate_content.side_effect = genai_errors.ClientError(
            code, {"error": {"code": code, "message": message, "status": "INVALID_ARGUMENT"}}
        )

        with pytest.raises(AuthError):
            GeminiService("key").get_structured_decision(
                "p", system_instruction="s", response_schema=SCHEMA
            )

    @patch("ai.gemini_service.genai.Client")
    def test_server_error_is_service_error(self, client_cls) -> None:
        client_cls.return_value.models.generate_content.side_effect = genai_errors.ServerError(
            503, {"error": {"code": 503, "message": "overloaded", "status": "UNAVAILABLE"}}
        )

        with pytest.raises(ServiceError):
            GeminiService("key").get_structured_decision(
                "p", system_instruction="s", response_schema=SCHEMA
            )


def _openai_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestOpenAIService:
    @patch("ai.openai_service.OpenAI")
    def test_uses_strict_json_schema(self, client_cls) -> None:
        client = client_cls.return_value
        client.chat.completions.create.return_value = _openai_response('{"ok": 1}')

        reply = OpenAIService("key", model="gpt-x").get_structured_decision(
            "prompt", system_instruction="policy", response_schema=SCHEMA
        )

        assert reply == '{"ok": 1}'
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-x"
        assert kwargs["messages"][0] == {"role": "system", "content": "policy"}
        assert kwargs["messages"][1] == {"role": "user", "content": "prompt"}
        assert kwargs["response_format"]["json_schema"]["strict"] is True
        assert kwargs["response_format"]["json_schema"]["schema"] == SCHEMA

    @patch("ai.openai_service.OpenAI")
    def test_authentication_error(self, client_cls) -> None:
        from openai import AuthenticationError

        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(401, request=request)
        client_cls.return_value.chat.completions.create.side_effect = AuthenticationError(
            "Incorrect API key provided", response=response, body=None
        )

        with pytest.raises(AuthError):
            OpenAIService("key").get_structured_decision(
                "p", system_instruction="s", response_schema=SCHEMA
            )

    @patch("ai.openai_service.OpenAI")
    def test_connection_error(self, client_cls) -> None:
        from openai import APIConnectionError

        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        client_cls.return_value.chat.completions.create.side_effect = APIConnectionError(
            request=request
        )

        with pytest.raises(ServiceError):
            OpenAIService("key").get_structured_decision(
                "p", system_instruction="s", response_schema=SCHEMA
            )


class TestClaudeService:
    @patch("ai.claude_service.Anthropic")
    def test_forced_tool_call_input_is_returned(self, client_cls) -> None:
        client = client_cls.return_value
        client.messages.create.return_value = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="thinking"),
                SimpleNamespace(
                    type="tool_use",
                    name="record_formula_analysis",
                    input={"summary": "Tốt"},
                ),
            ]
        )

        reply = ClaudeService("key").get_structured_decision(
            "prompt", system_instruction="policy", response_schema=SCHEMA
        )

        assert json.loads(reply) == {"summary": "Tốt"}
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == "policy"
        assert kwargs["tools"][0]["input_schema"] == SCHEMA
        assert kwargs["tool_choice"] == {"type": "tool", "name": "record_formula_analysis"}

    @patch("ai.claude_service.Anthropic")
    def test_no_tool_call_is_empty_reply(self, client_cls) -> None:
        client_cls.return_value.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(type="text", text="no")]
        )

        assert ClaudeService("key").get_structured_decision(
            "p", system_instruction="s", response_schema=SCHEMA
        ) == ""

    @patch("ai.claude_service.Anthropic")
    def test_authentication_error(self, client_cls) -> None:
        from anthropic import AuthenticationError

        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        response = httpx.Response(401, request=request)
        client_cls.return_value.messages.create.side_effect = AuthenticationError(
            "invalid x-api-key", response=response, body=None
        )

        with pytest.raises(AuthError):
            ClaudeService("key").get_structured_decision(
                "p", system_instruction="s", response_schema=SCHEMA
            )
