from ai.service import AIService
from ai.factory import get_analysis_service, normalise_provider, api_key_env_vars
from ai.response_parser import parse_reply_object

__all__ = [
    "AIService",
    "get_analysis_service",
    "normalise_provider",
    "api_key_env_vars",
    "parse_reply_object",
]
