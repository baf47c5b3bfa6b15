from abc import ABC, abstractmethod
from typing import Any, Dict


class AIService(ABC):
    """
    Base class for the reasoning services that critique formulas.

    Implementations send one request, ask the provider to constrain its
    reply to *response_schema*, and return the raw JSON text.  Provider
    authentication failures are raised as ``AuthError`` and every other
    provider failure as ``ServiceError``.
    """

    @abstractmethod
    def get_structured_decision(
        self,
        prompt: str,
        *,
        system_instruction: str,
        response_schema: Dict[str, Any],
    ) -> str:
        """Send *prompt* under *system_instruction* and return the JSON reply text."""
        ...
