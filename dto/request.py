from __future__ import annotations

import json
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class AnalysisRequest(BaseModel):
    """Everything one analysis call sends to the reasoning service."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    system_instruction: str
    response_schema: Dict[str, Any]

    def to_payload(self) -> str:
        """Deterministic JSON form of the request (stable key order)."""
        return json.dumps(
            self.model_dump(), ensure_ascii=False, sort_keys=True, indent=2
        )
