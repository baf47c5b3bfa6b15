"""
Lenient reading of the JSON object a provider returns.

Schema-constrained replies are normally bare JSON, but some models still
wrap them in markdown fences or a sentence of prose.  Only a top-level
object is accepted: the analysis result is always an object.
"""

import json
import logging
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")

_decoder = json.JSONDecoder()


def parse_reply_object(raw: str) -> Optional[Dict[str, Any]]:
    """
    Return the first JSON object found in *raw*, or ``None``.

    Fences are stripped, then decoding is attempted from each ``{`` in
    turn so that leading prose and trailing chatter are skipped.
    """
    cleaned = _FENCE_RE.sub("", raw.strip()).strip()

    start = cleaned.find("{")
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(cleaned, start)
        except json.JSONDecodeError:
            start = cleaned.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = cleaned.find("{", start + 1)

    logger.warning("Reply did not contain a JSON object: %s", raw[:200])
    return None
