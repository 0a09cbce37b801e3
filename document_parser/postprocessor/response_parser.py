"""
Response Parser Module.

Model replies are untrusted text. The parser recovers a JSON object
from the usual LLM noise in a fixed order:

    1. trim whitespace
    2. strip a leading ```json / ``` fence and a trailing ``` fence
    3. slice from the first "{" to the last "}" when both exist
    4. parse JSON and require a top-level object

Fence stripping runs before slicing and slicing runs before parsing.
Nested braces inside the outermost object are never truncated.

Author: ML Engineering Team
"""

import json
import re
from typing import Any, Dict

from document_parser.utils.logger import get_logger
from document_parser.utils.exceptions import InvalidResponseFormatError

logger = get_logger(__name__)

LEADING_JSON_FENCE = re.compile(r'^```json\s*', re.IGNORECASE)
LEADING_FENCE = re.compile(r'^```\s*')
TRAILING_FENCE = re.compile(r'\s*```$')

PREVIEW_LENGTH = 200


def strip_fences(reply: str) -> str:
    """Trim the reply and remove markdown code fences around it."""
    cleaned = reply.strip()
    cleaned = LEADING_JSON_FENCE.sub('', cleaned)
    cleaned = LEADING_FENCE.sub('', cleaned)
    cleaned = TRAILING_FENCE.sub('', cleaned)
    return cleaned.strip()


def parse_reply(reply: str) -> Dict[str, Any]:
    """
    Parse a model reply into a record.

    Args:
        reply: Raw reply text.

    Returns:
        The parsed JSON object.

    Raises:
        InvalidResponseFormatError: If no JSON object can be recovered.

    Example:
        >>> parse_reply('Here you go:\\n```json\\n{"a": {"b": 1}}\\n```')
        {'a': {'b': 1}}
    """
    if not isinstance(reply, str):
        raise InvalidResponseFormatError(f"expected text, got {type(reply).__name__}")

    cleaned = strip_fences(reply)

    start = cleaned.find('{')
    end = cleaned.rfind('}')
    if start != -1 and end > start:
        cleaned = cleaned[start:end + 1]

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(f"Model reply is not valid JSON: {e.msg} (line {e.lineno}, column {e.colno})")
        raise InvalidResponseFormatError(
            f"reply is not valid JSON ({e.msg})",
            reply_preview=reply[:PREVIEW_LENGTH]
        )

    if not isinstance(data, dict):
        kind = "null" if data is None else type(data).__name__
        raise InvalidResponseFormatError(
            f"expected a JSON object, got {kind}",
            reply_preview=reply[:PREVIEW_LENGTH]
        )

    logger.debug(f"Parsed model reply with {len(data)} top-level field(s)")
    return data
