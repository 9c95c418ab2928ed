"""
LLM Response Parsing

Chat models usually wrap JSON in a markdown code fence, sometimes they return
bare JSON. Both shapes are accepted here.
"""

import json
import re
from typing import Any

JSON_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*([\[{].*[\]}])\s*```", re.DOTALL)


def parse_json_response(content: Any) -> Any:
    """
    Extract the JSON payload from an LLM reply.

    Args:
        content: Raw message content

    Returns:
        Parsed JSON value

    Raises:
        ValueError: If no valid JSON could be found
    """
    if not isinstance(content, str) or not content.strip():
        raise ValueError("Empty LLM response")

    json_match = JSON_BLOCK_PATTERN.search(content)
    if json_match:
        try:
            return json.loads(json_match.group(1))
        except json.JSONDecodeError:
            pass

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"No valid JSON found in LLM response: {e}") from e
