"""
Response parsing helpers for LLM adapters.
"""

import json


def parse_json_payload(response_text: str | None) -> dict | None:
    """
    Parse a model response that should contain a JSON object.

    Models are prompted to return JSON, but we handle cases where they
    don't comply with multiple fallback strategies:
    1. Direct JSON parse
    2. Extract from ```json code blocks
    3. Extract from ``` code blocks

    Args:
        response_text: Raw text response from the model.

    Returns:
        The parsed JSON object, or None if no strategy produced one.
    """
    if not response_text:
        return None

    # Strategy 1: Direct JSON parse
    try:
        parsed = json.loads(response_text)
        return parsed if isinstance(parsed, dict) else None
    except json.JSONDecodeError:
        pass

    # Strategy 2: Extract from ```json code block
    if "```json" in response_text:
        try:
            json_start = response_text.index("```json") + 7
            json_end = response_text.index("```", json_start)
            parsed = json.loads(response_text[json_start:json_end].strip())
            return parsed if isinstance(parsed, dict) else None
        except (ValueError, json.JSONDecodeError):
            pass

    # Strategy 3: Extract from any ``` code block
    if "```" in response_text:
        try:
            json_start = response_text.index("```") + 3
            # Skip language identifier if present (e.g., ```javascript)
            newline_pos = response_text.find("\n", json_start)
            if newline_pos != -1 and newline_pos < json_start + 20:
                json_start = newline_pos + 1
            json_end = response_text.index("```", json_start)
            parsed = json.loads(response_text[json_start:json_end].strip())
            return parsed if isinstance(parsed, dict) else None
        except (ValueError, json.JSONDecodeError):
            pass

    return None


def clamp_confidence(value: object, default: float = 0.5) -> float:
    """Coerce a model-reported confidence into [0, 1]."""
    try:
        confidence = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return max(0.0, min(1.0, confidence))
