"""
Two-tier parsing of provider output into pydantic models.

1. Strict: the whole response must validate as the expected model.
2. Brace scan: validate the text from the first "{" to the last "}".

A payload that parses as JSON but lacks required keys fails validation
and counts as malformed, the same as non-JSON noise.
"""

import logging
from typing import Optional, TypeVar

from pydantic import BaseModel, ValidationError

from exceptions import MalformedResponseError


logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def find_brace_block(text: str) -> Optional[str]:
    """Return the substring from the first '{' to the last '}', if any."""
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start:end + 1]
    return None


def parse_model_response(response: str, model: type[T]) -> T:
    """
    Parse provider text into ``model``.

    Raises:
        MalformedResponseError: If neither tier yields a valid model
    """
    text = (response or "").strip()

    try:
        return model.model_validate_json(text)
    except ValidationError as strict_error:
        last_error = strict_error

    block = find_brace_block(text)
    if block is not None and block != text:
        logger.debug(f"Strict parse failed; retrying {model.__name__} on brace-delimited block")
        try:
            return model.model_validate_json(block)
        except ValidationError as scan_error:
            last_error = scan_error

    raise MalformedResponseError(
        expected=model.__name__,
        reason=f"{last_error.error_count()} validation error(s)",
        response_preview=text,
    )
