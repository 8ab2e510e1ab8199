"""Input validation shared by the answer and search flows."""

from __future__ import annotations

from typing import Any

from panel_oracle.utils.errors import InvalidInputError


def validate_text(value: Any, field: str, max_length: int) -> str:
    """Return *value* stripped, or raise :class:`InvalidInputError`.

    Runs before any external call, so a malformed request costs nothing.
    """
    if not isinstance(value, str):
        raise InvalidInputError(f"{field} is required and must be a string")
    text = value.strip()
    if not text:
        raise InvalidInputError(f"{field} must not be empty")
    if len(text) > max_length:
        raise InvalidInputError(f"{field} must be at most {max_length} characters")
    return text
