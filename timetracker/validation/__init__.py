"""Input validation package."""

from timetracker.validation.validator import (
    InvalidInputError,
    parse_amount,
    parse_optional_amount,
    parse_rate,
    parse_session_edit,
)

__all__ = [
    "InvalidInputError",
    "parse_amount",
    "parse_optional_amount",
    "parse_rate",
    "parse_session_edit",
]
