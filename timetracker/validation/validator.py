"""
Boundary Input Validation

DESIGN DECISION: The ledgers only ever see Decimal values. Text typed
by the user is parsed here, before it reaches the core, and rejected
with a ValidationIssue the front-end can show next to the field.

Accepted formats follow Czech habits as well as English ones:
"1 234,50", "1234.5", "24 500 Kč".

IMPORTANT: Parsing NEVER guesses. "12,5.3" is rejected, not repaired.
"""

import re
from datetime import date, datetime, time, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from timetracker.models.ledger import ValidationIssue


_CURRENCY_SUFFIX = re.compile(r"(kč|czk|eur|usd|€|\$)$", re.IGNORECASE)
_GROUPING = re.compile(r"\s")


class InvalidInputError(ValueError):
    """User input that cannot be turned into a number for the ledgers."""

    def __init__(self, issue: ValidationIssue):
        super().__init__(issue.message)
        self.issue = issue


def _reject(field: str, issue_type: str, message: str) -> InvalidInputError:
    return InvalidInputError(
        ValidationIssue(field=field, issue_type=issue_type, message=message)
    )


def _to_decimal(text: str, field: str) -> Decimal:
    cleaned = _GROUPING.sub("", text or "")
    cleaned = _CURRENCY_SUFFIX.sub("", cleaned)
    if not cleaned:
        raise _reject(field, "missing", f"{field} is required")

    if "," in cleaned and "." in cleaned:
        raise _reject(field, "invalid_format", f"{field} mixes ',' and '.': {text!r}")
    cleaned = cleaned.replace(",", ".")

    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise _reject(field, "invalid_format", f"{field} is not a number: {text!r}")

    if not value.is_finite():
        raise _reject(field, "invalid_format", f"{field} is not a number: {text!r}")
    return value


def parse_amount(text: str, field: str = "amount") -> Decimal:
    """Parse a strictly positive money amount."""
    value = _to_decimal(text, field)
    if value <= 0:
        raise _reject(field, "out_of_range", f"{field} must be greater than zero")
    return value


def parse_optional_amount(text: Optional[str], field: str = "amount") -> Optional[Decimal]:
    """Like parse_amount, but blank input means "use the default"."""
    if text is None or not text.strip():
        return None
    value = _to_decimal(text, field)
    if value < 0:
        raise _reject(field, "out_of_range", f"{field} cannot be negative")
    return value


def parse_rate(text: str, field: str = "deduction_rate") -> Decimal:
    """
    Parse a deduction rate as a fraction between 0 and 1.

    "0.333", "33.3%" and "33.3" all mean 0.333.
    """
    stripped = (text or "").strip()
    is_percent = stripped.endswith("%")
    value = _to_decimal(stripped.rstrip("%"), field)

    if is_percent or value > 1:
        value = value / 100

    if value < 0 or value > 1:
        raise _reject(field, "out_of_range", f"{field} must be between 0% and 100%")
    return value


def parse_session_edit(
    person: str,
    activity: str,
    day: date,
    start: time,
    end: time,
    tz: Optional[tzinfo],
    rate_text: str,
    deduction_text: str,
    note: str,
) -> dict[str, Any]:
    """
    Turn the session edit form into keyword changes for `edit_session`.

    A blank rate or deduction keeps the session's current value.
    """
    changes: dict[str, Any] = {
        "person": person,
        "activity": activity,
        "start": datetime.combine(day, start, tzinfo=tz),
        "end": datetime.combine(day, end, tzinfo=tz),
        "note": note.strip() or None,
    }
    rate = parse_optional_amount(rate_text, "hourly rate")
    if rate is not None:
        changes["hourly_rate"] = rate
    if deduction_text.strip():
        changes["deduction_rate"] = parse_rate(deduction_text, "deduction")
    return changes
