"""
Core Data Models for Time Tracker

These models define the schemas for everything the ledgers hold and
everything the persistence layer writes. They are designed to:
1. Enforce positive amounts and ordered timestamps at runtime
2. Keep derived values (duration, earnings, deduction) out of storage
3. Be serializable for snapshots and logging

DESIGN DECISION: Money is Decimal everywhere. Deductions such as
275 * 0.333 must add up exactly in the shared balance.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


_MICROSECONDS_PER_HOUR = Decimal(3_600_000_000)


# =============================================================================
# ENUMS
# =============================================================================

class Currency(str, Enum):
    """
    Currencies tracked by the ledgers.

    Only CZK takes part in automatic settlement. EUR and USD balances
    are tracked but never converted.
    """
    CZK = "CZK"
    EUR = "EUR"
    USD = "USD"


class EntryKind(str, Enum):
    """Direction of a finance record."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# TIME TRACKING
# =============================================================================

class WorkSession(BaseModel):
    """
    A tracked interval of billable work.

    A session without `end` is the open timer. Duration, earnings and
    deduction are computed on read and never serialized.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    person: str = Field(..., min_length=1, max_length=100)
    activity: str = Field(..., min_length=1, max_length=200)
    subcategory: Optional[str] = Field(default=None, max_length=200)
    note: Optional[str] = Field(default=None, max_length=1000)
    start: datetime
    end: Optional[datetime] = None
    hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)
    deduction_rate: Decimal = Field(default=Decimal("0"), ge=0)
    is_manual_entry: bool = False

    @field_validator('start', 'end')
    @classmethod
    def require_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Session times must carry a UTC offset so they can be compared."""
        if v is not None and v.tzinfo is None:
            raise ValueError("Session times must be timezone-aware")
        return v

    @model_validator(mode='after')
    def validate_interval(self) -> 'WorkSession':
        """Reject sessions that end before they start."""
        if self.end is not None and self.end < self.start:
            raise ValueError("End time cannot be before start time")
        return self

    @property
    def is_open(self) -> bool:
        return self.end is None

    def duration(self, now: Optional[datetime] = None) -> timedelta:
        """Elapsed time; an open session runs until `now`."""
        if self.end is not None:
            return self.end - self.start
        if now is None:
            now = datetime.now(self.start.tzinfo)
        return now - self.start

    def hours(self, now: Optional[datetime] = None) -> Decimal:
        micros = self.duration(now) // timedelta(microseconds=1)
        return Decimal(micros) / _MICROSECONDS_PER_HOUR

    def earnings(self, now: Optional[datetime] = None) -> Decimal:
        """Gross earnings in CZK."""
        return self.hours(now) * self.hourly_rate

    def deduction(self, now: Optional[datetime] = None) -> Decimal:
        """Share of the earnings routed into the shared budget."""
        return self.earnings(now) * self.deduction_rate


# =============================================================================
# FINANCE RECORDS
# =============================================================================

class FinanceRecord(BaseModel):
    """
    A cash movement outside of work sessions.

    The amount is always positive; the sign is implied by `kind`.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    kind: EntryKind
    amount: Decimal = Field(..., gt=0)
    description: str = Field(default="", max_length=500)
    date: datetime
    category: str = Field(..., min_length=1, max_length=100)
    currency: Currency = Currency.CZK


# =============================================================================
# DEBTS
# =============================================================================

class Payment(BaseModel):
    """A partial or full settlement of a debt. Append-only."""

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal = Field(..., gt=0)
    date: datetime
    is_automatic: bool = False


class Debt(BaseModel):
    """
    An obligation from debtor to creditor.

    Common-expense debts in CZK are paid down automatically from the
    shared budget; everything else is settled by hand.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    creditor: str = Field(..., min_length=1, max_length=100)
    debtor: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0)
    description: str = Field(default="", max_length=500)
    currency: Currency = Currency.CZK
    due_date: Optional[date] = None
    is_common_expense: bool = True
    payments: list[Payment] = Field(default_factory=list)

    @property
    def paid_amount(self) -> Decimal:
        return sum((p.amount for p in self.payments), Decimal("0"))

    @property
    def remaining(self) -> Decimal:
        """Amount still owed. Never negative, even if over-paid."""
        return max(self.amount - self.paid_amount, Decimal("0"))

    @property
    def is_settled(self) -> bool:
        return self.remaining == 0


# =============================================================================
# SHARED BUDGET
# =============================================================================

class SharedBudget(BaseModel):
    """
    The pooled cash balance, one value per currency.

    CZK is authoritative for settlement. Only the settlement engine
    should call `adjust`.
    """

    czk: Decimal = Decimal("0")
    eur: Decimal = Decimal("0")
    usd: Decimal = Decimal("0")

    def balance(self, currency: Currency = Currency.CZK) -> Decimal:
        return getattr(self, currency.value.lower())

    def adjust(self, currency: Currency, delta: Decimal) -> Decimal:
        """Add `delta` (may be negative) and return the new balance."""
        field = currency.value.lower()
        setattr(self, field, getattr(self, field) + delta)
        return getattr(self, field)


# =============================================================================
# RESULT MODELS
# =============================================================================

class RentAccrual(BaseModel):
    """Outcome of one monthly rent check."""

    checked_on: date
    accrued: bool = Field(
        ...,
        description="Was a rent expense recorded by this check?"
    )
    reason: str = Field(
        ...,
        description="Why the check did or did not accrue rent"
    )
    record: Optional[FinanceRecord] = None
    debt: Optional[Debt] = Field(
        default=None,
        description="Debt created when the budget could not cover the rent"
    )

    @property
    def paid_from_budget(self) -> bool:
        return self.accrued and self.debt is None


class PersistenceFailure(BaseModel):
    """
    A snapshot key that could not be written or read.

    The in-memory state is never rolled back; callers use this to warn
    the user about unsaved changes.
    """

    key: str
    operation: str = Field(..., pattern="^(load|save)$")
    error_message: str
    occurred_at: datetime


class ValidationIssue(BaseModel):
    """A single problem found in user input."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'out_of_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$"
    )


class CurrencyTotals(BaseModel):
    """Income and expense totals for one currency."""

    currency: Currency
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


class LedgerSummary(BaseModel):
    """Read-only overview of all ledgers, for display."""

    generated_at: datetime
    session_count: int = Field(ge=0)
    total_duration: timedelta
    total_earnings: Decimal
    total_deductions: Decimal
    earnings_by_person: dict[str, Decimal] = Field(default_factory=dict)
    totals_by_currency: list[CurrencyTotals] = Field(default_factory=list)
    common_debt_total: Decimal = Decimal("0")
    common_debt_remaining: Decimal = Decimal("0")
    balance: SharedBudget

    def totals_for(self, currency: Currency) -> CurrencyTotals:
        for totals in self.totals_by_currency:
            if totals.currency == currency:
                return totals
        return CurrencyTotals(currency=currency)
