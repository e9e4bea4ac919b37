"""
Finance Ledger

Append-style list of income and expense records in CZK, EUR or USD.
"""

from decimal import Decimal
from typing import Iterable, Optional

from timetracker.clock import Clock
from timetracker.models.ledger import Currency, EntryKind, FinanceRecord


class FinanceLedger:
    """Income/expense records outside of work sessions."""

    def __init__(self, clock: Clock, records: Optional[Iterable[FinanceRecord]] = None):
        self._clock = clock
        self._records: list[FinanceRecord] = list(records or ())

    @property
    def records(self) -> list[FinanceRecord]:
        return list(self._records)

    def add(
        self,
        kind: EntryKind,
        amount: Decimal,
        description: str,
        category: str,
        currency: Currency = Currency.CZK,
    ) -> FinanceRecord:
        """Append a record dated now."""
        record = FinanceRecord(
            kind=kind,
            amount=amount,
            description=description,
            date=self._clock.now(),
            category=category,
            currency=currency,
        )
        return self.append(record)

    def append(self, record: FinanceRecord) -> FinanceRecord:
        self._records.append(record)
        return record

    def has_expense_in_month(self, category: str, year: int, month: int) -> bool:
        """Is there already an expense of this category in the given month?"""
        return any(
            r.kind == EntryKind.EXPENSE
            and r.category == category
            and r.date.year == year
            and r.date.month == month
            for r in self._records
        )

    def filter(
        self,
        kind: Optional[EntryKind] = None,
        currency: Optional[Currency] = None,
    ) -> list[FinanceRecord]:
        return [
            r for r in self._records
            if (kind is None or r.kind == kind)
            and (currency is None or r.currency == currency)
        ]
