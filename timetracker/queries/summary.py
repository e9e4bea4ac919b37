"""
Ledger Summaries

Read-only totals for the overview screens. Nothing here mutates a
ledger or the shared budget; open sessions are left out of the totals
until they are stopped.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from timetracker.clock import Clock
from timetracker.ledgers import DebtLedger, FinanceLedger, TimeLedger
from timetracker.models.ledger import (
    Currency,
    CurrencyTotals,
    EntryKind,
    LedgerSummary,
    SharedBudget,
    WorkSession,
)


class SummaryBuilder:
    """Builds LedgerSummary values from the current ledgers."""

    def __init__(
        self,
        time_ledger: TimeLedger,
        finance_ledger: FinanceLedger,
        debt_ledger: DebtLedger,
        budget: SharedBudget,
        clock: Clock,
    ):
        self._time = time_ledger
        self._finance = finance_ledger
        self._debts = debt_ledger
        self._budget = budget
        self._clock = clock

    def build(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> LedgerSummary:
        """
        Summarize sessions and finance records in an optional date range.

        Debts and the balance are always reported as of now.
        """
        now = self._clock.now()

        def in_range(day: date) -> bool:
            if date_from and day < date_from:
                return False
            if date_to and day > date_to:
                return False
            return True

        sessions = [s for s in self._time.sessions if in_range(s.start.date())]
        records = [r for r in self._finance.records if in_range(r.date.date())]

        totals = {c: CurrencyTotals(currency=c) for c in Currency}
        for record in records:
            bucket = totals[record.currency]
            if record.kind == EntryKind.INCOME:
                bucket.income += record.amount
            else:
                bucket.expenses += record.amount

        common = [
            d for d in self._debts.debts
            if d.is_common_expense and d.currency == Currency.CZK
        ]

        return LedgerSummary(
            generated_at=now,
            session_count=len(sessions),
            total_duration=sum((s.duration(now) for s in sessions), timedelta(0)),
            total_earnings=sum((s.earnings(now) for s in sessions), Decimal("0")),
            total_deductions=sum((s.deduction(now) for s in sessions), Decimal("0")),
            earnings_by_person=self.earnings_by_person(sessions),
            totals_by_currency=list(totals.values()),
            common_debt_total=sum((d.amount for d in common), Decimal("0")),
            common_debt_remaining=sum((d.remaining for d in common), Decimal("0")),
            balance=self._budget.model_copy(),
        )

    def earnings_by_person(self, sessions: Optional[list[WorkSession]] = None) -> dict[str, Decimal]:
        now = self._clock.now()
        result: dict[str, Decimal] = {}
        for session in sessions if sessions is not None else self._time.sessions:
            result[session.person] = result.get(session.person, Decimal("0")) + session.earnings(now)
        return result

    def recent_sessions(self, limit: int = 10) -> list[WorkSession]:
        """Newest sessions first, by start time."""
        return sorted(self._time.sessions, key=lambda s: s.start, reverse=True)[:limit]
