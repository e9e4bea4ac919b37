"""
Settlement Engine

The only component that reads and writes more than one ledger.

Priority policy, applied every time money enters the shared budget:
1. Keep the rent reserve (RENT_AMOUNT CZK) untouched
2. Pay down common CZK debts, earliest due date first, smallest first on ties
3. Otherwise let the balance accumulate

CRITICAL: Neither `settle_debts` nor `accrue_monthly_rent` can push the
CZK balance below zero. A rent shortfall becomes a debt instead.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional
from uuid import UUID

from timetracker.audit import AuditLogger
from timetracker.clock import Clock
from timetracker.config.settings import LedgerSettings
from timetracker.ledgers import DebtLedger, FinanceLedger, NotFoundError, TimeLedger
from timetracker.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from timetracker.models.ledger import (
    Currency,
    EntryKind,
    FinanceRecord,
    Payment,
    RentAccrual,
    SharedBudget,
    WorkSession,
)


class SettlementEngine:
    """
    Applies the settlement rules to the shared budget and the ledgers.

    The time ledger is only read (for today's earnings).
    """

    def __init__(
        self,
        budget: SharedBudget,
        time_ledger: TimeLedger,
        finance_ledger: FinanceLedger,
        debt_ledger: DebtLedger,
        clock: Clock,
        settings: LedgerSettings,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._budget = budget
        self._time = time_ledger
        self._finance = finance_ledger
        self._debts = debt_ledger
        self._clock = clock
        self._settings = settings
        self._audit_logger = audit_logger

    @property
    def rent_amount(self) -> Decimal:
        return self._settings.rent_amount

    @property
    def balance(self) -> Decimal:
        return self._budget.czk

    # -------------------------------------------------------------------------
    # Deductions
    # -------------------------------------------------------------------------

    def post_deduction(self, amount: Decimal, session_id: Optional[UUID] = None) -> list[Payment]:
        """Add a session's deduction to the budget, then run a settlement pass."""
        balance = self._budget.adjust(Currency.CZK, amount)
        self._audit(AuditEventBuilder.budget_changed(
            AuditEventType.DEDUCTION_POSTED, amount, balance, entity_id=session_id,
        ))
        return self.settle_debts()

    def reverse_deduction(self, session: WorkSession) -> Decimal:
        """
        Take back the deduction a session posted earlier.

        Payments already made from it stay; the balance may go below zero.
        """
        amount = session.deduction()
        balance = self._budget.adjust(Currency.CZK, -amount)
        self._audit(AuditEventBuilder.budget_changed(
            AuditEventType.DEDUCTION_REVERSED, amount, balance, entity_id=session.id,
        ))
        return amount

    # -------------------------------------------------------------------------
    # Settlement pass
    # -------------------------------------------------------------------------

    def settle_debts(self) -> list[Payment]:
        """
        Pay eligible debts from whatever exceeds the rent reserve.

        The candidate order is fixed at the start of the pass; each id is
        looked up again before paying. The pass does not re-trigger itself.
        """
        reserve = self.rent_amount
        if self._budget.czk <= reserve:
            return []

        payments: list[Payment] = []
        for debt_id in self._debts.settlement_candidates():
            try:
                remaining = self._debts.remaining(debt_id)
            except NotFoundError:
                continue

            available = self._budget.czk - reserve
            amount = min(available, remaining)
            if amount <= 0:
                continue

            payment = self._debts.append_payment(debt_id, amount, automatic=True)
            balance = self._budget.adjust(Currency.CZK, -amount)
            payments.append(payment)
            self._audit(AuditEventBuilder.payment(
                debt_id, amount, remaining - amount, automatic=True, balance=balance,
            ))

        return payments

    # -------------------------------------------------------------------------
    # Income offset
    # -------------------------------------------------------------------------

    def offset_today_earnings(self, amount: Decimal) -> bool:
        """
        Treat a CZK income as the client paying for today's work.

        Only applied when today's recorded earnings cover the amount;
        otherwise the income is recorded but the balance is untouched.
        """
        today = self._clock.today()
        earned = self._time.earnings_on(today)

        if earned >= amount:
            balance = self._budget.adjust(Currency.CZK, -amount)
            self._audit(AuditEventBuilder.budget_changed(
                AuditEventType.INCOME_OFFSET_APPLIED, amount, balance,
            ))
            return True

        self._audit(AuditEventBuilder.budget_changed(
            AuditEventType.INCOME_OFFSET_SKIPPED,
            amount,
            self._budget.czk,
            reason=f"earned {earned:.2f} CZK on {today.isoformat()}",
        ))
        return False

    # -------------------------------------------------------------------------
    # Monthly rent
    # -------------------------------------------------------------------------

    def accrue_monthly_rent(self, today: Optional[date] = None) -> RentAccrual:
        """
        Record this month's rent on the first day of the month.

        At most one rent expense per (year, month). Paid from the budget
        when it holds at least the rent, otherwise owed to the landlord.
        """
        moment = self._clock.now()
        today = today or moment.date()

        if today.day != 1:
            return RentAccrual(checked_on=today, accrued=False, reason="not the first day of the month")

        category = self._settings.rent_category
        if self._finance.has_expense_in_month(category, today.year, today.month):
            return RentAccrual(checked_on=today, accrued=False, reason="rent already recorded this month")

        if moment.date() != today:
            moment = datetime.combine(today, time.min, tzinfo=moment.tzinfo)

        rent = self.rent_amount
        month = today.strftime("%B %Y")
        record = self._finance.append(FinanceRecord(
            kind=EntryKind.EXPENSE,
            amount=rent,
            description=f"Rent for {month}",
            date=moment,
            category=category,
            currency=Currency.CZK,
        ))

        if self._budget.czk >= rent:
            balance = self._budget.adjust(Currency.CZK, -rent)
            self._audit(AuditEventBuilder.rent_accrued(record.id, rent, month, balance))
            return RentAccrual(checked_on=today, accrued=True, reason="paid from shared budget", record=record)

        debt = self._debts.add(
            creditor=self._settings.landlord,
            debtor=self._settings.shared_debtor,
            amount=rent,
            description=record.description,
            currency=Currency.CZK,
            due_date=today,
            is_common_expense=True,
        )
        self._audit(AuditEventBuilder.rent_accrued(
            record.id, rent, month, self._budget.czk, debt_id=debt.id,
        ))
        return RentAccrual(
            checked_on=today,
            accrued=True,
            reason="shared budget too low, rent owed",
            record=record,
            debt=debt,
        )

    def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger:
            self._audit_logger.log(event)
