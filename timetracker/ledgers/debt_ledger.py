"""
Debt Ledger

Owns debts and the payments applied against them.

Payments are append-only. `append_payment` refuses to pay more than
what remains, so `0 <= remaining <= amount` holds for every debt.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from timetracker.clock import Clock
from timetracker.ledgers.errors import NotFoundError
from timetracker.models.ledger import Currency, Debt, Payment


class DebtLedger:
    """Debt obligations keyed by id, in insertion order."""

    def __init__(self, clock: Clock, debts: Optional[Iterable[Debt]] = None):
        self._clock = clock
        self._debts: dict[UUID, Debt] = {d.id: d for d in debts or ()}

    @property
    def debts(self) -> list[Debt]:
        return list(self._debts.values())

    def get(self, debt_id: UUID) -> Debt:
        try:
            return self._debts[debt_id]
        except KeyError:
            raise NotFoundError(f"Debt not found: {debt_id}")

    def add(
        self,
        creditor: str,
        debtor: str,
        amount: Decimal,
        description: str,
        currency: Currency = Currency.CZK,
        due_date: Optional[date] = None,
        is_common_expense: bool = True,
    ) -> Debt:
        debt = Debt(
            creditor=creditor,
            debtor=debtor,
            amount=amount,
            description=description,
            currency=currency,
            due_date=due_date,
            is_common_expense=is_common_expense,
        )
        self._debts[debt.id] = debt
        return debt

    def remove(self, debt_id: UUID) -> Debt:
        debt = self.get(debt_id)
        del self._debts[debt_id]
        return debt

    def remaining(self, debt_id: UUID) -> Decimal:
        return self.get(debt_id).remaining

    def append_payment(
        self,
        debt_id: UUID,
        amount: Decimal,
        automatic: bool = False,
    ) -> Payment:
        """
        Record a payment dated now.

        Raises:
            NotFoundError: unknown debt id
            ValueError: amount not positive or larger than what remains
        """
        debt = self.get(debt_id)
        if amount <= 0:
            raise ValueError("Payment amount must be positive")
        if amount > debt.remaining:
            raise ValueError(
                f"Payment of {amount} exceeds remaining {debt.remaining} on debt {debt_id}"
            )

        payment = Payment(amount=amount, date=self._clock.now(), is_automatic=automatic)
        debt.payments.append(payment)
        return payment

    def settlement_candidates(self) -> list[UUID]:
        """
        Ids of debts eligible for automatic repayment, in payment order.

        Eligible: common expense, CZK, something left to pay.
        Order: earliest due date first (no due date sorts last),
        then smallest remaining amount.
        """
        eligible = [
            d for d in self._debts.values()
            if d.is_common_expense and d.currency == Currency.CZK and d.remaining > 0
        ]
        eligible.sort(key=lambda d: (d.due_date or date.max, d.remaining))
        return [d.id for d in eligible]
