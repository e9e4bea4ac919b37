"""Tests for the settlement engine: reserve, priority, income offset, rent."""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from timetracker.models.ledger import Currency, EntryKind


@pytest.fixture
def time_ledger(ledgers):
    return ledgers[0]


@pytest.fixture
def finance_ledger(ledgers):
    return ledgers[1]


@pytest.fixture
def debt_ledger(ledgers):
    return ledgers[2]


class TestSettleDebts:
    """Tests for the automatic repayment pass."""

    def test_earliest_due_date_paid_first(self, engine, budget, debt_ledger, clock):
        """Test D2 (due in 2 days) is paid before D1 (due in 5 days)."""
        today = clock.today()
        d1 = debt_ledger.add("X", "Y", Decimal("1000"), "D1", due_date=today + timedelta(days=5))
        d2 = debt_ledger.add("X", "Y", Decimal("5000"), "D2", due_date=today + timedelta(days=2))
        budget.czk = Decimal("30000")

        payments = engine.settle_debts()

        # 5500 above the reserve: D2 in full, the rest to D1
        assert [p.amount for p in payments] == [Decimal("5000"), Decimal("500")]
        assert d2.remaining == Decimal("0")
        assert d1.remaining == Decimal("500")
        assert budget.czk == Decimal("24500")
        assert all(p.is_automatic for p in payments)

    def test_both_paid_when_funds_suffice(self, engine, budget, debt_ledger, clock):
        today = clock.today()
        d1 = debt_ledger.add("X", "Y", Decimal("1000"), "D1", due_date=today + timedelta(days=5))
        d2 = debt_ledger.add("X", "Y", Decimal("5000"), "D2", due_date=today + timedelta(days=2))
        budget.czk = Decimal("31000")

        engine.settle_debts()

        assert d1.is_settled and d2.is_settled
        assert budget.czk == Decimal("25000")

    def test_reserve_boundary_makes_no_payment(self, engine, budget, debt_ledger):
        """Test that the pass needs strictly more than the rent reserve."""
        debt = debt_ledger.add("X", "Y", Decimal("100"), "small")
        budget.czk = Decimal("24500")

        assert engine.settle_debts() == []
        assert debt.payments == []
        assert budget.czk == Decimal("24500")

    def test_smallest_first_on_equal_due_date(self, engine, budget, debt_ledger, clock):
        due = clock.today() + timedelta(days=3)
        big = debt_ledger.add("X", "Y", Decimal("3000"), "big", due_date=due)
        small = debt_ledger.add("X", "Y", Decimal("1000"), "small", due_date=due)
        budget.czk = Decimal("26000")

        engine.settle_debts()

        assert small.is_settled
        assert big.remaining == Decimal("2500")

    def test_missing_due_date_sorts_last(self, engine, budget, debt_ledger, clock):
        undated = debt_ledger.add("X", "Y", Decimal("100"), "undated")
        dated = debt_ledger.add("X", "Y", Decimal("5000"), "dated", due_date=clock.today() + timedelta(days=365))
        budget.czk = Decimal("29500")

        engine.settle_debts()

        assert dated.is_settled
        assert undated.payments == []

    def test_only_common_czk_debts(self, engine, budget, debt_ledger):
        personal = debt_ledger.add("X", "Y", Decimal("100"), "personal", is_common_expense=False)
        euro = debt_ledger.add("X", "Y", Decimal("100"), "euro", currency=Currency.EUR)
        budget.czk = Decimal("50000")

        assert engine.settle_debts() == []
        assert personal.payments == [] and euro.payments == []

    def test_balance_never_below_reserve_from_settlement(self, engine, budget, debt_ledger):
        for amount in ("700", "1200", "50000"):
            debt_ledger.add("X", "Y", Decimal(amount), "debt")
        budget.czk = Decimal("26000")

        engine.settle_debts()

        assert budget.czk == Decimal("24500")
        for debt in debt_ledger.debts:
            assert Decimal("0") <= debt.remaining <= debt.amount


class TestPostDeduction:
    """Tests for deductions feeding the shared budget."""

    def test_deduction_accumulates_below_reserve(self, engine, budget, debt_ledger):
        debt = debt_ledger.add("X", "Y", Decimal("100"), "debt")

        engine.post_deduction(Decimal("91.575"))

        assert budget.czk == Decimal("91.575")
        assert debt.payments == []

    def test_deduction_above_reserve_triggers_settlement(self, engine, budget, debt_ledger):
        debt = debt_ledger.add("X", "Y", Decimal("100"), "debt")
        budget.czk = Decimal("24450")

        payments = engine.post_deduction(Decimal("91.575"))

        assert [p.amount for p in payments] == [Decimal("41.575")]
        assert debt.remaining == Decimal("58.425")
        assert budget.czk == Decimal("24500")

    def test_reverse_deduction(self, engine, budget, time_ledger, clock):
        session = time_ledger.add_manual("A", "Wellness", clock.now(), clock.now() + timedelta(hours=1))
        budget.czk = Decimal("100")

        assert engine.reverse_deduction(session) == Decimal("91.575")
        assert budget.czk == Decimal("8.425")


class TestIncomeOffset:
    """Tests for offsetting CZK income against today's earnings."""

    def test_offset_applied_when_earned_today(self, engine, budget, time_ledger, clock):
        time_ledger.add_manual("A", "Wellness", clock.now(), clock.now() + timedelta(hours=1))
        budget.czk = Decimal("1000")

        assert engine.offset_today_earnings(Decimal("275")) is True
        assert budget.czk == Decimal("725")

    def test_offset_skipped_when_not_earned(self, engine, budget, time_ledger, clock):
        time_ledger.add_manual("A", "Wellness", clock.now(), clock.now() + timedelta(hours=1))
        budget.czk = Decimal("1000")

        assert engine.offset_today_earnings(Decimal("275.01")) is False
        assert budget.czk == Decimal("1000")

    def test_yesterdays_work_does_not_count(self, engine, budget, time_ledger, clock):
        yesterday = clock.now() - timedelta(days=1)
        time_ledger.add_manual("B", "Marketing", yesterday, yesterday + timedelta(hours=5))

        assert engine.offset_today_earnings(Decimal("100")) is False
        assert budget.czk == Decimal("0")


class TestMonthlyRent:
    """Tests for rent accrual on the first day of the month."""

    FIRST = datetime(2026, 11, 1, 9, 0, tzinfo=timezone.utc)

    def test_shortfall_creates_debt(self, engine, budget, finance_ledger, debt_ledger, clock):
        """Test rent with only 10000 in the budget becomes a debt."""
        clock.set(self.FIRST)
        budget.czk = Decimal("10000")

        outcome = engine.accrue_monthly_rent()

        assert outcome.accrued is True
        assert budget.czk == Decimal("10000")
        record = finance_ledger.records[-1]
        assert record.kind == EntryKind.EXPENSE
        assert record.amount == Decimal("24500")
        assert record.category == "Rent"
        assert record.currency == Currency.CZK
        assert record.description == "Rent for November 2026"

        debt = outcome.debt
        assert debt in debt_ledger.debts
        assert debt.amount == Decimal("24500")
        assert debt.due_date == date(2026, 11, 1)
        assert debt.is_common_expense is True
        assert debt.creditor == "Landlord"
        assert outcome.paid_from_budget is False

    def test_paid_from_budget(self, engine, budget, debt_ledger, clock):
        clock.set(self.FIRST)
        budget.czk = Decimal("30000")

        outcome = engine.accrue_monthly_rent()

        assert outcome.paid_from_budget is True
        assert budget.czk == Decimal("5500")
        assert debt_ledger.debts == []

    def test_exact_rent_is_paid(self, engine, budget, clock):
        clock.set(self.FIRST)
        budget.czk = Decimal("24500")

        engine.accrue_monthly_rent()

        assert budget.czk == Decimal("0")

    def test_only_on_first_day(self, engine, budget, finance_ledger, clock):
        clock.set(self.FIRST + timedelta(days=1))
        budget.czk = Decimal("30000")

        outcome = engine.accrue_monthly_rent()

        assert outcome.accrued is False
        assert finance_ledger.records == []
        assert budget.czk == Decimal("30000")

    def test_once_per_month(self, engine, budget, finance_ledger, debt_ledger, clock):
        """Test a second activation in the same month does nothing."""
        clock.set(self.FIRST)
        engine.accrue_monthly_rent()
        clock.advance(timedelta(hours=5))

        outcome = engine.accrue_monthly_rent()

        assert outcome.accrued is False
        assert len(finance_ledger.records) == 1
        assert len(debt_ledger.debts) == 1

    def test_rent_recorded_earlier_in_month_blocks_accrual(self, engine, finance_ledger, clock):
        clock.set(self.FIRST + timedelta(days=3))
        finance_ledger.add(EntryKind.EXPENSE, Decimal("24500"), "Rent paid early", "Rent")
        clock.set(self.FIRST)

        assert engine.accrue_monthly_rent().accrued is False

    def test_explicit_day_argument(self, engine, finance_ledger, clock):
        outcome = engine.accrue_monthly_rent(date(2026, 12, 1))

        assert outcome.accrued is True
        assert finance_ledger.records[-1].date.date() == date(2026, 12, 1)

    def test_rent_debt_not_paid_in_same_call(self, engine, budget, debt_ledger, clock):
        clock.set(self.FIRST)
        budget.czk = Decimal("20000")

        engine.accrue_monthly_rent()

        assert debt_ledger.debts[0].payments == []
        assert budget.czk >= 0


class TestEndToEnd:
    """Timer to balance to settlement."""

    def test_one_hour_session_posts_deduction(self, engine, budget, time_ledger, debt_ledger, clock):
        """Test 1h for A at 275/h and 33.3% moves 91.575 into the budget."""
        time_ledger.set_finalized_hook(lambda s: engine.post_deduction(s.deduction(), s.id))
        debt = debt_ledger.add("X", "Y", Decimal("500"), "common")
        budget.czk = Decimal("24450")

        time_ledger.start("A", "Wellness")
        clock.advance(timedelta(seconds=3600))
        session = time_ledger.stop()

        assert session.earnings() == Decimal("275")
        assert session.deduction() == Decimal("91.575")
        # 24541.575 exceeds the reserve by 41.575, which goes to the debt
        assert debt.remaining == Decimal("458.425")
        assert budget.czk == Decimal("24500")
