"""
Streamlit Frontend for Time Tracker

The screen the household uses every day: start and stop the timer,
record income and expenses, keep track of who owes what.

DESIGN PRINCIPLES:
1. The UI holds no business rules; it only calls LedgerStore
2. Text input is parsed at the boundary before reaching the store
3. Every unsaved change is shown, never hidden
4. The running timer display only reads state
"""

from datetime import date, datetime, time

import streamlit as st

from timetracker.ledgers import NotFoundError
from timetracker.models.ledger import Currency, EntryKind
from timetracker.orchestrator import LedgerStore, create_app_components
from timetracker.validation import (
    InvalidInputError,
    parse_amount,
    parse_optional_amount,
    parse_rate,
    parse_session_edit,
)


st.set_page_config(
    page_title="Time Tracker",
    page_icon="⏱️",
    layout="wide",
    initial_sidebar_state="expanded",
)


def czk(amount) -> str:
    return f"{amount:,.0f} Kč".replace(",", " ")


def hms(delta) -> str:
    seconds = int(delta.total_seconds())
    return f"{seconds // 3600:02d}:{seconds % 3600 // 60:02d}:{seconds % 60:02d}"


@st.cache_resource
def get_store() -> LedgerStore:
    """Get or create the ledger store (cached for the whole server)."""
    try:
        store, _ = create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize storage: {e}")
        store, _ = create_app_components(use_storage=False)
    return store


def show_persistence_warnings(store: LedgerStore) -> None:
    if store.load_failures:
        keys = ", ".join(f.key for f in store.load_failures)
        st.sidebar.warning(f"Some saved data could not be loaded and started empty: {keys}")
    if store.has_unsaved_changes:
        keys = ", ".join(f.key for f in store.persistence_failures)
        st.sidebar.error(f"Changes are not saved ({keys}).")
        if st.sidebar.button("🔁 Retry save"):
            if not store.save():
                st.sidebar.success("Saved.")


@st.fragment(run_every=1)
def running_timer(store: LedgerStore) -> None:
    """Refreshes every second; reads the open session only."""
    active = store.time.active
    if active is None:
        st.info("No timer running.")
        return
    elapsed = store.elapsed()
    st.metric(f"{active.person} - {active.activity}", hms(elapsed))
    st.caption(f"Earned so far: {czk(active.earnings(store.clock.now()))}")


def render_time_page(store: LedgerStore) -> None:
    settings = store.settings
    st.title("⏱️ Time Tracking")

    running_timer(store)

    col1, col2 = st.columns(2)
    with col1:
        person = st.selectbox("Person", settings.people)
        activity = st.selectbox("Activity", settings.activities)
        subcategory = st.text_input("Subcategory (optional)")
        note = st.text_input("Note (optional)")
    with col2:
        st.markdown(
            f"Rate: **{settings.rate_for(person)} Kč/h**, "
            f"deduction: **{settings.deduction_for(person) * 100:.1f} %**"
        )
        if st.button("▶️ Start", type="primary"):
            store.start_timer(person, activity, subcategory or None, note or None)
            st.rerun()
        if st.button("⏹️ Stop", disabled=not store.time.is_running):
            session = store.stop_timer()
            if session:
                st.success(f"Recorded {czk(session.earnings())}, {czk(session.deduction())} to shared budget")
            st.rerun()

    with st.expander("➕ Add time manually"):
        with st.form("manual_session"):
            m_person = st.selectbox("Person", settings.people, key="m_person")
            m_activity = st.selectbox("Activity", settings.activities, key="m_activity")
            m_day = st.date_input("Day", value=date.today())
            m_start = st.time_input("From", value=time(9, 0))
            m_end = st.time_input("To", value=time(10, 0))
            m_rate = st.text_input("Hourly rate (blank = default)")
            m_deduction = st.text_input("Deduction (blank = default, e.g. 33.3%)")
            if st.form_submit_button("Save"):
                try:
                    tz = store.clock.now().tzinfo
                    store.add_manual_session(
                        m_person,
                        m_activity,
                        datetime.combine(m_day, m_start, tzinfo=tz),
                        datetime.combine(m_day, m_end, tzinfo=tz),
                        hourly_rate=parse_optional_amount(m_rate, "hourly rate"),
                        deduction_rate=parse_rate(m_deduction, "deduction") if m_deduction.strip() else None,
                    )
                    st.success("Session saved.")
                except InvalidInputError as e:
                    st.error(str(e))
                except ValueError as e:
                    st.error(f"Invalid session: {e}")

    st.subheader("Recent sessions")
    for session in store.recent_sessions(10):
        cols = st.columns([3, 2, 2, 1])
        cols[0].write(f"**{session.person}** - {session.activity}")
        cols[1].write(session.start.strftime("%d.%m.%Y %H:%M"))
        cols[2].write(f"{hms(session.duration())} · {czk(session.earnings())}")
        if cols[3].button("🗑️", key=f"del-{session.id}"):
            try:
                store.delete_session(session.id)
            except NotFoundError:
                st.warning("That session was already removed.")
            st.rerun()
        with st.expander("✏️ Edit"):
            render_edit_form(store, session)


def render_edit_form(store: LedgerStore, session) -> None:
    """Edit form for one finalized session; the old deduction is reversed."""
    settings = store.settings
    key = str(session.id)
    tz = session.start.tzinfo
    with st.form(f"edit-{key}"):
        people = settings.people if session.person in settings.people else [session.person, *settings.people]
        activities = (
            settings.activities if session.activity in settings.activities
            else [session.activity, *settings.activities]
        )
        person = st.selectbox("Person", people, index=people.index(session.person), key=f"e-person-{key}")
        activity = st.selectbox(
            "Activity", activities, index=activities.index(session.activity), key=f"e-activity-{key}",
        )
        day = st.date_input("Day", value=session.start.date(), key=f"e-day-{key}")
        start = st.time_input("From", value=session.start.time(), key=f"e-from-{key}")
        end = st.time_input("To", value=session.end.time(), key=f"e-to-{key}")
        rate_text = st.text_input("Hourly rate", value=str(session.hourly_rate), key=f"e-rate-{key}")
        deduction_text = st.text_input(
            "Deduction", value=f"{session.deduction_rate * 100}%", key=f"e-ded-{key}",
        )
        note = st.text_input("Note", value=session.note or "", key=f"e-note-{key}")
        if st.form_submit_button("Save changes"):
            try:
                changes = parse_session_edit(
                    person, activity, day, start, end, tz, rate_text, deduction_text, note,
                )
                store.edit_session(session.id, **changes)
            except InvalidInputError as e:
                st.error(str(e))
            except NotFoundError:
                st.warning("That session was already removed.")
            except ValueError as e:
                st.error(f"Invalid session: {e}")
            else:
                st.rerun()


def render_finance_page(store: LedgerStore) -> None:
    settings = store.settings
    st.title("💰 Finance")

    budget = store.budget
    c1, c2, c3 = st.columns(3)
    c1.metric("Shared budget (CZK)", czk(budget.czk))
    c2.metric("EUR", f"{budget.eur:,.2f} €")
    c3.metric("USD", f"{budget.usd:,.2f} $")
    reserve = settings.rent_amount
    st.progress(min(float(budget.czk / reserve), 1.0) if budget.czk > 0 else 0.0,
                text=f"Rent reserve {czk(min(budget.czk, reserve))} / {czk(reserve)}")

    # Outside the form so the category list follows the chosen type
    kind = st.radio("Type", list(EntryKind), format_func=lambda k: k.value.capitalize(), horizontal=True)
    with st.form("finance_record"):
        categories = settings.income_categories if kind == EntryKind.INCOME else settings.expense_categories
        category = st.selectbox("Category", categories)
        amount_text = st.text_input("Amount")
        currency = st.selectbox("Currency", list(Currency), format_func=lambda c: c.value)
        description = st.text_input("Description")
        if st.form_submit_button("Add"):
            try:
                store.add_finance_record(kind, parse_amount(amount_text), description, category, currency)
                st.success("Record added.")
            except InvalidInputError as e:
                st.error(str(e))

    st.subheader("Records")
    rows = [
        {
            "date": r.date.strftime("%d.%m.%Y"),
            "type": r.kind.value,
            "category": r.category,
            "amount": f"{r.amount} {r.currency.value}",
            "description": r.description,
        }
        for r in sorted(store.finance.records, key=lambda r: r.date, reverse=True)
    ]
    st.dataframe(rows, use_container_width=True)


def render_debts_page(store: LedgerStore) -> None:
    st.title("📒 Debts")
    summary = store.summary()
    c1, c2 = st.columns(2)
    c1.metric("Common debts", czk(summary.common_debt_total))
    c2.metric("Still to pay", czk(summary.common_debt_remaining))

    with st.expander("➕ Add debt"):
        with st.form("debt"):
            creditor = st.text_input("Creditor")
            debtor = st.text_input("Debtor")
            amount_text = st.text_input("Amount")
            currency = st.selectbox("Currency", list(Currency), format_func=lambda c: c.value)
            description = st.text_input("Description")
            has_due = st.checkbox("Has due date")
            due = st.date_input("Due date", value=date.today())
            common = st.checkbox("Common expense (paid from shared budget)", value=True)
            if st.form_submit_button("Add"):
                try:
                    store.add_debt(
                        creditor,
                        debtor,
                        parse_amount(amount_text),
                        description,
                        currency=currency,
                        due_date=due if has_due else None,
                        is_common_expense=common,
                    )
                    st.success("Debt added.")
                except InvalidInputError as e:
                    st.error(str(e))
                except ValueError as e:
                    st.error(f"Invalid debt: {e}")

    debts = sorted(store.debts.debts, key=lambda d: (d.due_date or date.max, d.remaining))
    for debt in debts:
        with st.container(border=True):
            cols = st.columns([3, 2, 2])
            cols[0].markdown(f"**{debt.description or debt.creditor}**  \n{debt.debtor} → {debt.creditor}")
            cols[1].write(f"{debt.remaining} / {debt.amount} {debt.currency.value}")
            if debt.due_date:
                cols[2].write(f"Due {debt.due_date.strftime('%d.%m.%Y')}")
            if debt.is_common_expense:
                st.caption("Common expense")
            if debt.payments:
                with st.expander("Payment history"):
                    for p in debt.payments:
                        marker = "⚙️ automatic" if p.is_automatic else "manual"
                        st.write(f"{p.date.strftime('%d.%m.%Y')} · {p.amount} · {marker}")
            if debt.remaining > 0:
                pay_text = st.text_input("Pay amount", key=f"pay-{debt.id}")
                if st.button("Pay", key=f"pay-btn-{debt.id}"):
                    try:
                        store.pay_debt(debt.id, parse_amount(pay_text))
                        st.rerun()
                    except (InvalidInputError, ValueError) as e:
                        st.error(str(e))


def render_summary_page(store: LedgerStore) -> None:
    st.title("📊 Summary")
    summary = store.summary()
    czk_totals = summary.totals_for(Currency.CZK)

    c1, c2, c3 = st.columns(3)
    c1.metric("Time tracked", hms(summary.total_duration))
    c2.metric("Earnings", czk(summary.total_earnings))
    c3.metric("Deductions", czk(summary.total_deductions))
    c1.metric("Income (CZK)", czk(czk_totals.income))
    c2.metric("Expenses (CZK)", czk(czk_totals.expenses))
    c3.metric("Debts remaining", czk(summary.common_debt_remaining))

    if summary.earnings_by_person:
        st.subheader("Earnings by person")
        st.bar_chart({person: float(v) for person, v in summary.earnings_by_person.items()})

    st.subheader("Recent automatic activity")
    for event in store.audit_logger.recent(10):
        st.caption(f"{event.timestamp.strftime('%d.%m. %H:%M')} · {event.description}")


def render_settings_page(store: LedgerStore) -> None:
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    from timetracker.config import get_settings, validate_all_settings

    status = validate_all_settings()
    backend = get_settings().storage.backend

    sections = [
        ("Ledger policy", "ledger"),
        (f"Storage ({backend})", "storage"),
    ]
    if backend == "google_sheets":
        sections.append(("Google Sheets (Storage)", "google_sheets"))

    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Policy")
    settings = store.settings
    st.markdown(f"Rent reserve: **{czk(settings.rent_amount)}**, owed to **{settings.landlord}** on a shortfall")
    for person in settings.people:
        st.markdown(
            f"- {person}: {settings.rate_for(person)} Kč/h, "
            f"{settings.deduction_for(person) * 100:.1f} % to shared budget"
        )
    st.markdown(
        "To change these, create a `.env` file with `TIMETRACKER_` variables, "
        'e.g. `TIMETRACKER_DEFAULT_RATES={"Marty": 420}`.'
    )


def main():
    """Main application entry point."""
    store = get_store()
    store.ensure_activated()

    st.sidebar.title("⏱️ Time Tracker")
    st.sidebar.markdown("---")
    page = st.sidebar.radio(
        "Navigate to:",
        ["⏱️ Time", "💰 Finance", "📒 Debts", "📊 Summary", "⚙️ Settings"],
        index=0,
    )
    show_persistence_warnings(store)

    if page == "⏱️ Time":
        render_time_page(store)
    elif page == "💰 Finance":
        render_finance_page(store)
    elif page == "📒 Debts":
        render_debts_page(store)
    elif page == "📊 Summary":
        render_summary_page(store)
    else:
        render_settings_page(store)


if __name__ == "__main__":
    main()
