"""
Streamlit Frontend for Finance Dashboard

The dashboard people open to check the money they logged through
WhatsApp (or typed in directly): monthly totals, a category chart,
the list of transactions, and the forms to fix them.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation before anything is deleted
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions

Every handler returns a Notification; the UI only renders them.
Components live in st.session_state so each browser session gets its
own backend client (and its own auth session).
"""

import asyncio
from datetime import date

import plotly.express as px
import streamlit as st

from src.analytics import filter_transactions, list_categories
from src.config import get_settings, validate_all_settings
from src.models import (
    Notification,
    NotificationVariant,
    Transaction,
    TransactionFormValues,
    TransactionType,
)
from src.orchestrator import AuthFlow, DashboardFlow, SessionFlow, create_app_components
from src.parsing import (
    format_currency,
    format_display_date,
    format_signed_currency,
    parse_timestamp,
)
from src.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="Finance Dashboard",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_components() -> tuple[AuthFlow, SessionFlow, DashboardFlow]:
    """Get or create this browser session's components."""
    if "components" not in st.session_state:
        auth_flow, session_flow, dashboard_flow, _ = create_app_components(use_storage=True)
        st.session_state.components = (auth_flow, session_flow, dashboard_flow)
    return st.session_state.components


def notify(notification: Notification, persist: bool = False) -> None:
    """Render a notification now, or after the next rerun when `persist` is set."""
    if persist:
        st.session_state.setdefault("flash", []).append(notification)
        return

    text = f"**{notification.title}**"
    if notification.description:
        text += f"  \n{notification.description}"

    if notification.variant is NotificationVariant.SUCCESS:
        st.success(text)
    elif notification.variant is NotificationVariant.ERROR:
        st.error(text)
    else:
        st.info(text)


def render_flash() -> None:
    """Show notifications queued before the last rerun."""
    for notification in st.session_state.pop("flash", []):
        notify(notification)


def main():
    """Main application entry point."""
    status = validate_all_settings()
    if not status.get("supabase", False):
        render_settings_page(status)
        st.stop()

    try:
        auth_flow, session_flow, dashboard_flow = get_components()
    except StorageError as e:
        status["supabase"] = False
        status["supabase_error"] = str(e)
        render_settings_page(status)
        st.stop()
    render_flash()

    if st.query_params.get("type") == "recovery" or st.session_state.get("recovering"):
        render_recovery_page(auth_flow)
        return

    if dashboard_flow.state.context is None:
        context, notification = run_async(session_flow.bootstrap())
        if notification:
            notify(notification)
        if context is None:
            render_auth_page(auth_flow)
            return
        load_error = run_async(dashboard_flow.load(context))
        if load_error:
            notify(load_error)

    # Sidebar navigation
    context = dashboard_flow.state.context
    st.sidebar.title("💰 Finance Dashboard")
    st.sidebar.markdown(f"Signed in as **{context.full_name or context.email or context.user_id}**")
    if context.is_admin:
        st.sidebar.caption(f"Admin account · {context.phone_e164 or 'no linked number'}")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "➕ New Transaction", "📋 Transactions", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🔄 Refresh"):
        notification = run_async(dashboard_flow.load())
        if notification:
            notify(notification)
    if st.sidebar.button("🚪 Sign out"):
        notify(run_async(auth_flow.sign_out()), persist=True)
        dashboard_flow.state.clear()
        st.rerun()

    if dashboard_flow.state.identifier_missing:
        st.markdown("""
        <div class="warning-box">
            <h4>⚠️ WhatsApp number not linked</h4>
            <p>Your admin account has no linked number, so there are no
            transactions to show. Link a number and refresh.</p>
        </div>
        """, unsafe_allow_html=True)

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(dashboard_flow)
    elif page == "➕ New Transaction":
        render_create_page(dashboard_flow)
    elif page == "📋 Transactions":
        render_transactions_page(dashboard_flow)
    elif page == "⚙️ Settings":
        render_settings_page(status)


def render_auth_page(auth_flow: AuthFlow):
    """Render sign in, sign up and password reset."""
    st.title("💰 Finance Dashboard")

    sign_in_tab, sign_up_tab, reset_tab = st.tabs(["Sign in", "Create account", "Forgot password"])

    with sign_in_tab:
        with st.form("sign_in"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary")
        if submitted:
            user, notification = run_async(auth_flow.sign_in(email, password))
            if user is None:
                notify(notification)
            else:
                notify(notification, persist=True)
                st.rerun()

    with sign_up_tab:
        with st.form("sign_up"):
            full_name = st.text_input("Full name")
            email = st.text_input("Email", key="sign_up_email")
            password = st.text_input("Password", type="password", key="sign_up_password")
            submitted = st.form_submit_button("Create account", type="primary")
        if submitted:
            notify(run_async(auth_flow.sign_up(email, password, full_name)))

    with reset_tab:
        with st.form("reset"):
            email = st.text_input("Email", key="reset_email")
            submitted = st.form_submit_button("Send reset link")
        if submitted:
            notify(run_async(auth_flow.request_password_reset(email)))


def render_recovery_page(auth_flow: AuthFlow):
    """Render the new-password form opened from a recovery link."""
    st.title("🔑 Choose a new password")

    if not st.session_state.get("recovering"):
        user, notification = run_async(
            auth_flow.restore_recovery_session(st.query_params.get("token_hash", ""))
        )
        notify(notification)
        if user is None:
            if st.button("Back to sign in"):
                st.query_params.clear()
                st.rerun()
            return
        st.session_state.recovering = True

    with st.form("new_password"):
        password = st.text_input("New password", type="password")
        confirmation = st.text_input("Confirm new password", type="password")
        submitted = st.form_submit_button("Update password", type="primary")

    if submitted:
        updated, notification = run_async(auth_flow.update_password(password, confirmation))
        if not updated:
            notify(notification)
            return
        notify(notification, persist=True)
        st.session_state.recovering = False
        st.query_params.clear()
        st.rerun()


def render_dashboard_page(dashboard_flow: DashboardFlow):
    """Render the monthly summary, chart and month actions."""
    st.title("📊 This Month")

    summary = dashboard_flow.summary()
    month_label = format_display_date(summary.month_start)[3:]
    st.caption(f"{month_label} · {summary.transaction_count} transactions")

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", format_currency(summary.total_income))
    col2.metric("Expenses", format_currency(summary.total_expenses))
    col3.metric("Balance", format_currency(summary.balance))

    buckets = dashboard_flow.category_buckets()
    if buckets:
        st.markdown("### Spending by category")
        figure = px.pie(
            names=[bucket.category for bucket in buckets],
            values=[float(bucket.total) for bucket in buckets],
            hole=0.4,
        )
        st.plotly_chart(figure, use_container_width=True)
    else:
        st.info("📋 No transactions this month yet.")

    st.markdown("---")
    col1, col2 = st.columns(2)

    with col1:
        content, filename, notification = run_async(dashboard_flow.export_month())
        if content is None:
            st.button("⬇️ Export CSV", disabled=True, help=notification.description)
        else:
            st.download_button(
                "⬇️ Export CSV",
                data=content.encode("utf-8"),
                file_name=filename,
                mime="text/csv",
            )

    with col2:
        confirm = st.checkbox("I understand this deletes every transaction of this month")
        if st.button("🗑️ Reset month", disabled=not confirm):
            notify(run_async(dashboard_flow.reset_month()), persist=True)
            st.rerun()

    stats = dashboard_flow.stats()
    with st.expander("📈 All time"):
        st.markdown(f"**Income:** {format_currency(stats.total_income)} ({stats.income_count})")
        st.markdown(f"**Expenses:** {format_currency(stats.total_expenses)} ({stats.expense_count})")
        st.markdown(f"**Balance:** {format_currency(stats.balance)}")
        if stats.unparseable_dates:
            st.caption(f"{stats.unparseable_dates} transactions have an unreadable date.")


def render_transaction_form(
    key: str,
    values: TransactionFormValues,
    submit_label: str,
) -> tuple[bool, TransactionFormValues]:
    """Render the create/edit form. Returns (submitted, values)."""
    types = list(TransactionType)

    with st.form(key):
        col1, col2 = st.columns(2)

        with col1:
            establishment = st.text_input(
                "Establishment *",
                value=values.establishment,
                help="Where the money was spent or received",
            )
            amount = st.text_input(
                "Amount *",
                value=values.amount,
                placeholder="e.g. 99,90",
            )
            transaction_type = st.selectbox(
                "Type *",
                options=types,
                index=types.index(values.type),
                format_func=lambda t: t.label,
            )

        with col2:
            occurred = parse_timestamp(values.occurred_on)
            occurred_on = st.date_input(
                "Date *",
                value=occurred.date() if occurred else date.today(),
            )
            category = st.text_input(
                "Category",
                value=values.category,
                placeholder="e.g. food",
            )

        details = st.text_area("Details (optional)", value=values.details)
        submitted = st.form_submit_button(submit_label, type="primary")

    return submitted, TransactionFormValues(
        establishment=establishment,
        amount=amount,
        type=transaction_type,
        category=category,
        occurred_on=occurred_on.isoformat() if occurred_on else "",
        details=details,
    )


def render_create_page(dashboard_flow: DashboardFlow):
    """Render the new transaction form."""
    st.title("➕ New Transaction")

    defaults = TransactionFormValues(occurred_on=date.today().isoformat())
    submitted, values = render_transaction_form("create", defaults, "Save transaction")

    if submitted:
        result = dashboard_flow.validate(values)
        for warning in result.warnings:
            st.warning(warning)
        _, notification = run_async(dashboard_flow.create(values))
        notify(notification)


def render_transactions_page(dashboard_flow: DashboardFlow):
    """Render the filterable list with edit and delete."""
    st.title("📋 Transactions")

    transactions = dashboard_flow.state.transactions

    # Filters
    col1, col2, col3 = st.columns(3)

    with col1:
        type_filter = st.selectbox(
            "Filter by Type",
            options=[None] + list(TransactionType),
            format_func=lambda t: "All Types" if t is None else t.label,
        )

    with col2:
        category_filter = st.selectbox(
            "Filter by Category",
            options=[None] + list_categories(transactions),
            format_func=lambda c: "All Categories" if c is None else c,
        )

    with col3:
        search = st.text_input("Search", placeholder="Establishment, details...")

    rows = filter_transactions(transactions, type_filter, category_filter, search)

    st.markdown("---")

    if not rows:
        st.info("📋 No transactions match these filters.")
        return

    st.dataframe(
        [
            {
                "Date": format_display_date(t.occurred_at),
                "Establishment": t.establishment,
                "Category": t.category,
                "Type": t.type.label,
                "Amount": format_signed_currency(t.amount, t.is_income),
                "Details": t.details or "",
            }
            for t in rows
        ],
        use_container_width=True,
        hide_index=True,
    )

    by_id = {t.id: t for t in rows}
    selected_id = st.selectbox(
        "Select a transaction to edit or delete",
        options=[None] + list(by_id),
        format_func=lambda i: "—" if i is None else describe(by_id[i]),
    )
    if selected_id is None:
        return

    selected = by_id[selected_id]

    st.markdown("### ✏️ Edit")
    submitted, values = render_transaction_form(
        f"edit-{selected.id}",
        TransactionFormValues.from_transaction(selected),
        "Save changes",
    )
    if submitted:
        updated, notification = run_async(dashboard_flow.update(selected.id, values))
        notify(notification, persist=updated is not None)
        if updated is not None:
            st.rerun()

    st.markdown("### 🗑️ Delete")
    confirm = st.checkbox("I want to delete this transaction", key=f"confirm-{selected.id}")
    if st.button("Delete transaction", disabled=not confirm):
        notify(run_async(dashboard_flow.delete(selected.id)), persist=True)
        st.rerun()


def describe(transaction: Transaction) -> str:
    """One-line label of a transaction for pickers."""
    return (
        f"{format_display_date(transaction.occurred_at)} · {transaction.establishment} · "
        f"{format_signed_currency(transaction.amount, transaction.is_income)}"
    )


def render_settings_page(status: dict):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    services = [
        ("Supabase (Backend)", "supabase"),
        ("Application settings", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if status.get("app", False):
        app_settings = get_settings().app
        st.markdown(f"**Timezone:** {app_settings.timezone}")
        st.markdown(f"**Environment:** {app_settings.app_environment}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your Supabase keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
