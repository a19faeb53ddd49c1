"""
Streamlit Frontend for SnapExpense

Three screens, switched from a bottom navigation bar:
- Home: total claimable, receipt count, recent-activity chart, latest receipts
- Add: snap or upload a receipt, review the pre-filled fields, save
- History: every receipt, newest first, with delete

DESIGN PRINCIPLES:
1. The AI only pre-fills; the user always confirms
2. Manual entry works with or without the AI
3. Every change is saved immediately

Run with:
    streamlit run app/main.py
"""

import asyncio

import plotly.graph_objects as go
import streamlit as st

from snap_expense.config import get_settings, validate_all_settings
from snap_expense.controller import ExpenseController, create_app_components
from snap_expense.logging_setup import configure_logging
from snap_expense.models.expense import ViewState
from snap_expense.services.image import InvalidImageError
from snap_expense.services.storage import (
    ExpenseStore,
    JsonFileKeyValueStore,
    StorageError,
)
from snap_expense.views import build_dashboard, build_history, format_currency


# Page configuration
st.set_page_config(
    page_title="SnapExpense",
    page_icon="🧾",
    layout="centered",
    initial_sidebar_state="collapsed",
)

# Custom CSS: mobile-width column and card styles
st.markdown("""
<style>
    .block-container {
        max-width: 480px;
        padding-bottom: 7rem;
    }
    .total-card {
        padding: 24px;
        border-radius: 16px;
        color: white;
        background: linear-gradient(135deg, #059669, #0f766e);
        margin-bottom: 16px;
    }
    .total-card .label {
        font-size: 0.85em;
        opacity: 0.85;
    }
    .total-card .big-number {
        font-size: 2.5em;
        font-weight: bold;
    }
    .total-card .pill {
        display: inline-block;
        margin-top: 12px;
        padding: 2px 8px;
        border-radius: 6px;
        background: rgba(255, 255, 255, 0.2);
        font-size: 0.8em;
    }
    .empty-box {
        padding: 32px;
        text-align: center;
        color: #94a3b8;
        background-color: #f8fafc;
        border: 1px dashed #e2e8f0;
        border-radius: 12px;
    }
</style>
""", unsafe_allow_html=True)


NAV_ITEMS = [
    (ViewState.DASHBOARD, "🏠 Home"),
    (ViewState.ADD, "➕ Add"),
    (ViewState.HISTORY, "📋 History"),
]


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_store() -> ExpenseStore:
    """Create and load the Store once per server process."""
    configure_logging()
    app_settings = get_settings().app
    store = ExpenseStore(
        JsonFileKeyValueStore(app_settings.data_dir),
        storage_key=app_settings.storage_key,
    )
    store.load()
    return store


def get_controller() -> ExpenseController:
    """Get or create this session's controller."""
    if "controller" not in st.session_state:
        st.session_state.controller = create_app_components(store=get_store())
    return st.session_state.controller


def main():
    """Main application entry point."""
    controller = get_controller()
    currency = get_settings().app.currency_symbol

    render_sidebar(controller)

    if controller.view == ViewState.DASHBOARD:
        render_dashboard(controller, currency)
    elif controller.view == ViewState.ADD:
        render_add(controller, currency)
    elif controller.view == ViewState.HISTORY:
        render_history(controller, currency)

    render_nav_bar(controller)


def render_sidebar(controller: ExpenseController):
    """Connection status, tucked away in the sidebar."""
    st.sidebar.title("🧾 SnapExpense")
    st.sidebar.markdown("---")
    status = validate_all_settings()
    if status.get("gemini", False):
        st.sidebar.success("✨ AI receipt reading is on")
    else:
        st.sidebar.info(status.get("gemini_error", "AI receipt reading is off"))
    st.sidebar.caption(f"{len(controller.records)} receipts stored locally")


def render_nav_bar(controller: ExpenseController):
    """Bottom navigation: Home / Add / History."""
    st.markdown("---")
    columns = st.columns(len(NAV_ITEMS))
    for column, (view, label) in zip(columns, NAV_ITEMS):
        with column:
            if st.button(
                label,
                key=f"nav_{view.value}",
                type="primary" if controller.view == view else "secondary",
                use_container_width=True,
            ):
                controller.navigate(view)
                st.rerun()


def render_dashboard(controller: ExpenseController, currency: str):
    """Render the dashboard."""
    summary = build_dashboard(controller.records, currency)

    st.title("SnapExpense")
    st.caption("Track your claims")

    st.markdown(f"""
    <div class="total-card">
        <div class="label">Total Claimable</div>
        <div class="big-number">{summary.total_display}</div>
        <div class="pill">↗ {summary.count} Receipts</div>
    </div>
    """, unsafe_allow_html=True)

    if not summary.is_empty:
        st.subheader("Recent Activity")
        fig = go.Figure(
            go.Bar(
                x=[f"{i}. {point.label}" for i, point in enumerate(summary.chart, start=1)],
                y=[float(point.amount) for point in summary.chart],
                marker_color=[
                    "#059669" if point.is_latest else "#cbd5e1"
                    for point in summary.chart
                ],
                hovertemplate=f"{currency}%{{y:.2f}}<extra></extra>",
            )
        )
        fig.update_layout(
            height=180,
            margin=dict(l=0, r=0, t=0, b=0),
            yaxis=dict(visible=False),
            xaxis=dict(tickfont=dict(size=10)),
        )
        st.plotly_chart(fig, use_container_width=True, config={"displayModeBar": False})

    col1, col2 = st.columns([3, 1])
    with col1:
        st.subheader("Latest Receipts")
    with col2:
        if st.button("View All", key="dashboard_view_all"):
            controller.navigate(ViewState.HISTORY)
            st.rerun()

    if summary.is_empty:
        st.markdown(
            '<div class="empty-box">No receipts logged yet.</div>',
            unsafe_allow_html=True,
        )
        if st.button("Add your first", key="dashboard_add_first"):
            controller.navigate(ViewState.ADD)
            st.rerun()
        return

    for row in summary.recent:
        with st.container(border=True):
            thumb, details, amount = st.columns([1, 3, 2])
            with thumb:
                if row.image_url:
                    st.image(row.image_url, width=48)
                else:
                    st.markdown(f"### {currency}")
            with details:
                st.markdown(f"**{row.merchant}**")
                st.caption(row.date_display)
            with amount:
                st.markdown(f"**{row.amount_display}**")


def render_add(controller: ExpenseController, currency: str):
    """Render the Add Receipt form."""
    st.title("New Receipt")

    # Widgets are keyed by draft revision so they pick up programmatic
    # changes (reset, AI pre-fill) but keep the user's typing otherwise.
    rev = controller.draft_revision

    # Step 1: Capture
    upload_tab, camera_tab = st.tabs(["📤 Upload", "📷 Camera"])
    with upload_tab:
        uploaded = st.file_uploader(
            "Tap to capture or upload receipt",
            type=get_settings().app.supported_formats_list,
            key=f"receipt_upload_{rev}",
        )
    with camera_tab:
        snapped = st.camera_input("Take Photo", key=f"receipt_camera_{rev}")

    image_file = uploaded or snapped
    if image_file is not None and st.session_state.get("captured_file_id") != image_file.file_id:
        st.session_state.captured_file_id = image_file.file_id
        spinner_text = (
            "✨ AI is analyzing receipt details..."
            if controller.analysis_enabled
            else "Preparing image..."
        )
        try:
            with st.spinner(spinner_text):
                applied = run_async(
                    controller.capture_upload(image_file.getvalue(), image_file.name)
                )
        except InvalidImageError as e:
            st.error(str(e))
        else:
            if controller.analysis_enabled and not applied:
                st.session_state.flash = "Couldn't read this receipt automatically - please fill in the details."
            st.rerun()

    draft = controller.draft
    if draft.image:
        st.image(draft.image, caption="Receipt", use_container_width=True)

    flash = st.session_state.pop("flash", None)
    if flash:
        st.warning(flash)

    # Step 2: Details
    amount = st.text_input(
        f"Total Amount ({currency})",
        value=draft.amount,
        placeholder="0.00",
        key=f"draft_amount_{rev}",
    )
    merchant = st.text_input(
        "Merchant / Business",
        value=draft.merchant,
        placeholder="e.g. Starbucks, Uber",
        key=f"draft_merchant_{rev}",
    )
    col1, col2 = st.columns(2)
    with col1:
        expense_date = st.date_input(
            "Date",
            value=draft.date,
            key=f"draft_date_{rev}",
        )
    with col2:
        description = st.text_input(
            "Category (Opt)",
            value=draft.description,
            placeholder="Meals, Travel...",
            key=f"draft_description_{rev}",
        )

    controller.update_draft(
        amount=amount,
        merchant=merchant,
        date=expense_date,
        description=description,
    )

    if amount.strip() and controller.draft.parsed_amount is None:
        st.caption("⚠️ Enter the amount as a number, e.g. 12.50")

    # Step 3: Save / Cancel
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Cancel", key="add_cancel", use_container_width=True):
            controller.cancel()
            st.session_state.pop("captured_file_id", None)
            st.rerun()
    with col2:
        if st.button(
            "Save Receipt",
            key="add_save",
            type="primary",
            disabled=not controller.can_save,
            use_container_width=True,
        ):
            try:
                saved = controller.save_expense()
            except StorageError as e:
                st.error(f"Failed to save: {e}")
            else:
                if saved is not None:
                    st.session_state.pop("captured_file_id", None)
                    st.toast(f"Saved {saved.merchant} - {format_currency(saved.amount, currency)}")
                    st.rerun()


def render_history(controller: ExpenseController, currency: str):
    """Render the full expense history with delete buttons."""
    st.title("Expense History")

    rows = build_history(controller.records, currency)
    if not rows:
        st.markdown(
            '<div class="empty-box">📋<br/>No history yet</div>',
            unsafe_allow_html=True,
        )
        return

    for row in rows:
        with st.container(border=True):
            thumb, details, amount, action = st.columns([1, 3, 2, 1])
            with thumb:
                if row.image_url:
                    st.image(row.image_url, width=56)
                else:
                    st.markdown(f"### {currency}")
            with details:
                st.markdown(f"**{row.merchant}**")
                st.caption(f"{row.date_display} • {row.time_display}")
                if row.description:
                    st.markdown(row.description)
            with amount:
                st.markdown(f"**:green[{row.amount_display}]**")
            with action:
                if st.button("🗑️", key=f"delete_{row.id}", help="Delete receipt"):
                    try:
                        controller.delete_expense(row.id)
                    except StorageError as e:
                        st.error(f"Failed to delete: {e}")
                    else:
                        st.rerun()


if __name__ == "__main__":
    main()
