"""
Streamlit Frontend for Bill Splitter

Pages follow the split workflow:
1. Upload Bill - photo → extracted items → review and edit
2. People - who is sharing the bill (at least two)
3. Assign Shares - how much of each item each person had
4. Summary - tax/tip, per-person totals, share message

Each browser session gets its own BillSession in st.session_state.
"""

import asyncio
from decimal import Decimal, InvalidOperation

import streamlit as st

from bill_splitter.audit import create_correlation_id
from bill_splitter.config import get_settings, validate_all_settings
from bill_splitter.exports import build_share_message, build_whatsapp_url, format_currency
from bill_splitter.models.bill import AssignmentStatus, Item, SessionStage
from bill_splitter.orchestrator import BillSplitFlow, create_app_components
from bill_splitter.settlement import (
    DuplicateNameError,
    SessionStateError,
    clamp_non_negative,
    grand_total,
)
from bill_splitter.validation import AssignmentValidator


# Page configuration
st.set_page_config(
    page_title="Bill Splitter",
    page_icon="🧾",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


# Upper bounds for numeric inputs; larger values cannot be rounded to cents
MAX_QUANTITY = 10_000.0
MAX_AMOUNT = 10_000_000.0

PAGES = ["📤 Upload Bill", "👥 People", "✏️ Assign Shares", "💰 Summary", "⚙️ Settings"]


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_flow() -> BillSplitFlow:
    """This browser session's flow (and BillSession)."""
    if "flow" not in st.session_state:
        st.session_state.flow = create_app_components()
    return st.session_state.flow


def currency() -> str:
    return get_settings().app.currency_symbol


def main():
    """Main application entry point."""
    flow = get_flow()
    session = flow.session

    st.sidebar.title("🧾 Bill Splitter")
    st.sidebar.markdown("---")

    page = st.sidebar.radio("Navigate to:", PAGES, index=0)

    st.sidebar.markdown("---")
    st.sidebar.markdown(f"**Stage:** {session.stage.value.replace('_', ' ').title()}")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Upload a photo of the bill
        2. Add everyone who is sharing
        3. Assign each item
        4. Add tax/tip and share the summary
        """
    )

    if st.sidebar.button("🔄 Start Over"):
        session.reset()
        st.session_state.draft_items = None
        st.rerun()

    if page == PAGES[0]:
        render_upload_page(flow)
    elif page == PAGES[1]:
        render_people_page(flow)
    elif page == PAGES[2]:
        render_assign_page(flow)
    elif page == PAGES[3]:
        render_summary_page(flow)
    else:
        render_settings_page()


def render_upload_page(flow: BillSplitFlow):
    """Render the bill upload and item review page."""
    st.title("📤 Upload Bill")
    st.markdown("Take a photo of the bill, or enter the items by hand.")

    if "draft_items" not in st.session_state:
        st.session_state.draft_items = None

    app_settings = get_settings().app
    uploaded_file = st.file_uploader(
        "Choose a bill photo",
        type=app_settings.supported_formats_list,
        help=f"Up to {app_settings.max_upload_size_mb}MB",
    )

    col1, col2 = st.columns(2)
    with col1:
        if uploaded_file and st.button("🔍 Extract Items", type="primary"):
            with st.spinner("Reading your bill... Please wait."):
                extraction, can_proceed, message = run_async(
                    flow.extract_from_image(
                        image_bytes=uploaded_file.getvalue(),
                        filename=uploaded_file.name,
                        file_size=uploaded_file.size,
                        mime_type=uploaded_file.type,
                        correlation_id=create_correlation_id(),
                    )
                )
            if can_proceed:
                st.session_state.draft_items = [
                    {
                        "item_name": item.name,
                        "quantity": float(item.quantity),
                        "unit_price": float(item.unit_price),
                    }
                    for item in extraction.items
                ]
                st.success(message)
            else:
                st.error(message)
    with col2:
        if st.button("✍️ Enter Items Manually"):
            st.session_state.draft_items = [
                {"item_name": "New Item", "quantity": 1.0, "unit_price": 0.0}
            ]

    if st.session_state.draft_items is None:
        return

    st.markdown("---")
    st.subheader("📋 Review Items")
    st.markdown("*You can edit, add or remove items before continuing*")

    edited = st.data_editor(
        st.session_state.draft_items,
        num_rows="dynamic",
        column_config={
            "item_name": st.column_config.TextColumn("Item", required=True),
            "quantity": st.column_config.NumberColumn(
                "Quantity", min_value=0.0, max_value=MAX_QUANTITY, step=1.0
            ),
            "unit_price": st.column_config.NumberColumn(
                f"Unit Price ({currency()})", min_value=0.0, max_value=MAX_AMOUNT,
                step=0.01, format="%.2f",
            ),
        },
        key="item_editor",
    )

    total = sum(
        Decimal(str(row.get("quantity") or 0)) * Decimal(str(row.get("unit_price") or 0))
        for row in edited
    )
    st.markdown(f"**Bill total:** {format_currency(total, currency())}")

    if flow.session.items:
        st.warning("Confirming will replace the current items and clear all assigned shares.")

    if st.button("✅ Confirm Items", type="primary"):
        try:
            items = [
                Item(
                    name=row["item_name"],
                    quantity=Decimal(str(row["quantity"])),
                    unit_price=Decimal(str(row["unit_price"])),
                )
                for row in edited
                if row.get("item_name")
            ]
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            st.error(f"Every item needs a name, a quantity and a price above zero. ({e})")
            return
        if not items:
            st.error("Add at least one item")
            return
        flow.load_items(items)
        st.session_state.draft_items = None
        st.success(f"Loaded {len(items)} items. Next: add the people sharing the bill.")


def render_people_page(flow: BillSplitFlow):
    """Render the roster page."""
    session = flow.session
    st.title("👥 Who's Sharing the Bill?")
    st.markdown(f"Add at least {session.min_participants} people to split the bill.")

    with st.form("add_person", clear_on_submit=True):
        name = st.text_input("Name", placeholder="Enter person's name")
        if st.form_submit_button("➕ Add Person"):
            try:
                session.add_participant(name)
            except DuplicateNameError:
                st.error("This person is already added")
            except ValueError as e:
                st.error(str(e))

    for participant in session.participants:
        col1, col2 = st.columns([4, 1])
        col1.markdown(f"👤 **{participant.name}**")
        if col2.button("Remove", key=f"remove_{participant.id}"):
            session.remove_participant(participant.id)
            st.rerun()

    if len(session.participants) >= session.min_participants:
        st.success("Ready to assign shares.")


def render_assign_page(flow: BillSplitFlow):
    """Render the share assignment table."""
    session = flow.session
    st.title("✏️ Assign Shares")
    st.markdown("Enter how much of each item each person had. All quantities must be assigned.")

    items = session.items
    participants = session.participants
    if not items:
        st.info("Upload a bill first.")
        return
    if len(participants) < session.min_participants:
        st.info(f"Add at least {session.min_participants} people first.")
        return

    report = session.assignment_report()
    for i, (item, status) in enumerate(zip(items, report.items)):
        with st.container(border=True):
            header, action = st.columns([4, 1])
            header.markdown(
                f"**{item.name}** - {item.quantity} × {format_currency(item.unit_price, currency())}"
            )
            if action.button("Split equally", key=f"split_{item.id}"):
                session.split_item_equally(i)
                st.rerun()

            cols = st.columns(len(participants))
            for p, (col, participant) in enumerate(zip(cols, participants)):
                current = float(session.get_share(i, p))
                value = col.number_input(
                    participant.name,
                    min_value=0.0,
                    max_value=MAX_QUANTITY,
                    value=min(current, MAX_QUANTITY),
                    step=0.5,
                    format="%.2f",
                    key=f"share_{item.id}_{participant.id}",
                )
                if value != current:
                    try:
                        session.set_share_by_id(item.id, participant.id, value)
                    except SessionStateError as e:
                        st.error(str(e))
                    st.rerun()

            if status.status == AssignmentStatus.COMPLETE:
                st.markdown("✅ Fully assigned")
            elif status.status == AssignmentStatus.OVER_ASSIGNED:
                st.markdown(f"🔴 Over-assigned by {abs(status.unassigned):.2f}")
            else:
                st.markdown(f"🟡 Unassigned: {status.unassigned:.2f}")

    st.markdown("---")
    st.subheader("Running subtotals")
    for summary in session.summaries():
        st.markdown(f"- {summary.participant.name}: {format_currency(summary.subtotal, currency())}")

    if session.is_all_assigned():
        st.success("All items assigned. Continue to the Summary page.")
    else:
        st.warning(AssignmentValidator.get_user_friendly_summary(report))


def render_summary_page(flow: BillSplitFlow):
    """Render tax/tip input, per-person totals and the share message."""
    session = flow.session
    st.title("💰 Bill Split Summary")

    tax = st.number_input(
        f"Tax / Tip ({currency()})",
        min_value=0.0,
        max_value=MAX_AMOUNT,
        value=min(float(session.tax_amount), MAX_AMOUNT),
        step=1.0,
        format="%.2f",
    )
    try:
        if clamp_non_negative(tax) != session.tax_amount:
            session.set_tax_amount(tax)
    except ValueError as e:
        st.error(str(e))

    stage = session.stage
    if stage == SessionStage.FULLY_ASSIGNED:
        summaries = session.settle()
    elif stage == SessionStage.SETTLED:
        summaries = session.summaries()
    else:
        st.warning("All items must be fully assigned before settling")
        return

    rows = [
        {
            "Person": s.participant.name,
            "Subtotal": format_currency(s.subtotal, currency()),
            "Tax/Tip": format_currency(s.tax_share, currency()),
            "Total": format_currency(s.final_total, currency()),
        }
        for s in summaries
    ]
    st.table(rows)
    st.markdown(
        f'<p class="big-number">{format_currency(grand_total(summaries), currency())}</p>',
        unsafe_allow_html=True,
    )

    message = build_share_message(summaries, currency())
    with st.expander("📨 Share message"):
        st.code(message, language=None)
        st.link_button("Send on WhatsApp", build_whatsapp_url(message))

    with st.expander("🧾 Items"):
        for item in session.items:
            st.markdown(
                f"- {item.name} ({item.quantity} × {format_currency(item.unit_price, currency())})"
                f" = {format_currency(item.line_total, currency())}"
            )


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")
    st.markdown("### Connection Status")

    status = validate_all_settings()
    services = [
        ("Gemini (Item Extraction)", "gemini"),
        ("Application", "app"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Session History")
    for event in reversed(get_flow().session.audit.history[-20:]):
        st.markdown(f"- `{event.timestamp:%H:%M:%S}` {event.description}")


if __name__ == "__main__":
    main()
