"""
Streamlit Frontend for Cedar Budget

A personal budget tracker for Lebanon with an AI assistant.

DESIGN PRINCIPLES:
1. Dollar figures first, LBP alongside at the fixed rate
2. Explicit confirmation for every AI-proposed transaction
3. Clear error messages in simple language
4. No hidden actions

The UI enforces the human-in-the-loop principle:
- Cedar proposes a transaction
- User sees the proposal and its validation preview
- Nothing is added without an explicit "Confirm" click
"""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import streamlit as st

from cedar.agents import MediaGenerationError, from_data_url
from cedar.audit import AuditLogger, configure_logging
from cedar.budget import LBP_TO_USD_RATE, describe_amount, format_lbp, format_usd
from cedar.config import get_settings, validate_all_settings
from cedar.ledger import Ledger
from cedar.models import (
    AssistantMode,
    ChatMessage,
    ChatSender,
    Currency,
    ProposalStatus,
    TransactionCandidate,
    TransactionSource,
    TransactionType,
    VideoAspectRatio,
    categories_for,
)
from cedar.orchestrator import (
    ChatFlow,
    MediaFlow,
    ProposalError,
    create_app_components,
)
from cedar.polling import PollCancelledError, PollTimeoutError
from cedar.validation import AdmissionError


# Page configuration
st.set_page_config(
    page_title="Cedar Budget",
    page_icon="🌲",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .proposal-box {
        padding: 16px;
        background-color: #e8f5e9;
        border-radius: 10px;
        border-left: 5px solid #2e7d32;
        margin: 10px 0;
    }
    .over-budget {
        color: #c62828;
    }
</style>
""", unsafe_allow_html=True)

_video_executor = ThreadPoolExecutor(max_workers=2)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_components() -> tuple[Ledger, ChatFlow, MediaFlow]:
    """
    Get or create this session's components.

    Kept in session_state, not st.cache_resource: every browser session
    owns its own ledger.
    """
    if "components" not in st.session_state:
        st.session_state.components = create_app_components()
    return st.session_state.components


def main():
    """Main application entry point."""
    configure_logging(get_settings().app.log_level)

    try:
        ledger, chat_flow, media_flow = get_components()
    except Exception as e:
        AuditLogger().log_error(
            error_type=type(e).__name__,
            error_message=str(e),
            details={"stage": "startup"},
        )
        st.error(f"Failed to initialize: {e}")
        render_settings_page()
        st.stop()

    st.sidebar.title("🌲 Cedar Budget")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "💬 Chat with Cedar", "🎨 Creative Tools", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        f"""
        **Exchange rate:** 1 USD = {LBP_TO_USD_RATE:,} LBP

        **Tell Cedar things like:**
        - "I paid 2,000,000 LBP for the generator"
        - "Got my salary, 800 Fresh USD"
        - "How much did I spend on groceries?"
        """
    )

    if page == "📊 Dashboard":
        render_dashboard_page(ledger)
    elif page == "💬 Chat with Cedar":
        render_chat_page(ledger, chat_flow, media_flow)
    elif page == "🎨 Creative Tools":
        render_tools_page(media_flow)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_dashboard_page(ledger: Ledger):
    """Render the budget dashboard."""
    st.title("📊 Dashboard")
    summary = ledger.summary

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Total Income", format_usd(summary.total_income))
        st.caption(format_lbp(summary.total_income))
    with col2:
        st.metric("Total Expenses", format_usd(summary.total_expenses))
        st.caption(format_lbp(summary.total_expenses))
    with col3:
        st.metric("Remaining Budget", format_usd(summary.remaining_budget))
        st.caption(format_lbp(summary.remaining_budget))
        if summary.is_over_budget:
            st.markdown('<span class="over-budget">You are over budget.</span>', unsafe_allow_html=True)

    st.markdown("---")
    left, right = st.columns([1, 1])

    with left:
        st.subheader("🔝 Top Spending Categories")
        if not summary.top_expenses:
            st.info("No expenses yet.")
        for entry in summary.top_expenses:
            share = entry.amount / summary.total_expenses if summary.total_expenses else 0.0
            st.markdown(f"**{entry.category}** - {format_usd(entry.amount)}")
            st.progress(min(share, 1.0))

    with right:
        render_transaction_form(ledger)

    st.markdown("---")
    st.subheader("🧾 Transactions")
    if not len(ledger):
        st.info("Your transactions will appear here. Add one above or tell Cedar about it.")
    for tx in ledger.transactions:
        icon = "🔻" if tx.is_expense else "🟢"
        st.markdown(
            f"{icon} **{tx.category.value}** · {describe_amount(tx.amount, tx.currency)} "
            f"· {tx.date.strftime('%d %b %Y %H:%M')} · _{tx.source.value}_"
        )


def render_transaction_form(ledger: Ledger):
    """Manual entry. Goes through the same admission path as AI proposals."""
    st.subheader("➕ Add Transaction")

    # Outside the form so the category list follows the type
    tx_type = st.radio(
        "Type",
        options=list(TransactionType),
        format_func=lambda t: t.value.title(),
        horizontal=True,
    )

    with st.form("add_transaction", clear_on_submit=True):
        amount = st.number_input("Amount *", min_value=0.0, step=1000.0, format="%.2f")
        currency = st.selectbox("Currency *", options=list(Currency), format_func=lambda c: c.value)
        category = st.selectbox(
            "Category *",
            options=list(categories_for(tx_type)),
            format_func=lambda c: c.value,
        )
        submitted = st.form_submit_button("Add", type="primary")

    if submitted:
        try:
            tx = ledger.admit(TransactionCandidate(
                amount=amount,
                currency=currency,
                type=tx_type,
                category=category,
                source=TransactionSource.FORM,
            ))
            st.toast(f"Added {tx.category.value}: {describe_amount(tx.amount, tx.currency)}")
            st.rerun()
        except AdmissionError as e:
            st.error(str(e))


def _render_proposal(message: ChatMessage, ledger: Ledger, chat_flow: ChatFlow):
    proposal = message.proposal
    st.markdown(f"""
    <div class="proposal-box">
        <p><strong>Type:</strong> {proposal.type}</p>
        <p><strong>Amount:</strong> {proposal.amount} {proposal.currency}</p>
        <p><strong>Category:</strong> {proposal.category}</p>
    </div>
    """, unsafe_allow_html=True)

    if message.validation is not None and message.awaiting_decision:
        st.caption(ledger.validator.get_user_friendly_summary(message.validation))

    if message.awaiting_decision:
        col1, col2 = st.columns(2)
        with col1:
            if st.button("✅ Confirm", key=f"confirm-{message.id}", type="primary"):
                try:
                    chat_flow.confirm_proposal(message.id)
                except (AdmissionError, ProposalError) as e:
                    st.session_state.chat_error = str(e)
                st.rerun()
        with col2:
            if st.button("❌ Cancel", key=f"cancel-{message.id}"):
                try:
                    chat_flow.cancel_proposal(message.id)
                except ProposalError as e:
                    st.session_state.chat_error = str(e)
                st.rerun()
    elif message.proposal_status == ProposalStatus.CONFIRMED:
        st.caption("✅ Added to your budget")
    elif message.proposal_status == ProposalStatus.CANCELLED:
        st.caption("Cancelled")
    elif message.proposal_status == ProposalStatus.REJECTED:
        st.caption("❌ Could not be added")


def render_chat_page(ledger: Ledger, chat_flow: ChatFlow, media_flow: MediaFlow):
    """Render the chat page."""
    st.title("💬 Chat with Cedar")

    if "audio" not in st.session_state:
        st.session_state.audio = {}

    mode = st.radio(
        "Mode",
        options=list(AssistantMode),
        format_func=lambda m: {
            AssistantMode.FAST: "⚡ Fast",
            AssistantMode.SMART: "🧠 Smart",
            AssistantMode.GENIUS: "🎓 Genius",
            AssistantMode.SEARCH: "🔎 Search",
        }[m],
        index=1,
        horizontal=True,
    )

    if st.session_state.get("chat_error"):
        st.error(st.session_state.pop("chat_error"))

    for message in chat_flow.history:
        role = "user" if message.sender == ChatSender.USER else "assistant"
        with st.chat_message(role):
            st.markdown(message.text)

            if message.is_proposal:
                _render_proposal(message, ledger, chat_flow)

            if message.sources:
                with st.expander("Sources"):
                    for source in message.sources:
                        st.markdown(f"- [{source.title}]({source.uri})")

            if message.sender == ChatSender.CEDAR:
                key = str(message.id)
                if key in st.session_state.audio:
                    st.audio(st.session_state.audio[key], format="audio/wav")
                elif st.button("🔊 Read aloud", key=f"speak-{message.id}"):
                    with st.spinner("Generating audio..."):
                        try:
                            st.session_state.audio[key] = run_async(media_flow.speak(message.text))
                        except MediaGenerationError as e:
                            st.session_state.chat_error = str(e)
                    st.rerun()

    with st.expander("📎 Upload a receipt"):
        uploaded_file = st.file_uploader(
            "Receipt photo",
            type=["jpg", "jpeg", "png", "webp"],
            help="Take a clear, well-lit photo of your receipt",
        )
        if uploaded_file and st.button("🔍 Analyze Receipt", type="primary"):
            with st.spinner("Reading your receipt..."):
                run_async(chat_flow.analyze_receipt(
                    image_bytes=uploaded_file.getvalue(),
                    filename=uploaded_file.name,
                    mime_type=uploaded_file.type,
                ))
            st.rerun()

    prompt = st.chat_input("Tell Cedar about a transaction or ask a question")
    if prompt:
        with st.spinner("Cedar is thinking..."):
            run_async(chat_flow.send_message(prompt, mode))
        st.rerun()


def render_tools_page(media_flow: MediaFlow):
    """Render image and video generation tools."""
    st.title("🎨 Creative Tools")

    st.subheader("🖼️ Image Generation")
    image_prompt = st.text_area("Describe the image", key="image_prompt")
    col1, col2 = st.columns(2)
    with col1:
        aspect_ratio = st.selectbox("Aspect ratio", ["1:1", "16:9", "9:16", "4:3", "3:4"])
    with col2:
        image_size = st.selectbox("Size", ["1K", "2K", "4K"])

    if st.button("Generate Image", type="primary") and image_prompt:
        with st.spinner("Generating image..."):
            try:
                url = run_async(media_flow.generate_image(image_prompt, aspect_ratio, image_size))
                st.session_state.generated_image = from_data_url(url)[1]
            except MediaGenerationError as e:
                st.error(str(e))

    if st.session_state.get("generated_image"):
        st.image(st.session_state.generated_image)

    st.markdown("---")
    render_video_tool(media_flow)


def render_video_tool(media_flow: MediaFlow):
    """
    Video generation runs in a worker thread so the page stays responsive
    and the Cancel button can reach the poller.
    """
    st.subheader("🎬 Video Generation")

    job = st.session_state.get("video_job")

    if job is None:
        video_prompt = st.text_area("Describe the video", key="video_prompt")
        ratio = st.radio(
            "Aspect ratio",
            options=list(VideoAspectRatio),
            format_func=lambda r: r.value,
            horizontal=True,
        )
        if st.button("Generate Video", type="primary") and video_prompt:
            cancel_event = threading.Event()
            future = _video_executor.submit(
                run_async,
                media_flow.generate_video(video_prompt, ratio, cancel_event=cancel_event),
            )
            st.session_state.video_job = (future, cancel_event)
            st.rerun()
    else:
        future, cancel_event = job
        if not future.done():
            st.info("⏳ Your video is being generated. This can take a few minutes.")
            col1, col2 = st.columns(2)
            with col1:
                if st.button("🔄 Check Status"):
                    st.rerun()
            with col2:
                if st.button("⏹️ Cancel", disabled=cancel_event.is_set()):
                    cancel_event.set()
                    st.rerun()
        else:
            try:
                status = future.result()
                st.session_state.generated_video = status.video_bytes
            except PollCancelledError:
                st.warning("Video generation was cancelled.")
            except PollTimeoutError:
                st.error("Video generation took too long and was stopped. Please try again.")
            except MediaGenerationError as e:
                st.error(str(e))
            st.session_state.video_job = None

    if st.session_state.get("generated_video"):
        st.video(st.session_state.generated_video)


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")

    status = validate_all_settings()

    sections = [
        ("Gemini (AI assistant and media)", "gemini"),
        ("Application", "app"),
    ]

    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "At minimum set `GEMINI_API_KEY`."
    )


if __name__ == "__main__":
    main()
