from __future__ import annotations

import logging
import traceback
from typing import Any, Dict, List

import pandas as pd
import streamlit as st

from faq_chatbot.config import APP_NAME, APP_VERSION, FAQ_LOG_LEVEL, LOG_FORMAT
from faq_chatbot.conversation.session import ChatSession
from faq_chatbot.conversation.types import (
    ConversationError,
    Feedback,
    InvalidInputError,
    Message,
    Sender,
)
from faq_chatbot.core.audit import build_resolution_audit
from faq_chatbot.core.kb_loader import load_knowledge_base
from faq_chatbot.core.knowledge_base import KnowledgeBase, KnowledgeBaseError

logger = logging.getLogger(__name__)

SESSION_KEY = "faq_chat_session"

FEEDBACK_LABELS = {
    Feedback.HELPFUL: "👍 Helpful",
    Feedback.NOT_HELPFUL: "👎 Not Helpful",
}


def _configure_logging() -> None:
    # basicConfig is a no-op once the root logger has handlers (Streamlit reruns)
    logging.basicConfig(level=FAQ_LOG_LEVEL, format=LOG_FORMAT)


def _get_chat_session(kb: KnowledgeBase) -> ChatSession:
    session = st.session_state.get(SESSION_KEY)
    if session is None:
        session = ChatSession(kb)
        st.session_state[SESSION_KEY] = session
        logger.info("Started new chat session.")
    return session


def _messages_frame(messages: List[Message]) -> pd.DataFrame:
    rows: List[Dict[str, Any]] = []
    for m in messages:
        rows.append(
            {
                "id": m.id,
                "sender": m.sender.value,
                "time": m.created_at.strftime("%H:%M:%S"),
                "answered": m.is_answered,
                "feedback": m.feedback.value,
                "text": m.text,
            }
        )
    return pd.DataFrame(rows)


def _kb_frame(kb: KnowledgeBase) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"#": idx, "keywords": ", ".join(entry.keywords), "answer": entry.answer}
            for idx, entry in enumerate(kb.entries())
        ]
    )


# ---------------------------------------------------------------------------
# Chat area
# ---------------------------------------------------------------------------

def _render_feedback_buttons(session: ChatSession, message_id: int) -> None:
    col_yes, col_no, _ = st.columns([1, 1, 4])
    choice = None
    with col_yes:
        if st.button(FEEDBACK_LABELS[Feedback.HELPFUL], key=f"fb_yes_{message_id}"):
            choice = Feedback.HELPFUL
    with col_no:
        if st.button(FEEDBACK_LABELS[Feedback.NOT_HELPFUL], key=f"fb_no_{message_id}"):
            choice = Feedback.NOT_HELPFUL

    if choice is None:
        return

    try:
        session.submit_feedback(message_id, choice)
    except ConversationError as exc:
        logger.warning("Feedback rejected for message %s: %s", message_id, exc)
        st.warning(f"Feedback could not be recorded: {exc}")
        return
    st.rerun()


def _render_message(session: ChatSession, msg: Message) -> None:
    role = "user" if msg.sender is Sender.USER else "assistant"
    with st.chat_message(role):
        st.write(msg.text)
        st.caption(msg.created_at.strftime("%H:%M:%S"))
        if msg.sender is Sender.BOT and msg.feedback is not Feedback.NONE:
            st.caption(f"Feedback: {FEEDBACK_LABELS[msg.feedback]}")

    if msg.id == session.open_feedback_message_id:
        _render_feedback_buttons(session, msg.id)


def _wait_for_replies(session: ChatSession) -> None:
    with st.spinner("Thinking..."):
        session.wait_for_replies()


def _render_chat_area(session: ChatSession) -> None:
    # A rerun can interrupt the wait after a submission; finish it here.
    if session.pending_reply_count:
        _wait_for_replies(session)

    messages = session.snapshot()
    if not messages:
        st.info("Start by typing a question!")

    for msg in messages:
        _render_message(session, msg)

    prompt = st.chat_input("Type your question here...")
    if prompt is None:
        return

    try:
        session.submit_query(prompt)
    except InvalidInputError:
        st.warning("Please type a question before sending.")
        return

    _wait_for_replies(session)
    st.rerun()


# ---------------------------------------------------------------------------
# Developer panels
# ---------------------------------------------------------------------------

def _render_unanswered_queries(session: ChatSession) -> None:
    queries = session.unanswered_queries()
    with st.expander(f"Unanswered queries ({len(queries)})", expanded=bool(queries)):
        if not queries:
            st.write("No unanswered queries yet.")
            return

        st.write("Queries the knowledge base could not answer (for improvement):")
        st.dataframe(session.unanswered.counts(), use_container_width=True)
        st.download_button(
            "Download unanswered queries (CSV)",
            data=session.unanswered.to_csv(),
            file_name="unanswered_queries.csv",
            mime="text/csv",
        )


def _render_resolution_audit(kb: KnowledgeBase) -> None:
    with st.expander("Resolution audit (developer view)", expanded=False):
        query = st.text_input("Query to audit:", value="", key="audit_query")
        if not query:
            return

        audit = build_resolution_audit(query, kb)
        if audit.matched:
            st.success(f"Entry #{audit.winning_index} answers this query.")
        else:
            st.warning("No entry matches; the fallback answer is returned.")
        st.write(audit.answer)

        if audit.is_ambiguous:
            st.info(f"Shadowed by first-match precedence: entries {audit.shadowed_indices}")

        if audit.hits:
            rows = [
                {
                    "#": h.entry_index,
                    "keywords hit": ", ".join(h.keywords_hit),
                    "winner": h.entry_index == audit.winning_index,
                    "answer": h.answer_preview,
                }
                for h in audit.hits
            ]
            st.dataframe(pd.DataFrame(rows), use_container_width=True)


def _render_conversation_status(session: ChatSession, kb: KnowledgeBase) -> None:
    with st.expander("Conversation state (developer view)", expanded=False):
        st.write(f"Feedback slot: {session.feedback_slot}")
        st.write(f"Scheduled replies: {session.pending_reply_count}")
        messages = session.snapshot()
        if messages:
            st.dataframe(_messages_frame(list(messages)), use_container_width=True)

        st.write(f"Knowledge base: {len(kb)} entries")
        st.dataframe(_kb_frame(kb), use_container_width=True)


def run_app() -> None:
    _configure_logging()
    st.set_page_config(page_title=APP_NAME, page_icon="💬", layout="centered")
    st.title(APP_NAME)
    st.caption(f"Prototype version {APP_VERSION}")

    try:
        kb = load_knowledge_base()
    except KnowledgeBaseError:
        st.error("Error while loading the knowledge base.")
        st.text_area("Traceback", value=traceback.format_exc(), height=220)
        return

    session = _get_chat_session(kb)

    with st.sidebar:
        if st.button("Start new conversation"):
            session.reset()
            st.rerun()

    _render_chat_area(session)
    _render_unanswered_queries(session)
    _render_resolution_audit(kb)
    _render_conversation_status(session, kb)
