from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Tuple

import logging

from faq_chatbot.config import FAQ_RESPONSE_DELAY_SECONDS
from faq_chatbot.conversation.feedback import FeedbackTracker, SlotState
from faq_chatbot.conversation.store import ConversationStore
from faq_chatbot.conversation.types import Feedback, Message
from faq_chatbot.conversation.unanswered import UnansweredLog
from faq_chatbot.core.knowledge_base import KnowledgeBase
from faq_chatbot.core.match_engine import Resolution, resolve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingReply:
    """A bot reply that has been resolved but not yet added to the log."""
    user_message: Message
    resolution: Resolution
    due_at: float


class ChatSession:
    """
    One conversation: the owned context for the log, the feedback slot,
    the unanswered queries and the queue of scheduled bot replies.

    Replies are deferred by a fixed delay and delivered strictly in
    submission order. Every mutation runs under a single lock.
    """

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        *,
        response_delay: float = FAQ_RESPONSE_DELAY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if response_delay < 0:
            raise ValueError("response_delay must be >= 0")
        self.knowledge_base = knowledge_base
        self.response_delay = float(response_delay)
        self._clock = clock
        self._lock = threading.RLock()
        self._init_state()

    def _init_state(self) -> None:
        self.tracker = FeedbackTracker()
        self.store = ConversationStore(self.tracker)
        self.unanswered = UnansweredLog()
        self._pending: Deque[PendingReply] = deque()

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def submit_query(self, text: str) -> PendingReply:
        """
        Append the user message, resolve it, and schedule the bot reply.

        Raises InvalidInputError (log unchanged) for empty or whitespace text.
        Unmatched queries are recorded immediately, at submission time.
        """
        with self._lock:
            user_msg = self.store.submit_user_message(text)
            resolution = resolve(text, self.knowledge_base)
            if not resolution.matched:
                self.unanswered.record(text)

            pending = PendingReply(
                user_message=user_msg,
                resolution=resolution,
                due_at=self._clock() + self.response_delay,
            )
            self._pending.append(pending)
            return pending

    def deliver_due_replies(self, now: Optional[float] = None) -> List[Message]:
        """
        Create bot messages for every scheduled reply whose delay has elapsed.

        The delay is uniform, so the queue is already ordered by due time and
        delivery stops at the first reply that is not yet due.
        """
        with self._lock:
            current = self._clock() if now is None else now
            delivered: List[Message] = []
            while self._pending and self._pending[0].due_at <= current:
                pending = self._pending.popleft()
                delivered.append(
                    self.store.submit_bot_message(
                        pending.resolution.answer,
                        pending.resolution.matched,
                    )
                )
            return delivered

    def flush_replies(self) -> List[Message]:
        """Deliver every scheduled reply regardless of its due time."""
        with self._lock:
            return self.deliver_due_replies(now=float("inf"))

    def seconds_until_next_reply(self) -> Optional[float]:
        with self._lock:
            if not self._pending:
                return None
            return max(0.0, self._pending[0].due_at - self._clock())

    def wait_for_replies(self, sleep: Callable[[float], None] = time.sleep) -> List[Message]:
        """
        Block until every scheduled reply is due and deliver them in order.

        The lock is not held while sleeping, so other callers can read state
        (or deliver) in the meantime.
        """
        delivered: List[Message] = []
        while True:
            wait = self.seconds_until_next_reply()
            if wait is None:
                return delivered
            if wait > 0:
                sleep(wait)
            delivered.extend(self.deliver_due_replies())

    def submit_feedback(self, message_id: int, value: Feedback | str) -> Message:
        with self._lock:
            return self.store.record_feedback(message_id, value)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def snapshot(self) -> Tuple[Message, ...]:
        with self._lock:
            return self.store.snapshot()

    @property
    def feedback_slot(self) -> SlotState:
        with self._lock:
            return self.tracker.state

    @property
    def open_feedback_message_id(self) -> Optional[int]:
        with self._lock:
            return self.tracker.open_message_id

    @property
    def pending_reply_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def unanswered_queries(self) -> Tuple[str, ...]:
        with self._lock:
            return self.unanswered.all()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Start a fresh conversation; scheduled replies are dropped."""
        with self._lock:
            dropped = len(self._pending)
            self._init_state()
            logger.info("Conversation reset (%d scheduled replies dropped).", dropped)
