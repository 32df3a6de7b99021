from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

import logging

from faq_chatbot.conversation.feedback import FeedbackTracker
from faq_chatbot.conversation.types import (
    Feedback,
    InvalidInputError,
    Message,
    NotEligibleError,
    Sender,
    UnknownMessageError,
)

logger = logging.getLogger(__name__)


class ConversationStore:
    """
    Ordered, append-only log of user and bot messages.

    Ids are integers assigned in creation order, so the most recent message
    always has the largest id. The store owns the feedback tracker it opens
    and closes slots on.
    """

    def __init__(
        self,
        tracker: Optional[FeedbackTracker] = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.tracker = tracker if tracker is not None else FeedbackTracker()
        self._now = now
        self._messages: List[Message] = []
        self._positions: Dict[int, int] = {}
        self._last_id = 0

    def _append(self, text: str, sender: Sender, is_answered: Optional[bool]) -> Message:
        self._last_id += 1
        msg = Message(
            id=self._last_id,
            text=text,
            sender=sender,
            created_at=self._now(),
            is_answered=is_answered,
        )
        self._positions[msg.id] = len(self._messages)
        self._messages.append(msg)
        return msg

    def submit_user_message(self, text: str) -> Message:
        if text is None or not str(text).strip():
            raise InvalidInputError("Message text is empty.")
        return self._append(text, Sender.USER, None)

    def submit_bot_message(self, text: str, is_answered: bool) -> Message:
        msg = self._append(text, Sender.BOT, bool(is_answered))
        if msg.is_answered:
            self.tracker.open(msg.id)
        return msg

    def record_feedback(self, message_id: int, value: Feedback | str) -> Message:
        feedback = Feedback.parse(value)

        pos = self._positions.get(message_id)
        if pos is None:
            raise UnknownMessageError(f"No message with id {message_id!r}.")

        if not self.tracker.holds(message_id):
            raise NotEligibleError(
                f"Message {message_id} is not open for feedback "
                f"(open slot: {self.tracker.open_message_id})."
            )

        updated = replace(self._messages[pos], feedback=feedback)
        self._messages[pos] = updated
        self.tracker.close(message_id)
        logger.info("Feedback %s recorded for message %s.", feedback.value, message_id)
        return updated

    def get(self, message_id: int) -> Message:
        pos = self._positions.get(message_id)
        if pos is None:
            raise UnknownMessageError(f"No message with id {message_id!r}.")
        return self._messages[pos]

    def snapshot(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def clear(self) -> None:
        self._messages.clear()
        self._positions.clear()
        self._last_id = 0
        self.tracker.reset()
