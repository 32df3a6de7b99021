"""
Shared data structures for the conversation layer: message records,
sender / feedback enums, and the error taxonomy.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ConversationError(Exception):
    """Base class for local validation failures in the conversation layer."""


class InvalidInputError(ConversationError):
    """Raised when a user message is empty or whitespace-only."""


class UnknownMessageError(ConversationError):
    """Raised when feedback references a message id not in the log."""


class NotEligibleError(ConversationError):
    """Raised when feedback targets a message that is not the open feedback slot."""


class Sender(str, Enum):
    USER = "user"
    BOT = "bot"


class Feedback(str, Enum):
    NONE = "none"
    HELPFUL = "helpful"
    NOT_HELPFUL = "not_helpful"

    @classmethod
    def parse(cls, value: "Feedback | str") -> "Feedback":
        """
        Accept an enum member or its string value ('not helpful' is also
        accepted for 'not_helpful'). NONE is never a valid submission.
        """
        if isinstance(value, cls):
            fb = value
        else:
            key = str(value).strip().lower().replace(" ", "_").replace("-", "_")
            try:
                fb = cls(key)
            except ValueError as exc:
                raise ValueError(f"Unknown feedback value: {value!r}") from exc
        if fb is cls.NONE:
            raise ValueError("Feedback value must be 'helpful' or 'not_helpful'.")
        return fb


@dataclass(frozen=True)
class Message:
    """
    One entry in the conversation log.

    is_answered is only set on bot messages. feedback is the single field
    that ever changes, and only once, from NONE to a terminal value; the
    store applies that change by replacing the record.
    """
    id: int
    text: str
    sender: Sender
    created_at: datetime = field(default_factory=datetime.now)
    is_answered: Optional[bool] = None
    feedback: Feedback = Feedback.NONE

    @property
    def is_bot(self) -> bool:
        return self.sender is Sender.BOT
