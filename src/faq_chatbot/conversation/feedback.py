from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotEmpty:
    """No message is currently eligible for feedback."""


@dataclass(frozen=True)
class SlotHolding:
    """Exactly one bot message is eligible for feedback."""
    message_id: int


SlotState = Union[SlotEmpty, SlotHolding]

EMPTY = SlotEmpty()


class FeedbackTracker:
    """
    Single outstanding feedback slot.

    Transitions:
      - empty        -> holding(id)   open(id)
      - holding(id)  -> holding(id')  open(id'), the old slot is discarded unanswered
      - holding(id)  -> empty         close(id)
    """

    def __init__(self) -> None:
        self._state: SlotState = EMPTY

    @property
    def state(self) -> SlotState:
        return self._state

    @property
    def open_message_id(self) -> Optional[int]:
        if isinstance(self._state, SlotHolding):
            return self._state.message_id
        return None

    def holds(self, message_id: int) -> bool:
        return isinstance(self._state, SlotHolding) and self._state.message_id == message_id

    def open(self, message_id: int) -> None:
        if isinstance(self._state, SlotHolding):
            logger.debug(
                "Feedback slot moved from message %s to %s without feedback.",
                self._state.message_id,
                message_id,
            )
        self._state = SlotHolding(message_id=message_id)

    def close(self, message_id: int) -> None:
        if not self.holds(message_id):
            raise ValueError(f"Feedback slot does not hold message {message_id}.")
        self._state = EMPTY

    def reset(self) -> None:
        self._state = EMPTY
