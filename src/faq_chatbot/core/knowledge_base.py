from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Tuple

import logging
import math

logger = logging.getLogger(__name__)


class KnowledgeBaseError(ValueError):
    """Raised when knowledge base entries are missing or malformed."""


@dataclass(frozen=True)
class KnowledgeBaseEntry:
    """
    One FAQ entry: a set of trigger keywords and the canonical answer.

    Keywords are stored lowercased, in the order they were configured, so the
    entry renders the same way it was written. Matching treats them as a set.
    """
    keywords: Tuple[str, ...]
    answer: str

    @classmethod
    def build(cls, keywords: Iterable[Any], answer: Any) -> "KnowledgeBaseEntry":
        cleaned: List[str] = []
        for kw in keywords or ():
            text = str(kw).lower()
            if not text.strip():
                continue
            if text not in cleaned:
                cleaned.append(text)

        missing = answer is None or (isinstance(answer, float) and math.isnan(answer))
        answer_text = "" if missing else str(answer)

        if not cleaned:
            raise KnowledgeBaseError(f"Knowledge base entry has no keywords (answer={answer_text[:40]!r}).")
        if not answer_text.strip():
            raise KnowledgeBaseError(f"Knowledge base entry has an empty answer (keywords={cleaned}).")

        return cls(keywords=tuple(cleaned), answer=answer_text)


class KnowledgeBase:
    """
    Immutable, ordered collection of KnowledgeBaseEntry.

    Order is significant: when several entries match the same query, the
    earliest one wins.
    """

    def __init__(self, entries: Iterable[KnowledgeBaseEntry]):
        self._entries: Tuple[KnowledgeBaseEntry, ...] = tuple(entries)
        for entry in self._entries:
            if not isinstance(entry, KnowledgeBaseEntry):
                raise KnowledgeBaseError(f"Unexpected knowledge base entry type: {type(entry)}")

    @classmethod
    def from_records(cls, records: Sequence[Dict[str, Any]]) -> "KnowledgeBase":
        """
        Build a knowledge base from plain dicts with 'keywords' and 'answer'.

        'keywords' may be a list of strings or a single comma-separated string.
        """
        entries: List[KnowledgeBaseEntry] = []
        for idx, rec in enumerate(records):
            if not isinstance(rec, dict):
                raise KnowledgeBaseError(f"Record {idx} is not a mapping: {type(rec)}")
            raw_keywords = rec.get("keywords")
            if isinstance(raw_keywords, str):
                raw_keywords = [k.strip() for k in raw_keywords.split(",")]
            try:
                entries.append(KnowledgeBaseEntry.build(raw_keywords or [], rec.get("answer")))
            except KnowledgeBaseError as exc:
                raise KnowledgeBaseError(f"Record {idx}: {exc}") from exc
        logger.debug("Built knowledge base with %d entries.", len(entries))
        return cls(entries)

    def entries(self) -> Tuple[KnowledgeBaseEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)


# ---------------------------------------------------------------------------
# Built-in FAQ content
# ---------------------------------------------------------------------------

DEFAULT_FAQ_RECORDS: List[Dict[str, Any]] = [
    {
        "keywords": ["hello", "hi", "hey", "greetings"],
        "answer": "Hello! How can I assist you today regarding our services?",
    },
    {
        "keywords": ["services", "offer", "what do you do", "provide"],
        "answer": (
            "We offer a wide range of services including product support, technical assistance, "
            "and general information about our company."
        ),
    },
    {
        "keywords": ["contact", "support", "reach out", "phone", "email"],
        "answer": (
            "You can contact our support team via email at support@example.com "
            "or call us at 1-800-123-4567 during business hours."
        ),
    },
    {
        "keywords": ["pricing", "cost", "how much", "price"],
        "answer": (
            "Our pricing varies depending on the service. Please visit our 'Pricing' page "
            "on the website or contact sales for a detailed quote."
        ),
    },
    {
        "keywords": ["account", "login", "password", "reset"],
        "answer": (
            "For account-related issues, please visit our 'Account Management' section "
            "or use the 'Forgot Password' link on the login page."
        ),
    },
    {
        "keywords": ["shipping", "delivery", "order status"],
        "answer": (
            "You can track your order status by logging into your account or by entering "
            "your order number on our 'Order Tracking' page."
        ),
    },
    {
        "keywords": ["return", "refund", "exchange"],
        "answer": (
            "Please refer to our 'Return Policy' page for detailed information on returns, "
            "refunds, and exchanges. Most items can be returned within 30 days."
        ),
    },
    {
        "keywords": ["features", "product capabilities", "what can it do"],
        "answer": (
            "Our product boasts features like real-time analytics, customizable dashboards, "
            "and seamless integration with popular tools. Visit our product page for more details!"
        ),
    },
    {
        "keywords": ["security", "data protection", "safe"],
        "answer": (
            "We prioritize your data security with industry-standard encryption, regular audits, "
            "and strict privacy policies. Your information is safe with us."
        ),
    },
    {
        "keywords": ["payment methods", "credit card", "paypal"],
        "answer": (
            "We accept various payment methods including major credit cards "
            "(Visa, MasterCard, Amex), PayPal, and bank transfers."
        ),
    },
]


def default_knowledge_base() -> KnowledgeBase:
    return KnowledgeBase.from_records(DEFAULT_FAQ_RECORDS)
