from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import logging

from faq_chatbot.config import FALLBACK_ANSWER
from faq_chatbot.core.knowledge_base import KnowledgeBase, KnowledgeBaseEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """
    Outcome of resolving one query against the knowledge base.

    entry_index / matched_keyword identify the winning entry and the keyword
    that triggered it; both are None when the fallback answer is returned.
    """
    answer: str
    matched: bool
    entry_index: Optional[int] = None
    matched_keyword: Optional[str] = None


def normalize_query(query: str) -> str:
    # Lowercase only: no trimming, stemming or tokenization.
    return query.lower()


def _first_keyword_hit(entry: KnowledgeBaseEntry, normalized_query: str) -> Optional[str]:
    for keyword in entry.keywords:
        if keyword in normalized_query:
            return keyword
    return None


def find_first_match(query: str, knowledge_base: KnowledgeBase) -> Optional[Tuple[int, KnowledgeBaseEntry, str]]:
    """
    Linear scan of the knowledge base in its fixed order.

    Returns (index, entry, keyword) for the first entry with any keyword
    contained in the normalized query, or None.
    """
    normalized = normalize_query(query)
    for idx, entry in enumerate(knowledge_base.entries()):
        keyword = _first_keyword_hit(entry, normalized)
        if keyword is not None:
            return idx, entry, keyword
    return None


def resolve(query: str, knowledge_base: KnowledgeBase) -> Resolution:
    """
    Map a query to the answer of the earliest matching entry.

    Never raises for string input; no match yields FALLBACK_ANSWER with
    matched=False. Recording unmatched queries is the caller's job.
    """
    hit = find_first_match(query, knowledge_base)
    if hit is None:
        logger.debug("No knowledge base entry matched query %r.", query)
        return Resolution(answer=FALLBACK_ANSWER, matched=False)

    idx, entry, keyword = hit
    logger.debug("Query %r matched entry %d via keyword %r.", query, idx, keyword)
    return Resolution(answer=entry.answer, matched=True, entry_index=idx, matched_keyword=keyword)
