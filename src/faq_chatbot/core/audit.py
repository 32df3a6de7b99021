from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from faq_chatbot.core.knowledge_base import KnowledgeBase
from faq_chatbot.core.match_engine import normalize_query, resolve


@dataclass
class AuditEntryHit:
    """
    Keyword hits for a single knowledge base entry against one query.
    """
    entry_index: int
    keywords_hit: List[str]
    answer_preview: str


@dataclass
class ResolutionAudit:
    """
    Full picture of how a query was resolved.

    Unlike resolve(), which stops at the first match, this scans every entry
    so that ambiguous queries show which later entries were shadowed by the
    winner. It is meant for the developer view and for curation, not for
    answering users.
    """
    query: str
    normalized_query: str
    hits: List[AuditEntryHit]

    winning_index: Optional[int]
    shadowed_indices: List[int]

    answer: str
    matched: bool

    @property
    def is_ambiguous(self) -> bool:
        return len(self.shadowed_indices) > 0


def _preview(text: str, limit: int = 60) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def build_resolution_audit(query: str, knowledge_base: KnowledgeBase) -> ResolutionAudit:
    """
    Build the audit record for a query.

    This function:
      - Normalizes the query exactly as the match engine does
      - Records every entry with at least one keyword hit, in order
      - Marks the first such entry as the winner and the rest as shadowed
      - Takes the answer from resolve() so the audit shows what the user saw
    """
    normalized = normalize_query(query)

    hits: List[AuditEntryHit] = []
    for idx, entry in enumerate(knowledge_base.entries()):
        found = [kw for kw in entry.keywords if kw in normalized]
        if found:
            hits.append(
                AuditEntryHit(
                    entry_index=idx,
                    keywords_hit=found,
                    answer_preview=_preview(entry.answer),
                )
            )

    resolution = resolve(query, knowledge_base)
    winning_index = hits[0].entry_index if hits else None

    return ResolutionAudit(
        query=query,
        normalized_query=normalized,
        hits=hits,
        winning_index=winning_index,
        shadowed_indices=[h.entry_index for h in hits[1:]],
        answer=resolution.answer,
        matched=resolution.matched,
    )
