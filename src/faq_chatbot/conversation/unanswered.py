from __future__ import annotations

from typing import List, Tuple

import logging

import pandas as pd

logger = logging.getLogger(__name__)


class UnansweredLog:
    """
    Append-only record of queries the knowledge base could not answer.

    Duplicates are kept; how often a query repeats is what curation looks at.
    """

    def __init__(self) -> None:
        self._queries: List[str] = []

    def record(self, query: str) -> None:
        self._queries.append(query)
        logger.info("Unanswered query recorded (%d total): %r", len(self._queries), query)

    def all(self) -> Tuple[str, ...]:
        return tuple(self._queries)

    def __len__(self) -> int:
        return len(self._queries)

    def clear(self) -> None:
        self._queries.clear()

    def counts(self) -> pd.DataFrame:
        """
        Frequency table of unanswered queries.

        Columns: query, count. Sorted by count (descending), ties kept in
        order of first appearance.
        """
        if not self._queries:
            return pd.DataFrame({"query": pd.Series(dtype=str), "count": pd.Series(dtype=int)})

        df = pd.DataFrame({"query": self._queries})
        out = (
            df.groupby("query", sort=False)
            .size()
            .reset_index(name="count")
            .sort_values("count", ascending=False, kind="stable")
            .reset_index(drop=True)
        )
        return out

    def to_csv(self) -> str:
        """CSV export of the raw log, one row per unanswered query."""
        return pd.DataFrame({"query": self._queries}).to_csv(index=False)
