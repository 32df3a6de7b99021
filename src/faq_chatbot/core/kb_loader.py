from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import logging

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from faq_chatbot.config import (
    FAQ_KNOWLEDGE_BASE_PATH,
    FAQ_KNOWLEDGE_BASE_TIMEOUT_SECONDS,
    FAQ_KNOWLEDGE_BASE_URL,
)
from faq_chatbot.core.knowledge_base import (
    KnowledgeBase,
    KnowledgeBaseError,
    default_knowledge_base,
)

logger = logging.getLogger(__name__)

KEYWORDS_COL = "keywords"
ANSWER_COL = "answer"

# In-memory cache of the knowledge base built at startup
_KB_CACHE: Optional[KnowledgeBase] = None


# ---------------------------------------------------------------------------
# Remote source (JSON endpoint)
# ---------------------------------------------------------------------------

def _build_retry_session() -> requests.Session:
    """
    Build a requests Session with conservative retries for the FAQ endpoint.
    """
    session = requests.Session()

    retry = Retry(
        total=3,
        connect=3,
        read=3,
        status=3,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET"}),
        raise_on_status=False,
    )

    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    return session


_SESSION: Optional[requests.Session] = None


def _get_session() -> requests.Session:
    global _SESSION
    if _SESSION is None:
        _SESSION = _build_retry_session()
    return _SESSION


def fetch_knowledge_base_records(url: str, timeout_seconds: int = FAQ_KNOWLEDGE_BASE_TIMEOUT_SECONDS) -> List[Dict[str, Any]]:
    """
    GET a JSON list of {"keywords": [...], "answer": "..."} records.

    A wrapping object of the form {"faqs": [...]} is also accepted.
    """
    try:
        resp = _get_session().get(url, timeout=timeout_seconds)
    except Exception as exc:
        raise KnowledgeBaseError(f"HTTP error while fetching knowledge base from {url}: {exc}") from exc

    if resp.status_code != 200:
        preview = (resp.text or "")[:200]
        raise KnowledgeBaseError(f"Knowledge base endpoint returned status={resp.status_code}. Preview: {preview}")

    try:
        data = resp.json()
    except Exception as exc:
        preview = (resp.text or "")[:200]
        raise KnowledgeBaseError(f"Non-JSON response from knowledge base endpoint. Preview: {preview}") from exc

    return _unwrap_records(data)


def _unwrap_records(data: Any) -> List[Dict[str, Any]]:
    # Bare list of records, or {"faqs": [...]}
    if isinstance(data, dict):
        data = data.get("faqs")

    if not isinstance(data, list):
        raise KnowledgeBaseError(f"Unexpected knowledge base payload type: {type(data)}")

    return data


# ---------------------------------------------------------------------------
# Local file source (CSV / Excel / JSON)
# ---------------------------------------------------------------------------

def _read_table(path: Path) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path, dtype=str, keep_default_na=False)
    if suffix in {".xlsx", ".xls"}:
        return pd.read_excel(path, dtype=str, keep_default_na=False)
    if suffix == ".json":
        records = _unwrap_records(json.loads(path.read_text(encoding="utf-8")))
        return pd.DataFrame.from_records(records)
    raise KnowledgeBaseError(f"Unsupported knowledge base file type: {path.suffix!r} ({path})")


def _is_missing(val: Any) -> bool:
    if val is None:
        return True
    try:
        return bool(pd.isna(val))
    except (TypeError, ValueError):
        return False


def _split_keywords(val: Any) -> List[str]:
    if isinstance(val, (list, tuple)):
        return [str(v) for v in val]
    if _is_missing(val):
        return []
    return [p.strip() for p in str(val).split(",") if p.strip()]


def _answer_text(val: Any) -> str:
    # Missing cells must not become the string "nan"
    if _is_missing(val):
        return ""
    return str(val)


def load_knowledge_base_file(path: str | Path) -> KnowledgeBase:
    """
    Load FAQ entries from a table with 'keywords' and 'answer' columns.

    Column names are matched case-insensitively. Row order is preserved and
    becomes the matching precedence.
    """
    path = Path(path)
    if not path.exists():
        raise KnowledgeBaseError(f"Knowledge base file not found: {path}")

    try:
        df = _read_table(path)
    except KnowledgeBaseError:
        raise
    except Exception as exc:
        raise KnowledgeBaseError(f"Could not read knowledge base file {path}: {exc}") from exc

    lower = {str(c).strip().lower(): c for c in df.columns}
    kw_col = lower.get(KEYWORDS_COL)
    ans_col = lower.get(ANSWER_COL)
    if not (kw_col and ans_col):
        raise KnowledgeBaseError(
            f"Knowledge base file {path} does not contain the expected columns ('keywords', 'answer')."
        )

    records: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        records.append(
            {
                "keywords": _split_keywords(row[kw_col]),
                "answer": _answer_text(row[ans_col]),
            }
        )

    kb = KnowledgeBase.from_records(records)
    logger.info("Loaded %d knowledge base entries from %s", len(kb), path)
    return kb


# ---------------------------------------------------------------------------
# Startup entry point
# ---------------------------------------------------------------------------

def load_knowledge_base(
    *,
    url: Optional[str] = None,
    path: Optional[str | Path] = None,
    refresh: bool = False,
) -> KnowledgeBase:
    """
    Return the process-wide knowledge base, cached in memory.

    Source precedence: url, then path, then built-in defaults. Explicit
    arguments override FAQ_KNOWLEDGE_BASE_URL / FAQ_KNOWLEDGE_BASE_PATH.
    """
    global _KB_CACHE
    if _KB_CACHE is not None and not refresh:
        return _KB_CACHE

    src_url = (url if url is not None else FAQ_KNOWLEDGE_BASE_URL).strip()
    src_path = str(path if path is not None else FAQ_KNOWLEDGE_BASE_PATH).strip()

    if src_url:
        logger.info("Loading knowledge base from %s", src_url)
        kb = KnowledgeBase.from_records(fetch_knowledge_base_records(src_url))
    elif src_path:
        kb = load_knowledge_base_file(src_path)
    else:
        kb = default_knowledge_base()
        logger.info("Using built-in knowledge base (%d entries).", len(kb))

    if len(kb) == 0:
        raise KnowledgeBaseError("Knowledge base is empty.")

    _KB_CACHE = kb
    return kb
