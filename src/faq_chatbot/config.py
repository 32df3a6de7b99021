from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------

# Root of the project (repo root)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Data directory (optional knowledge base files live here)
DATA_DIR = PROJECT_ROOT / "data"

# ---------------------------------------------------------------------------
# App identity
# ---------------------------------------------------------------------------

APP_NAME = "AI FAQ Chatbot"
APP_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Conversation behaviour
# ---------------------------------------------------------------------------

# Fixed delay between a user submission and the bot reply.
FAQ_RESPONSE_DELAY_SECONDS = float(os.getenv("FAQ_RESPONSE_DELAY_SECONDS", "0.5"))

FALLBACK_ANSWER = (
    "I'm sorry, I couldn't find an answer to that question. "
    "Could you please rephrase it or try a different query?"
)

# ---------------------------------------------------------------------------
# Knowledge base sources
#
# Precedence when building the knowledge base:
#   1. FAQ_KNOWLEDGE_BASE_URL  (JSON list of {"keywords": [...], "answer": "..."})
#   2. FAQ_KNOWLEDGE_BASE_PATH (CSV / XLSX / JSON file with keywords + answer columns)
#   3. Built-in default FAQ entries
# ---------------------------------------------------------------------------

FAQ_KNOWLEDGE_BASE_URL = os.getenv("FAQ_KNOWLEDGE_BASE_URL", "").strip()
FAQ_KNOWLEDGE_BASE_PATH = os.getenv("FAQ_KNOWLEDGE_BASE_PATH", "").strip()

# Timeout for the remote knowledge base fetch
FAQ_KNOWLEDGE_BASE_TIMEOUT_SECONDS = int(os.getenv("FAQ_KNOWLEDGE_BASE_TIMEOUT_SECONDS", "30"))

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

FAQ_LOG_LEVEL = os.getenv("FAQ_LOG_LEVEL", "INFO").strip().upper() or "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
