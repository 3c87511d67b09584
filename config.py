from __future__ import annotations

import getpass
import logging
import os
from pathlib import Path


API_URL = os.environ.get("TYPING_API_URL", "http://127.0.0.1:8000").rstrip("/")
IDENTITY_HEADER = os.environ.get("TYPING_IDENTITY_HEADER", "X-Forwarded-User")

DATA_DIR = Path.home() / ".typing-trivia"
DATA_FILE = Path(os.environ.get("TYPING_DATA_FILE", DATA_DIR / "store.json"))

SCORE_FORMULA = os.environ.get("TYPING_SCORE_FORMULA", "weighted")
RANKING_LIMIT = int(os.environ.get("TYPING_RANKING_LIMIT", "10"))
QUESTION_COUNT = int(os.environ.get("TYPING_QUESTION_COUNT", "10"))
# Empty means prompts are served untranslated.
TRANSLATE_TO = os.environ.get("TYPING_TRANSLATE_TO", "")

ADVANCE_DELAY_S = 0.1
TICK_INTERVAL_S = 1.0
HTTP_TIMEOUT_S = 8

LOG_LEVEL = os.environ.get("TYPING_LOG_LEVEL", "INFO")


def current_user() -> str:
    return os.environ.get("TYPING_USER") or getpass.getuser()


def configure_logging(level: str = LOG_LEVEL, handlers: list[logging.Handler] | None = None) -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
