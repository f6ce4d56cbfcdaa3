import os
import logging
from pathlib import Path
from typing import Optional

# Keys live in a local .env next to where the CLI runs. Values already
# exported in the shell take precedence.

logger = logging.getLogger(__name__)

_PLACEHOLDERS = {"", "your_key_here", "changeme"}

DEFAULT_DB_PATH = "stockdash.db"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_POLL_INTERVAL = 60.0


def load_env_file(path: str = ".env"):
    """
    Load environment variables from a .env file into os.environ.
    Does not override existing values.
    """
    p = Path(path)
    if not p.exists():
        return

    try:
        with open(p) as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                if '=' in line:
                    key, val = line.split('=', 1)
                    key = key.strip()
                    val = val.strip().strip('"').strip("'")
                    if key not in os.environ:
                        os.environ[key] = val
    except OSError as e:
        logger.warning(f"Failed to load .env: {e}")

# Load on import
load_env_file()


def _get_key(name: str) -> Optional[str]:
    key = os.environ.get(name)
    # Handle the template default left by user
    if not key or key.strip() in _PLACEHOLDERS:
        return None
    return key.strip()


def get_news_api_key() -> Optional[str]:
    """NewsAPI key, or None when unset."""
    return _get_key("NEWS_API_KEY")


def get_gemini_key() -> Optional[str]:
    """Gemini API key, or None when unset."""
    return _get_key("GEMINI_API_KEY")


def get_gemini_model() -> str:
    return os.environ.get("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL


def get_db_path() -> str:
    """Path of the SQLite file holding the watchlist."""
    return os.environ.get("STOCKDASH_DB") or DEFAULT_DB_PATH


def get_poll_interval() -> float:
    raw = os.environ.get("STOCKDASH_POLL_INTERVAL")
    if not raw:
        return DEFAULT_POLL_INTERVAL
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid STOCKDASH_POLL_INTERVAL={raw!r}")
        return DEFAULT_POLL_INTERVAL
    return value if value > 0 else DEFAULT_POLL_INTERVAL


def use_structured_sentiment() -> bool:
    """Ask Gemini for JSON output instead of the two-line text template."""
    raw = os.environ.get("STOCKDASH_STRUCTURED_SENTIMENT", "1")
    return raw.strip().lower() not in ("0", "false", "no", "off")
