import logging
import re

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

_USER_AGENT = "Mozilla/5.0 (stockdash content extractor)"

STRIP_TAGS = ["script", "style", "nav", "header", "footer", "iframe", "noscript"]

# Tried in order; the first selector with any match wins.
CONTENT_SELECTORS = [
    "article",
    ".article-content",
    ".post-content",
    ".entry-content",
    ".content",
    "#content",
    "main",
    ".main-content",
]

_WS_RE = re.compile(r"\s+")


def _normalize(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def extract_text(html_text: str) -> str:
    """Best-guess main article text of an HTML page, whitespace-collapsed."""
    if not html_text:
        return ""

    soup = BeautifulSoup(html_text, "html.parser")
    for el in soup.find_all(STRIP_TAGS):
        el.decompose()

    content = ""
    for selector in CONTENT_SELECTORS:
        matches = soup.select(selector)
        if matches:
            content = " ".join(m.get_text(" ") for m in matches)
            break

    content = _normalize(content)
    if not content:
        body = soup.body or soup
        content = _normalize(body.get_text(" "))
    return content


def fetch_article_text(url: str, timeout: float = 15) -> str:
    """
    Download url and extract its article text.
    Returns "" when the page cannot be fetched.
    """
    try:
        resp = requests.get(url, headers={"User-Agent": _USER_AGENT}, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Content fetch failed for {url}: {e}")
        return ""

    text = extract_text(resp.text)
    logger.debug(f"Extracted {len(text)} chars from {url}")
    return text
