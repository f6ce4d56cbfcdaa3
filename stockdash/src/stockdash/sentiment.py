"""
Market-impact annotation of news articles.

The text-generation provider is asked for a strict two-line reply:

    MARKET IMPACT: <POSITIVE|NEGATIVE|NEUTRAL>
    Explanation: <2-3 sentences>

When structured output is enabled the same fields are requested as JSON and
the textual template is only used as a fallback parser.
"""

import json
import logging
import re
from typing import Optional

from . import extract
from .config import use_structured_sentiment
from .models.sentiment import MarketImpact, NO_EXPLANATION, SentimentResult
from .providers.gemini import GeminiClient

logger = logging.getLogger(__name__)

_IMPACT_RE = re.compile(r"MARKET IMPACT:\s*(POSITIVE|NEGATIVE|NEUTRAL)", re.IGNORECASE)
_EXPLANATION_RE = re.compile(r"Explanation:\s*(.*)")

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "impact": {"type": "STRING", "enum": [m.value for m in MarketImpact]},
        "explanation": {"type": "STRING"},
    },
    "required": ["impact", "explanation"],
}

PROMPT_TEMPLATE = """Analyze this stock market news and determine if it has a positive, negative, or neutral impact on the market. Provide a brief explanation.

News Title: {title}
Description: {body}

Please format your response as follows:
MARKET IMPACT: [POSITIVE/NEGATIVE/NEUTRAL]
Explanation: [2-3 sentences explaining why]"""


def build_prompt(title: str, body: str) -> str:
    return PROMPT_TEMPLATE.format(title=(title or "").strip(), body=(body or "").strip())


def parse_reply(text: Optional[str]) -> SentimentResult:
    """Parse the two-line template. A reply without an impact label is NEUTRAL."""
    text = text or ""
    impact_match = _IMPACT_RE.search(text)
    if not impact_match:
        return SentimentResult()

    explanation_match = _EXPLANATION_RE.search(text)
    explanation = explanation_match.group(1).strip() if explanation_match else ""
    return SentimentResult(
        impact=MarketImpact(impact_match.group(1).upper()),
        explanation=explanation or NO_EXPLANATION,
    )


def parse_structured(text: Optional[str]) -> SentimentResult:
    """Parse a JSON reply, falling back to the text template."""
    try:
        data = json.loads(text or "")
    except ValueError:
        return parse_reply(text)
    if not isinstance(data, dict):
        return parse_reply(text)

    label = str(data.get("impact") or "").strip().upper()
    if label not in MarketImpact.__members__:
        return parse_reply(text)

    explanation = data.get("explanation")
    explanation = explanation.strip() if isinstance(explanation, str) else ""
    return SentimentResult(impact=MarketImpact(label), explanation=explanation or NO_EXPLANATION)


def annotate(
    title: str,
    description: str,
    url: Optional[str] = None,
    client: Optional[GeminiClient] = None,
    structured: Optional[bool] = None,
) -> SentimentResult:
    """
    Classify an article's market impact with one generation request.

    When url is given the full article text is extracted first; the short
    description is used when extraction yields nothing. ProviderError from
    the generation request propagates so callers can offer a retry.
    """
    body = ""
    if url:
        body = extract.fetch_article_text(url)
    used_full_text = bool(body)
    if not used_full_text:
        body = description or ""

    client = client or GeminiClient()
    if structured is None:
        structured = use_structured_sentiment()

    prompt = build_prompt(title, body)
    if structured:
        reply = client.generate(prompt, response_schema=RESPONSE_SCHEMA)
        result = parse_structured(reply)
    else:
        reply = client.generate(prompt)
        result = parse_reply(reply)

    logger.info(f"Market impact for {(title or '')[:60]!r}: {result.impact.value}")
    return result.model_copy(update={"used_full_text": used_full_text})
