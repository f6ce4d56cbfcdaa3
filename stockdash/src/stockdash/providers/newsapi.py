import requests
import logging
from typing import Any, Dict, List, Optional
from pydantic import ValidationError as ModelValidationError
from ..errors import ProviderError, ValidationError
from ..models.news import NewsArticle, NewsPage
from ..config import get_news_api_key

logger = logging.getLogger(__name__)

BASE_URL = "https://newsapi.org/v2"

DEFAULT_QUERY = "stock market"
SORT_RECENCY = "publishedAt"
SORT_RELEVANCE = "relevancy"

# NewsAPI replaces pulled articles' fields with this marker
REDACTION_MARKER = "[Removed]"
MIN_DESCRIPTION_LENGTH = 50


def build_search_query(query: Optional[str]) -> str:
    """Widen a user query so it matches market coverage of the term."""
    query = (query or "").strip() or DEFAULT_QUERY
    if query == DEFAULT_QUERY:
        return "stock market OR financial markets OR wall street"
    return f"{query} stock OR {query} shares OR {query} company OR {query} market"


def _is_usable(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    source = item.get("source") or {}
    source_name = source.get("name") if isinstance(source, dict) else None
    fields = [item.get("title"), item.get("description"), item.get("urlToImage"), source_name]

    for value in fields:
        if not isinstance(value, str) or not value.strip():
            return False
        if REDACTION_MARKER in value:
            return False
    if not item.get("url"):
        return False
    return len(item["description"].strip()) > MIN_DESCRIPTION_LENGTH


def filter_articles(raw_articles: Any) -> List[NewsArticle]:
    """
    Keep only complete articles: title, description, image and source all
    present and unredacted, and a description long enough to summarize.
    """
    if not isinstance(raw_articles, list):
        return []

    articles = []
    for item in raw_articles:
        if not _is_usable(item):
            continue
        try:
            articles.append(NewsArticle(
                title=item["title"].strip(),
                description=item["description"].strip(),
                url=item["url"],
                urlToImage=item["urlToImage"],
                publishedAt=item.get("publishedAt"),
                source=item["source"]["name"].strip(),
            ))
        except ModelValidationError as e:
            logger.debug(f"Skipping article with bad fields: {e}")
    return articles


def fetch_news(
    query: str = DEFAULT_QUERY,
    page: int = 1,
    sort_by: str = SORT_RECENCY,
    page_size: int = 10,
) -> NewsPage:
    """
    Fetch one page of news from NewsAPI /everything.
    Reference: https://newsapi.org/docs/endpoints/everything
    """
    if page < 1:
        raise ValidationError("page must be >= 1.")
    if sort_by not in (SORT_RECENCY, SORT_RELEVANCE):
        raise ValidationError(f"Unsupported sort order: {sort_by}")

    api_key = get_news_api_key()
    if not api_key:
        raise ProviderError(
            "NEWS_API_KEY is missing or invalid. "
            "Please add it to your .env file.",
            {"retryable": False},
        )

    url = f"{BASE_URL}/everything"
    params = {
        "q": build_search_query(query),
        "page": page,
        "pageSize": page_size,
        "sortBy": sort_by,
        "language": "en",
        "apiKey": api_key,
    }

    try:
        resp = requests.get(url, params=params, timeout=10)
        resp.raise_for_status()
        data = resp.json()
    except requests.RequestException as e:
        logger.error(f"NewsAPI request failed: {e}")
        raise ProviderError(f"News fetch failed: {e}")
    except ValueError as e:
        logger.warning(f"NewsAPI returned non-JSON body: {e}")
        data = {}

    if not isinstance(data, dict):
        data = {}

    if data.get("status") == "error":
        message = data.get("message") or "Failed to fetch news"
        logger.error(f"NewsAPI error: {message}")
        raise ProviderError(message, {"code": data.get("code")})

    raw_articles = data.get("articles")
    articles = filter_articles(raw_articles)
    dropped = len(raw_articles) - len(articles) if isinstance(raw_articles, list) else 0
    if dropped:
        logger.info(f"Filtered out {dropped} incomplete article(s)")

    total = data.get("totalResults")
    return NewsPage(
        articles=articles,
        totalResults=total if isinstance(total, int) else 0,
        status=data.get("status") or "ok",
        page=page,
    )
