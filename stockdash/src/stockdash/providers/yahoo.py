import logging
import concurrent.futures
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
import requests
import yfinance as yf
from pydantic import ValidationError as ModelValidationError

from ..errors import ProviderError, ValidationError
from ..models.prices import HistoryPoint
from ..models.quote import QuoteRecord, StockDetails

logger = logging.getLogger(__name__)

# yfinance talks through requests or curl_cffi depending on version; both
# raise OSError subclasses on network failure.
_TRANSPORT_ERRORS = (requests.RequestException, OSError)

# period keyword -> (days back, bar interval)
HISTORY_PERIODS: Dict[str, tuple] = {
    "1d": (1, "1d"),
    "5d": (5, "1d"),
    "1m": (30, "1d"),
    "6m": (180, "1d"),
    "1y": (365, "1d"),
    "5y": (5 * 365, "1wk"),
}


def _clean(value: Any) -> Any:
    """Map NaN-like values to None."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _display_name(info: Dict[str, Any], symbol: str) -> str:
    return info.get("shortName") or info.get("longName") or info.get("symbol") or symbol


def _get_info(symbol: str) -> Dict[str, Any]:
    try:
        info = yf.Ticker(symbol).info
    except _TRANSPORT_ERRORS as e:
        raise ProviderError(f"Yahoo request failed for {symbol}: {e}", {"symbol": symbol, "transport": True})
    except Exception as e:
        raise ProviderError(f"Yahoo lookup failed for {symbol}: {e}", {"symbol": symbol, "transport": False})

    # yfinance returns an empty or price-less dict for unknown symbols
    if not info or _clean(info.get("regularMarketPrice")) is None:
        raise ProviderError(f"No quote data for {symbol}", {"symbol": symbol, "transport": False})
    return info


def fetch_quote(symbol: str) -> QuoteRecord:
    """Fetch a single normalized quote from Yahoo Finance."""
    info = _get_info(symbol)
    try:
        return QuoteRecord(
            symbol=info.get("symbol") or symbol,
            displayName=_display_name(info, symbol),
            price=_clean(info.get("regularMarketPrice")),
            change=_clean(info.get("regularMarketChange")),
            changePercent=_clean(info.get("regularMarketChangePercent")),
            currency=info.get("currency"),
        )
    except ModelValidationError as e:
        raise ProviderError(f"Unexpected quote data for {symbol}: {e}", {"symbol": symbol, "transport": False})


def _normalize_symbols(symbols: Iterable[str]) -> List[str]:
    norm: List[str] = []
    for s in symbols:
        if not isinstance(s, str):
            continue
        s = s.strip()
        if s and s not in norm:
            norm.append(s)
    return norm


def fetch_quotes(symbols: Iterable[str], max_workers: int = 4) -> List[QuoteRecord]:
    """
    Fetch quotes for several symbols concurrently.

    Symbols that fail are logged and left out. An empty list means nothing
    resolved; ProviderError is raised only when every lookup failed on the
    network.
    """
    norm = _normalize_symbols(symbols)
    if not norm:
        raise ValidationError("At least one symbol is required.")

    logger.info(f"Fetching quotes for {len(norm)} symbol(s): {', '.join(norm)}")

    results: Dict[str, QuoteRecord] = {}
    failures: Dict[str, ProviderError] = {}

    with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = {executor.submit(fetch_quote, s): s for s in norm}
        for fut in concurrent.futures.as_completed(futures):
            symbol = futures[fut]
            try:
                results[symbol] = fut.result()
            except ProviderError as e:
                logger.warning(f"Dropping {symbol}: {e.message}")
                failures[symbol] = e

    if not results and failures and all(e.details.get("transport") for e in failures.values()):
        raise ProviderError(
            "Quote provider unreachable",
            {"symbols": norm, "errors": {s: e.message for s, e in failures.items()}},
        )

    quotes = [results[s] for s in norm if s in results]
    logger.info(f"Resolved {len(quotes)}/{len(norm)} quote(s)")
    return quotes


def fetch_stock_details(symbol: str) -> StockDetails:
    """Fetch the quote plus descriptive fields for one symbol."""
    symbol = (symbol or "").strip()
    if not symbol:
        raise ValidationError("Symbol is required.")

    info = _get_info(symbol)
    try:
        return StockDetails(
            symbol=info.get("symbol") or symbol,
            displayName=info.get("shortName") or info.get("symbol") or symbol,
            longName=info.get("longName"),
            price=_clean(info.get("regularMarketPrice")),
            change=_clean(info.get("regularMarketChange")),
            changePercent=_clean(info.get("regularMarketChangePercent")),
            currency=info.get("currency"),
            dayHigh=_clean(info.get("regularMarketDayHigh")),
            dayLow=_clean(info.get("regularMarketDayLow")),
            volume=_clean(info.get("regularMarketVolume")),
            averageVolume=_clean(info.get("averageVolume")),
            marketCap=_clean(info.get("marketCap")),
            fiftyTwoWeekHigh=_clean(info.get("fiftyTwoWeekHigh")),
            fiftyTwoWeekLow=_clean(info.get("fiftyTwoWeekLow")),
            trailingPE=_clean(info.get("trailingPE")),
            dividendYield=_clean(info.get("dividendYield")),
        )
    except ModelValidationError as e:
        raise ProviderError(f"Unexpected quote data for {symbol}: {e}", {"symbol": symbol, "transport": False})


def search_symbols(query: str, limit: int = 5) -> List[QuoteRecord]:
    """Search Yahoo for equities matching query and return their quotes."""
    query = (query or "").strip()
    if not query:
        raise ValidationError("Query is required.")

    try:
        raw_quotes = yf.Search(query, max_results=limit, news_count=0).quotes or []
    except Exception as e:
        logger.error(f"Yahoo search failed for {query!r}: {e}")
        raise ProviderError(f"Yahoo search failed: {e}", {"query": query})

    symbols = [
        q["symbol"]
        for q in raw_quotes[:limit]
        if isinstance(q, dict) and q.get("quoteType") == "EQUITY" and isinstance(q.get("symbol"), str)
    ]
    if not symbols:
        return []
    return fetch_quotes(symbols)


def fetch_history(symbol: str, period: str = "1y", now: Optional[datetime] = None) -> List[HistoryPoint]:
    """
    Fetch a close/volume series for symbol over a period keyword
    (1d, 5d, 1m, 6m, 1y, 5y). Weekly bars for 5y, daily otherwise.
    """
    symbol = (symbol or "").strip()
    if not symbol:
        raise ValidationError("Symbol is required.")
    if period not in HISTORY_PERIODS:
        raise ValidationError(
            f"Unknown period: {period}",
            {"allowed": list(HISTORY_PERIODS)},
        )

    days, interval = HISTORY_PERIODS[period]
    end = now or datetime.now()
    start = end - timedelta(days=days)

    try:
        df = yf.Ticker(symbol).history(start=start, end=end, interval=interval)
    except Exception as e:
        logger.error(f"Failed to fetch history for {symbol}: {e}")
        raise ProviderError(f"Yahoo history failed: {e}", {"symbol": symbol, "period": period})

    if df is None or df.empty:
        logger.warning(f"No price data for {symbol} ({period})")
        return []

    points = []
    for ts, row in df.iterrows():
        close = _clean(row.get("Close"))
        if close is None:
            continue
        volume = _clean(row.get("Volume"))
        points.append(HistoryPoint(
            date=ts.date(),
            closePrice=float(close),
            volume=int(volume) if volume is not None else 0,
        ))
    return points
