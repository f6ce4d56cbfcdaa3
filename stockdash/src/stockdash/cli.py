import sys
import json
import click
import logging
import threading
from .errors import format_error, ProviderError, ValidationError
from .logging import configure_logging
from .config import get_db_path, get_poll_interval
from .providers import yahoo, newsapi
from .watchlist.storage import SQLiteStorage, MemoryStorage
from .watchlist.store import WatchlistStore
from .watchlist.seed import load_seed
from .poller import QuotePoller
from . import extract as content_extract
from . import sentiment

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def _print_json(data, **meta):
    """Helper to print standard JSON envelope."""
    payload = {
        "ok": True,
        "data": data,
        "meta": {
            "version": 1,
            **meta
        }
    }
    click.echo(json.dumps(payload, indent=2, default=str))


def _split_symbols(raw: str):
    symbols = [s.strip().upper() for s in (raw or "").split(',') if s.strip()]
    if not symbols:
        raise click.BadParameter("symbols must include at least one symbol.")
    return symbols


def _clean_symbol(ctx, param, value):
    symbol = (value or "").strip().upper()
    if not symbol:
        raise click.BadParameter("symbol must be a non-empty ticker.")
    return symbol


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def cli(verbose):
    """stockdash: quotes, news and market-impact analysis from the terminal."""
    configure_logging(verbose=verbose)


@cli.command()
@click.option("--symbols", required=True, help="Comma-separated symbols (e.g. AAPL,MSFT)")
@click.option("--workers", default=4, show_default=True, type=int, help="Max parallel lookups")
def quotes(symbols, workers):
    """Fetch quotes; symbols that fail to resolve are left out."""
    if workers < 1:
        raise click.BadParameter("--workers must be >= 1.")
    symbol_list = _split_symbols(symbols)
    records = yahoo.fetch_quotes(symbol_list, max_workers=workers)
    _print_json(
        [r.model_dump(mode="json", by_alias=True) for r in records],
        requested=symbol_list,
        empty=not records,
    )


@cli.command()
@click.option("--symbol", required=True, callback=_clean_symbol, help="Stock ticker symbol")
def stock(symbol):
    """Fetch quote and key statistics for one symbol."""
    details = yahoo.fetch_stock_details(symbol)
    _print_json(details.model_dump(mode="json", by_alias=True))


@cli.command()
@click.option("--query", required=True, help="Company name or ticker fragment")
@click.option("--limit", default=5, show_default=True, type=int, help="Max search hits to quote")
def search(query, limit):
    """Search equities and return their quotes."""
    query = (query or "").strip()
    if not query:
        raise click.BadParameter("query must be a non-empty string.")
    records = yahoo.search_symbols(query, limit=limit)
    _print_json([r.model_dump(mode="json", by_alias=True) for r in records], query=query)


@cli.command()
@click.option("--symbol", required=True, callback=_clean_symbol, help="Stock ticker symbol")
@click.option("--period", default="1y", show_default=True, type=click.Choice(list(yahoo.HISTORY_PERIODS)), help="History period")
def history(symbol, period):
    """Fetch a historical close/volume series."""
    points = yahoo.fetch_history(symbol, period)
    _print_json(
        [p.model_dump(mode="json", by_alias=True) for p in points],
        symbol=symbol,
        period=period,
        interval=yahoo.HISTORY_PERIODS[period][1],
    )


@cli.command()
@click.option("--query", default=newsapi.DEFAULT_QUERY, show_default=True, help="Search query")
@click.option("--page", default=1, show_default=True, type=int, help="Result page")
@click.option("--page-size", default=10, show_default=True, type=int, help="Articles per page")
@click.option("--sort", "sort", default="recency", show_default=True, type=click.Choice(["recency", "relevance"]), help="Result ordering")
def news(query, page, page_size, sort):
    """Fetch a page of market news."""
    if page < 1:
        raise click.BadParameter("--page must be >= 1.")
    if page_size < 1 or page_size > 100:
        raise click.BadParameter("--page-size must be between 1 and 100.")

    sort_by = newsapi.SORT_RELEVANCE if sort == "relevance" else newsapi.SORT_RECENCY
    result = newsapi.fetch_news(query=query, page=page, sort_by=sort_by, page_size=page_size)
    _print_json(result.model_dump(mode="json", by_alias=True))


@cli.command("extract")
@click.option("--url", required=True, help="Article URL")
def extract_cmd(url):
    """Extract the main text of an article page."""
    text = content_extract.fetch_article_text(url)
    _print_json({"url": url, "content": text}, empty=not text)


@cli.command()
@click.option("--title", required=True, help="Article title")
@click.option("--description", default="", help="Short description, used when no full text is available")
@click.option("--url", default=None, help="Article URL to extract full text from")
@click.option("--text-template", is_flag=True, help="Ask for the two-line text reply instead of JSON")
def analyze(title, description, url, text_template):
    """Classify the market impact of a news article."""
    if not (description or url):
        raise click.BadParameter("Provide --description or --url.")
    result = sentiment.annotate(
        title,
        description,
        url=url,
        structured=False if text_template else None,
    )
    _print_json(result.model_dump(mode="json"))


@cli.group()
@click.option("--no-persist", is_flag=True, help="Keep the watchlist in memory only")
@click.pass_context
def watchlist(ctx, no_persist):
    """Manage the local watchlist."""
    storage = MemoryStorage() if no_persist else SQLiteStorage(get_db_path())
    store = WatchlistStore(storage)
    store.load()
    ctx.obj = store


def _store_meta(store: WatchlistStore):
    return {"persistent": store.persistent}


@watchlist.command("list")
@click.pass_obj
def watchlist_list(store):
    """Show tracked symbols."""
    _print_json(store.symbols(), **_store_meta(store))


@watchlist.command("add")
@click.argument("symbols", nargs=-1, required=True)
@click.pass_obj
def watchlist_add(store, symbols):
    """Add one or more symbols."""
    added = []
    for raw in symbols:
        symbol = raw.strip().upper()
        if not symbol:
            raise click.BadParameter("symbols must be non-empty.")
        if store.add(symbol):
            added.append(symbol)
    _print_json({"added": added, "symbols": store.symbols()}, **_store_meta(store))


@watchlist.command("remove")
@click.argument("symbols", nargs=-1, required=True)
@click.pass_obj
def watchlist_remove(store, symbols):
    """Remove one or more symbols."""
    removed = [s.strip().upper() for s in symbols if store.remove(s.strip().upper())]
    _print_json({"removed": removed, "symbols": store.symbols()}, **_store_meta(store))


@watchlist.command("import")
@click.option("--file", "path", default="watchlist.yaml", show_default=True, help="YAML file with watchlist.symbols")
@click.pass_obj
def watchlist_import(store, path):
    """Add every symbol listed in a YAML file."""
    added = [s for s in load_seed(path) if store.add(s)]
    _print_json({"added": added, "symbols": store.symbols()}, **_store_meta(store))


@watchlist.command("watch")
@click.option("--interval", default=None, type=float, help="Seconds between refreshes (default: STOCKDASH_POLL_INTERVAL or 60)")
@click.option("--count", default=0, type=int, help="Stop after this many refreshes (0 = until interrupted)")
@click.pass_obj
def watchlist_watch(store, interval, count):
    """
    Print fresh quotes for the watchlist every interval.
    Re-reads the stored watchlist before each refresh.
    """
    interval = interval if interval is not None else get_poll_interval()
    if interval <= 0:
        raise click.BadParameter("--interval must be > 0.")
    if count < 0:
        raise click.BadParameter("--count must be >= 0.")

    done = threading.Event()
    state = {"updates": 0}

    def _tick():
        state["updates"] += 1
        if count and state["updates"] >= count:
            done.set()

    def _on_update(records):
        _print_json(
            [r.model_dump(mode="json", by_alias=True) for r in records],
            symbols=store.symbols(),
            empty=not records,
        )
        _tick()

    def _on_error(err: ProviderError):
        click.echo(format_error(err))
        _tick()

    poller = QuotePoller(
        get_symbols=store.symbols,
        on_update=_on_update,
        on_error=_on_error,
        interval=interval,
        fetch=yahoo.fetch_quotes,
        before_poll=store.revalidate,
    )
    poller.start()
    try:
        while not done.wait(0.5):
            pass
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        poller.stop(timeout=5)


@cli.command()
def version():
    """Print version information."""
    _print_json({"version": VERSION})


def main():
    """Entry point for the CLI."""
    try:
        cli(standalone_mode=False)
    except Exception as e:
        if isinstance(e, click.exceptions.Exit):
             sys.exit(e.exit_code)
        if isinstance(e, click.exceptions.Abort):
             sys.exit(130)

        # Click usage errors (missing args) raise UsageError
        # convert them to JSON
        if isinstance(e, click.exceptions.UsageError):
             print(format_error(ValidationError(e.format_message())))
             sys.exit(2)

        print(format_error(e))
        sys.exit(1)

if __name__ == "__main__":
    main()
