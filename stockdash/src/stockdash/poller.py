"""
Interval re-fetching of watchlist quotes.
"""

import logging
import threading
from typing import Callable, List, Optional

from .errors import ProviderError
from .models.quote import QuoteRecord
from .providers import yahoo

logger = logging.getLogger(__name__)


class QuotePoller:
    """
    Cancellable background task that fetches quotes for a changing symbol
    list every `interval` seconds.

    Results that arrive after stop() (or after a restart) are dropped
    instead of being handed to on_update.
    """

    def __init__(
        self,
        get_symbols: Callable[[], List[str]],
        on_update: Callable[[List[QuoteRecord]], None],
        on_error: Optional[Callable[[ProviderError], None]] = None,
        interval: float = 60,
        fetch: Callable[[List[str]], List[QuoteRecord]] = yahoo.fetch_quotes,
        before_poll: Optional[Callable[[], object]] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.get_symbols = get_symbols
        self.on_update = on_update
        self.on_error = on_error
        self.interval = interval
        self.fetch = fetch
        self.before_poll = before_poll

        self._stop_event = threading.Event()
        self._stop_event.set()
        self._cancelled = False
        self._generation = 0
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return not self._stop_event.is_set()

    def start(self):
        """Start polling; the first poll runs immediately."""
        if self.running:
            return
        self._generation += 1
        self._cancelled = False
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(self._generation, self._stop_event),
            name="quote-poller",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Quote poller started (interval: {self.interval}s)")

    def stop(self, timeout: Optional[float] = None):
        """Cancel future polls and wait for the current one to settle."""
        if not self.running:
            return
        self._cancelled = True
        self._stop_event.set()
        thread = self._thread
        if thread and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("Quote poller stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stopped. Returns True if the poller has stopped."""
        return self._stop_event.wait(timeout)

    def poll_once(self, generation: Optional[int] = None) -> Optional[List[QuoteRecord]]:
        """
        Run a single poll. Returns the delivered quotes, or None when the
        poll failed or its result was discarded.
        """
        generation = self._generation if generation is None else generation

        if self.before_poll is not None:
            self.before_poll()

        symbols = self.get_symbols()
        quotes: List[QuoteRecord] = []
        if symbols:
            try:
                quotes = self.fetch(symbols)
            except ProviderError as e:
                if self._is_current(generation):
                    logger.error(f"Quote refresh failed: {e.message}")
                    if self.on_error:
                        self.on_error(e)
                return None

        if not self._is_current(generation):
            logger.debug("Discarding quotes that resolved after the poller stopped")
            return None

        self.on_update(quotes)
        return quotes

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and not self._cancelled

    def _run(self, generation: int, stop_event: threading.Event):
        while not stop_event.is_set():
            try:
                self.poll_once(generation)
            except Exception:
                logger.exception("Unexpected error in quote poller")
            stop_event.wait(self.interval)
