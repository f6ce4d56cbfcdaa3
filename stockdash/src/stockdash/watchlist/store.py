import json
import logging
from typing import List, Optional

from ..errors import StorageError, ValidationError
from .storage import StoragePort

logger = logging.getLogger(__name__)

DEFAULT_KEY = "watchlist"


def _decode(raw: str) -> Optional[List[str]]:
    """
    Parse a persisted watchlist. Returns None when the value is not a JSON
    array of non-empty strings. Duplicates collapse to the first occurrence.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, list):
        return None

    symbols: List[str] = []
    for item in data:
        if not isinstance(item, str) or not item.strip():
            return None
        if item not in symbols:
            symbols.append(item)
    return symbols


class WatchlistStore:
    """
    Ordered set of tracked symbols, written through to a storage port.

    The in-memory list is authoritative for this process: storage read and
    write failures are logged and never raised to the caller.
    """

    def __init__(self, storage: StoragePort, key: str = DEFAULT_KEY):
        self.storage = storage
        self.key = key
        self.persistent = True
        self._symbols: List[str] = []
        # symbols added while storage was unreachable
        self._unsaved: List[str] = []

    def load(self) -> List[str]:
        """Rehydrate from storage. Missing or corrupt data yields an empty list."""
        try:
            raw = self.storage.get(self.key)
        except StorageError as e:
            logger.warning(f"Watchlist storage unavailable, continuing in memory: {e}")
            self.persistent = False
            self._symbols = []
            self._unsaved = []
            return self.symbols()

        self.persistent = True
        self._unsaved = []
        self._symbols = self._parse_or_clear(raw)
        return self.symbols()

    def revalidate(self) -> List[str]:
        """
        Re-read storage to pick up changes made by another process.
        Last writer wins; on read failure the current list is kept. When
        storage comes back, symbols added while it was unreachable are
        appended to the stored list and written through.
        """
        try:
            raw = self.storage.get(self.key)
        except StorageError as e:
            logger.debug(f"Watchlist revalidate skipped: {e}")
            return self.symbols()

        recovered = not self.persistent
        if recovered:
            logger.info("Watchlist storage is reachable again")
        self.persistent = True
        self._symbols = self._parse_or_clear(raw)

        if recovered and self._unsaved:
            pending = [s for s in self._unsaved if s not in self._symbols]
            self._unsaved = []
            if pending:
                logger.info(f"Writing {len(pending)} symbol(s) added while storage was unavailable")
                self._symbols.extend(pending)
                self._persist()
        return self.symbols()

    def add(self, symbol: str) -> bool:
        """Append symbol unless already present. Returns True if the list changed."""
        if not isinstance(symbol, str) or not symbol.strip():
            raise ValidationError("Symbol must be a non-empty string.")
        if symbol in self._symbols:
            return False
        self._symbols.append(symbol)
        if not self.persistent:
            self._unsaved.append(symbol)
        self._persist()
        return True

    def remove(self, symbol: str) -> bool:
        """Drop every occurrence of symbol. Returns True if the list changed."""
        remaining = [s for s in self._symbols if s != symbol]
        if len(remaining) == len(self._symbols):
            return False
        self._symbols = remaining
        self._unsaved = [s for s in self._unsaved if s != symbol]
        self._persist()
        return True

    def symbols(self) -> List[str]:
        return list(self._symbols)

    def __len__(self) -> int:
        return len(self._symbols)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._symbols

    def _parse_or_clear(self, raw: Optional[str]) -> List[str]:
        if raw is None:
            return []
        symbols = _decode(raw)
        if symbols is not None:
            return symbols

        logger.warning(f"Discarding malformed watchlist entry under '{self.key}'")
        try:
            self.storage.remove(self.key)
        except StorageError as e:
            logger.warning(f"Failed to clear malformed watchlist: {e}")
        return []

    def _persist(self) -> None:
        if not self.persistent:
            return
        try:
            self.storage.set(self.key, json.dumps(self._symbols))
        except StorageError as e:
            logger.warning(f"Watchlist write failed, keeping in-memory state: {e}")
