import json
import random
import sqlite3
import tempfile
import unittest
from pathlib import Path
from unittest import mock
import sys

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "stockdash" / "src"
sys.path.insert(0, str(SRC))

from stockdash.errors import StorageError, ValidationError
from stockdash.watchlist.storage import MemoryStorage, SQLiteStorage
from stockdash.watchlist.store import WatchlistStore
from stockdash.watchlist.seed import load_seed


class BrokenStorage:
    """Storage whose every call fails, like a disabled or full backend."""

    def __init__(self, fail_get=True, fail_set=True):
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.writes = []

    def get(self, key):
        if self.fail_get:
            raise StorageError("storage disabled")
        return None

    def set(self, key, value):
        if self.fail_set:
            raise StorageError("quota exceeded")
        self.writes.append(value)

    def remove(self, key):
        raise StorageError("storage disabled")


class FlakyStorage(MemoryStorage):
    """Memory storage that can be switched off and on again."""

    down = False

    def get(self, key):
        if self.down:
            raise StorageError("storage disabled")
        return super().get(key)

    def set(self, key, value):
        if self.down:
            raise StorageError("storage disabled")
        super().set(key, value)


class TestWatchlistStore(unittest.TestCase):
    def setUp(self):
        self.storage = MemoryStorage()
        self.store = WatchlistStore(self.storage)
        self.store.load()

    def test_add_keeps_insertion_order_and_persists(self):
        self.assertTrue(self.store.add("MSFT"))
        self.assertTrue(self.store.add("AAPL"))

        self.assertEqual(self.store.symbols(), ["MSFT", "AAPL"])
        self.assertEqual(json.loads(self.storage.data["watchlist"]), ["MSFT", "AAPL"])

    def test_duplicate_add_is_idempotent(self):
        self.store.add("AAPL")
        before = self.storage.data["watchlist"]

        self.assertFalse(self.store.add("AAPL"))
        self.assertEqual(self.store.symbols(), ["AAPL"])
        self.assertEqual(self.storage.data["watchlist"], before)

    def test_add_is_case_sensitive(self):
        self.store.add("AAPL")
        self.assertTrue(self.store.add("aapl"))
        self.assertEqual(self.store.symbols(), ["AAPL", "aapl"])

    def test_add_rejects_empty_symbol(self):
        with self.assertRaises(ValidationError):
            self.store.add("  ")
        self.assertEqual(self.store.symbols(), [])

    def test_remove_and_remove_absent(self):
        self.store.add("AAPL")
        self.store.add("TSLA")

        self.assertTrue(self.store.remove("AAPL"))
        self.assertFalse(self.store.remove("AAPL"))
        self.assertEqual(self.store.symbols(), ["TSLA"])
        self.assertEqual(json.loads(self.storage.data["watchlist"]), ["TSLA"])
        self.assertNotIn("AAPL", self.store)
        self.assertEqual(len(self.store), 1)

    def test_random_operations_match_reload(self):
        rng = random.Random(7)
        pool = ["AAA", "BBB", "CCC", "DDD"]
        removed = set()
        for _ in range(200):
            symbol = rng.choice(pool)
            if rng.random() < 0.6:
                self.store.add(symbol)
                removed.discard(symbol)
            else:
                self.store.remove(symbol)
                removed.add(symbol)

            current = self.store.symbols()
            self.assertEqual(len(current), len(set(current)))
            self.assertFalse(removed & set(current))

        reloaded = WatchlistStore(self.storage)
        self.assertEqual(reloaded.load(), self.store.symbols())

    def test_corrupted_data_loads_empty_and_is_cleared(self):
        storage = MemoryStorage({"watchlist": "{not json"})
        store = WatchlistStore(storage)

        self.assertEqual(store.load(), [])
        self.assertNotIn("watchlist", storage.data)

    def test_wrong_shape_is_treated_as_corrupt(self):
        for raw in ('{"a": 1}', '[1, 2]', '["AAPL", ""]', '"AAPL"'):
            storage = MemoryStorage({"watchlist": raw})
            self.assertEqual(WatchlistStore(storage).load(), [], raw)
            self.assertNotIn("watchlist", storage.data)

    def test_persisted_duplicates_collapse(self):
        storage = MemoryStorage({"watchlist": '["AAPL", "MSFT", "AAPL"]'})
        self.assertEqual(WatchlistStore(storage).load(), ["AAPL", "MSFT"])

    def test_unavailable_storage_degrades_to_memory(self):
        store = WatchlistStore(BrokenStorage())

        self.assertEqual(store.load(), [])
        self.assertFalse(store.persistent)
        self.assertTrue(store.add("AAPL"))
        self.assertTrue(store.remove("AAPL"))
        self.assertTrue(store.add("NVDA"))
        self.assertEqual(store.symbols(), ["NVDA"])

    def test_write_failure_keeps_memory_state(self):
        storage = BrokenStorage(fail_get=False, fail_set=True)
        store = WatchlistStore(storage)
        store.load()

        self.assertTrue(store.persistent)
        self.assertTrue(store.add("AAPL"))
        self.assertEqual(store.symbols(), ["AAPL"])

    def test_revalidate_picks_up_other_writer(self):
        self.store.add("AAPL")
        other = WatchlistStore(self.storage)
        other.load()
        other.add("AMZN")
        other.remove("AAPL")

        self.assertEqual(self.store.symbols(), ["AAPL"])
        self.assertEqual(self.store.revalidate(), ["AMZN"])

    def test_revalidate_failure_keeps_state(self):
        storage = BrokenStorage(fail_get=False, fail_set=False)
        store = WatchlistStore(storage)
        store.load()
        store.add("AAPL")

        storage.fail_get = True
        self.assertEqual(store.revalidate(), ["AAPL"])

    def test_recovery_writes_through_symbols_added_offline(self):
        storage = BrokenStorage()
        store = WatchlistStore(storage)
        store.load()
        store.add("AAPL")
        store.add("NVDA")
        store.remove("AAPL")

        storage.fail_get = False
        storage.fail_set = False
        self.assertEqual(store.revalidate(), ["NVDA"])
        self.assertTrue(store.persistent)
        self.assertEqual(storage.writes, ['["NVDA"]'])

    def test_recovery_merges_offline_additions_into_stored_list(self):
        storage = FlakyStorage({"watchlist": '["AAPL"]'})
        storage.down = True
        store = WatchlistStore(storage)
        self.assertEqual(store.load(), [])
        store.add("MSFT")
        store.add("AAPL")

        storage.down = False
        self.assertEqual(store.revalidate(), ["AAPL", "MSFT"])
        self.assertEqual(json.loads(storage.data["watchlist"]), ["AAPL", "MSFT"])

        # nothing left to replay once recovered
        storage.set("watchlist", '["TSLA"]')
        self.assertEqual(store.revalidate(), ["TSLA"])


class TestSQLiteStorage(unittest.TestCase):
    def test_round_trip_through_sqlite(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = str(Path(tmpdir) / "watch.db")

            store = WatchlistStore(SQLiteStorage(db_path))
            store.load()
            store.add("AAPL")
            store.add("MSFT")
            store.remove("AAPL")

            reopened = WatchlistStore(SQLiteStorage(db_path))
            self.assertEqual(reopened.load(), ["MSFT"])

    def test_missing_key_and_remove(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = SQLiteStorage(str(Path(tmpdir) / "watch.db"))
            self.assertIsNone(storage.get("watchlist"))
            storage.set("watchlist", "[]")
            self.assertEqual(storage.get("watchlist"), "[]")
            storage.remove("watchlist")
            self.assertIsNone(storage.get("watchlist"))

    def test_unopenable_database_raises_storage_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = SQLiteStorage(str(Path(tmpdir) / "missing" / "dir" / "watch.db"))
            with self.assertRaises(StorageError):
                storage.get("watchlist")

            store = WatchlistStore(storage)
            self.assertEqual(store.load(), [])
            self.assertFalse(store.persistent)

    def test_corrupt_database_file_closes_connection(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "watch.db"
            db_path.write_bytes(b"this is not a sqlite database" * 64)
            storage = SQLiteStorage(str(db_path))

            opened = []
            real_connect = sqlite3.connect

            def tracking_connect(*args, **kwargs):
                conn = mock.MagicMock(wraps=real_connect(*args, **kwargs))
                opened.append(conn)
                return conn

            with mock.patch.object(sqlite3, "connect", side_effect=tracking_connect):
                with self.assertRaises(StorageError):
                    storage.get("watchlist")

            self.assertEqual(len(opened), 1)
            opened[0].close.assert_called_once_with()
            self.assertFalse(storage._initialized)


class TestSeedFile(unittest.TestCase):
    def test_load_seed_normalizes_symbols(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "watchlist.yaml"
            path.write_text("watchlist:\n  symbols: [aapl, ' msft ']\n")
            self.assertEqual(load_seed(str(path)), ["AAPL", "MSFT"])

    def test_load_seed_rejects_bad_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            missing = Path(tmpdir) / "nope.yaml"
            with self.assertRaises(ValidationError):
                load_seed(str(missing))

            empty = Path(tmpdir) / "empty.yaml"
            empty.write_text("watchlist:\n  symbols: []\n")
            with self.assertRaises(ValidationError):
                load_seed(str(empty))


if __name__ == "__main__":
    unittest.main()
