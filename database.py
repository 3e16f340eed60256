"""
JSON document store

Each collection (products, cart, orders) lives in one JSON document under the
data directory. A mutation reads the whole document, changes it in memory and
writes the whole document back, so callers wrap the cycle in
``store.transaction(...)`` which holds the per-collection write lock.
"""
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List

from errors import StorageError

logger = logging.getLogger("storefront.database")

COLLECTIONS: Dict[str, List[Any]] = {
    "products": [],
    "cart": [],
    "orders": [],
}

JOURNAL_NAME = "_journal.json"


class JsonStore:
    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)
        self._locks = {name: threading.RLock() for name in COLLECTIONS}

    @property
    def name(self) -> str:
        return str(self.data_dir)

    def path(self, collection: str) -> Path:
        self._check(collection)
        return self.data_dir / f"{collection}.json"

    @property
    def journal_path(self) -> Path:
        return self.data_dir / JOURNAL_NAME

    def list_collection_names(self) -> List[str]:
        return [name for name in COLLECTIONS if self.path(name).exists()]

    # ---------- Lifecycle ----------

    def bootstrap(self):
        self.data_dir.mkdir(parents=True, exist_ok=True)
        for name, default in COLLECTIONS.items():
            if not self.path(name).exists():
                self._dump(self.path(name), default)
        self.recover()

    def recover(self) -> bool:
        """Replay an unfinished multi-document write, if one was interrupted."""
        journal = self.journal_path
        if not journal.exists():
            return False
        try:
            with journal.open("r", encoding="utf-8") as f:
                pending = json.load(f)
        except (OSError, json.JSONDecodeError):
            # The journal itself never completed, so no document was touched.
            logger.warning("Discarding incomplete journal %s", journal)
            journal.unlink(missing_ok=True)
            return False

        logger.warning("Replaying journal for collections: %s", ", ".join(sorted(pending)))
        with self.transaction(*pending):
            for collection, records in pending.items():
                self.write(collection, records)
            journal.unlink(missing_ok=True)
        return True

    # ---------- Reads and writes ----------

    def read(self, collection: str) -> List[Any]:
        path = self.path(collection)
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return deepcopy(COLLECTIONS[collection])
        except json.JSONDecodeError:
            logger.warning("Corrupt document %s, using default", path)
            return deepcopy(COLLECTIONS[collection])
        except OSError as e:
            logger.exception("Error reading %s", path)
            raise StorageError(f"Failed to read {collection}") from e

        if not isinstance(data, list):
            logger.warning("Document %s is not a list, using default", path)
            return deepcopy(COLLECTIONS[collection])
        return data

    def write(self, collection: str, records: List[Any]):
        path = self.path(collection)
        with self._locks[collection]:
            try:
                self._dump(path, records)
            except (OSError, ValueError) as e:
                logger.exception("Error writing %s", path)
                raise StorageError(f"Failed to write {collection}") from e

    def write_many(self, changes: Dict[str, List[Any]]):
        """Write several documents so that a crash midway is replayed by ``recover``."""
        for collection in changes:
            self._check(collection)
        with self.transaction(*changes):
            try:
                self._dump(self.journal_path, changes)
            except (OSError, ValueError) as e:
                logger.exception("Error writing journal")
                raise StorageError("Failed to write journal") from e
            for collection, records in changes.items():
                self.write(collection, records)
            self.journal_path.unlink(missing_ok=True)

    def wipe(self):
        self.write_many({name: deepcopy(default) for name, default in COLLECTIONS.items()})
        logger.info("All collections reset")

    @contextmanager
    def transaction(self, *collections: str):
        names = sorted(set(collections))
        for name in names:
            self._check(name)
        acquired = []
        try:
            for name in names:
                self._locks[name].acquire()
                acquired.append(name)
            yield self
        finally:
            for name in reversed(acquired):
                self._locks[name].release()

    # ---------- Helpers ----------

    def _check(self, collection: str):
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")

    def _dump(self, path: Path, data: Any):
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, allow_nan=False)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
