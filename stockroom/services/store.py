"""The tracker's four JSON collections behind one journaled store."""

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping

from stockcommon.storage import JsonCollection, JsonStore, Journal, ListStore, StoreError

logger = logging.getLogger(__name__)

PRODUCTS = "products"
INVENTORY = "inventory"
CATEGORIES = "categories"
TRANSACTIONS = "transactions"
COLLECTIONS = (PRODUCTS, INVENTORY, CATEGORIES, TRANSACTIONS)

DEFAULT_CATEGORY_ID = "cat_0"
DEFAULT_CATEGORY_NAME = "Default"


class UnitOfWork:
    """Collections loaded for one operation, plus what they looked like on load."""

    def __init__(self, data: Mapping[str, Any]):
        self._data: Dict[str, Any] = dict(data)
        self._original: Dict[str, Any] = copy.deepcopy(self._data)

    def __getitem__(self, name: str) -> Any:
        return self._data[name]

    def __setitem__(self, name: str, value: Any) -> None:
        if name not in self._data:
            raise KeyError(f"{name} was not loaded in this unit of work")
        self._data[name] = value

    def changes(self) -> Dict[str, Any]:
        return {name: value for name, value in self._data.items() if value != self._original[name]}

    @property
    def original(self) -> Dict[str, Any]:
        return self._original


class DataStore:
    """Whole-collection load/save with a write-ahead journal.

    All writers in the process go through one re-entrant lock, so a unit of
    work sees and replaces each collection without interleaving with another
    one. Nothing is cached between calls: every load re-reads the file.
    """

    def __init__(self, data_dir: Path | str, backups: int = 2):
        self.data_dir = Path(data_dir)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self._collections: Dict[str, JsonCollection] = {
                PRODUCTS: JsonStore(self.data_dir / "products.json", backups),
                INVENTORY: JsonStore(self.data_dir / "inventory.json", backups),
                CATEGORIES: JsonStore(
                    self.data_dir / "categories.json",
                    backups,
                    default={DEFAULT_CATEGORY_ID: DEFAULT_CATEGORY_NAME},
                ),
                TRANSACTIONS: ListStore(self.data_dir / "transactions.json", backups),
            }
            self._journal = Journal(self.data_dir / "journal.json")
        except OSError as exc:
            raise StoreError(f"Could not open data directory {self.data_dir}: {exc}") from exc
        self._lock = threading.RLock()

    def _collection(self, name: str) -> JsonCollection:
        try:
            return self._collections[name]
        except KeyError:
            raise StoreError(f"Unknown collection: {name}") from None

    def path_for(self, name: str) -> Path:
        return self._collection(name).path

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------
    def recover(self) -> bool:
        """Roll forward a commit interrupted before its journal was cleared."""

        with self._lock:
            changes = self._journal.pending()
            if not changes:
                return False
            logger.warning("Replaying interrupted commit for %s", ", ".join(sorted(changes)))
            for name, value in changes.items():
                if name in self._collections:
                    self._collections[name].save(value)
            self._journal.discard()
            return True

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def load(self, name: str) -> Any:
        with self._lock:
            self.recover()
            collection = self._collection(name)
            collection.ensure()
            return collection.load()

    def save(self, name: str, value: Any) -> None:
        self.commit({name: value})

    def commit(self, changes: Mapping[str, Any], previous: Mapping[str, Any] | None = None) -> None:
        """Persist every collection in ``changes`` as one durable unit.

        When a collection write fails after others succeeded, the ones already
        written are restored from ``previous``; if that restore fails too the
        journal is kept so the commit is completed on the next access.
        """

        if not changes:
            return
        with self._lock:
            targets = {name: self._collection(name) for name in changes}
            self._journal.record(changes)
            written: list[str] = []
            try:
                for name, value in changes.items():
                    targets[name].save(value)
                    written.append(name)
            except StoreError:
                logger.error("Commit of %s failed after writing %s", ", ".join(changes), written or "nothing")
                if previous is not None and self._restore(written, previous):
                    self._journal.discard()
                raise
            self._journal.discard()

    def _restore(self, names: list[str], previous: Mapping[str, Any]) -> bool:
        try:
            for name in names:
                self._collections[name].save(previous[name])
        except StoreError as exc:
            logger.error("Could not restore %s after failed commit: %s", names, exc)
            return False
        return True

    @contextmanager
    def unit_of_work(self, *names: str) -> Iterator[UnitOfWork]:
        """Load ``names`` under the store lock and commit whatever changed."""

        with self._lock:
            work = UnitOfWork({name: self.load(name) for name in names})
            yield work
            self.commit(work.changes(), previous=work.original)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {name: self.load(name) for name in COLLECTIONS}
