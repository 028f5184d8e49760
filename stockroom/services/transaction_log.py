"""Append-only log of applied stock transactions."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, List, Optional, Tuple
from uuid import uuid4

from ..errors import Collision, NotFound

TYPE_ADDED = "Added"
TYPE_CUT = "Cut"
TYPE_ADJUSTED = "Adjusted"

_LABEL_SIZE = re.compile(r"\(([^)]+)\)$")
_TICK = timedelta(milliseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Render ``moment`` like a browser ``toISOString()``: UTC, milliseconds, ``Z``."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_timestamp(value: object) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def item_label(name: str, size: str) -> str:
    return f"{name} ({size})"


def record_size(record: dict) -> Optional[str]:
    """Size of the cell a record touched.

    Older records only carry the size inside the composed ``itemName`` label,
    so fall back to its trailing parenthesised token.
    """

    size = record.get("size")
    if size:
        return str(size)
    match = _LABEL_SIZE.search(str(record.get("itemName", "")))
    return match.group(1) if match else None


def signed_delta(record: dict) -> int:
    """Stock change a record applied; negative for cuts."""

    if "delta" in record:
        return int(record["delta"])
    amount = int(record.get("amount", 0) or 0)
    if record.get("type") == TYPE_CUT:
        return -abs(amount)
    return amount


class TransactionLog:
    """Operations over the in-memory list of transaction records.

    The list is the one loaded from (and later committed to) the store; the
    log only appends to it or removes from it.
    """

    def __init__(self, entries: List[dict], clock: Callable[[], datetime] = utcnow):
        self.entries = entries
        self._clock = clock

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[dict]:
        return iter(self.entries)

    def all(self) -> List[dict]:
        return list(self.entries)

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------
    def next_timestamp(self) -> str:
        """A wall-clock timestamp strictly later than any already logged."""

        moment = self._clock()
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        # Stamps are stored at millisecond precision; compare at that precision.
        moment = moment.replace(microsecond=moment.microsecond // 1000 * 1000)
        latest = max(
            (stamp for stamp in (parse_timestamp(r.get("timestamp")) for r in self.entries) if stamp),
            default=None,
        )
        if latest is not None and moment <= latest:
            moment = latest + _TICK
        return format_timestamp(moment)

    def new_id(self) -> str:
        taken = {r.get("id") for r in self.entries}
        while True:
            candidate = uuid4().hex
            if candidate not in taken:
                return candidate

    def find(self, key: str) -> Optional[Tuple[int, dict]]:
        for index, record in enumerate(self.entries):
            if key and (record.get("id") == key or record.get("timestamp") == key):
                return index, record
        return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def append(self, record: dict) -> dict:
        for key in (record.get("id"), record.get("timestamp")):
            if key and self.find(key) is not None:
                raise Collision("error_transaction_key_collision", {"key": key})
        self.entries.append(record)
        return record

    def remove(self, key: str) -> dict:
        found = self.find(key)
        if found is None:
            raise NotFound("error_delete_transaction", {"key": key})
        index, record = found
        del self.entries[index]
        return record

    def clear(self) -> int:
        removed = len(self.entries)
        self.entries.clear()
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def newest_first(self) -> List[dict]:
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        ordered = list(enumerate(self.entries))
        ordered.sort(
            key=lambda pair: (parse_timestamp(pair[1].get("timestamp")) or epoch, pair[0]),
            reverse=True,
        )
        return [record for _, record in ordered]

    def filter(
        self,
        barcode: Optional[str] = None,
        name: Optional[str] = None,
        date: Optional[str] = None,
        type_: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[dict]:
        """Records matching every given criterion, newest first.

        ``name`` and ``type_`` are case-insensitive substring matches; ``date``
        is a prefix of the ISO timestamp (``2024``, ``2024-05`` or
        ``2024-05-17``).
        """

        name = name.lower() if name else None
        type_ = type_.lower() if type_ else None
        matches = []
        for record in self.newest_first():
            if barcode and record.get("itemCode") != barcode:
                continue
            if name and name not in str(record.get("itemName", "")).lower():
                continue
            if date and not str(record.get("timestamp", "")).startswith(date):
                continue
            if type_ and type_ not in str(record.get("type", "")).lower():
                continue
            matches.append(record)
        return matches[:limit] if limit else matches
