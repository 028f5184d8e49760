"""In-process call surface for the desktop app.

The desktop front end sends a channel name and one argument over its IPC
bridge (``invoke("process-transaction", {...})``). Every
channel maps to one :class:`InventoryEngine` call. Failures are raised as
:class:`BridgeError`, whose ``payload`` is the same ``message``/``errorType``/
``context`` body the HTTP API returns.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from stockcommon.config import TrackerConfig

from .errors import InvalidInput, InventoryError
from .services.engine import InventoryEngine

logger = logging.getLogger(__name__)


class BridgeError(Exception):
    """Error crossing the bridge, carrying a client-localizable payload."""

    def __init__(self, payload: Mapping[str, Any]):
        self.payload = dict(payload)
        super().__init__(json.dumps(self.payload))


def _mapping(payload: Any) -> Mapping[str, Any]:
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise InvalidInput("error_invalid_data", {"fields": ["payload"]})
    return payload


def _key(payload: Any, *names: str) -> Any:
    """A bare value, or the first of ``names`` present in a mapping payload."""

    if isinstance(payload, Mapping):
        for name in names:
            if payload.get(name) is not None:
                return payload[name]
        return None
    return payload


class DesktopBridge:
    def __init__(self, engine: InventoryEngine):
        self.engine = engine
        self._handlers: Dict[str, Callable[[Any], Any]] = {
            "load-data": lambda _: engine.load_data(),
            "get-categories": lambda _: engine.list_categories(),
            "add-category": self._add_category,
            "update-category": lambda p: engine.update_category(_key(p, "id"), _mapping(p)),
            "delete-category": lambda p: engine.delete_category(_key(p, "id")),
            "add-product": lambda p: engine.add_product(_mapping(p)),
            "get-product": lambda p: engine.get_product(_key(p, "barcode")),
            "update-product": lambda p: engine.update_product(_key(p, "barcode"), _mapping(p)),
            "delete-product": lambda p: engine.delete_product(_key(p, "barcode")),
            "process-transaction": lambda p: engine.process_transaction(_mapping(p)),
            "delete-transaction": lambda p: engine.delete_transaction(_key(p, "id", "timestamp")),
            "clear-log": lambda _: engine.clear_log(),
            "get-transactions": lambda p: engine.list_transactions(_mapping(p)),
            "get-item-history": self._item_history,
            "get-report": self._report,
        }

    @classmethod
    def from_config(cls, config: TrackerConfig) -> "DesktopBridge":
        return cls(InventoryEngine.from_config(config))

    @property
    def channels(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    def _add_category(self, payload: Any) -> dict:
        # The desktop UI sends the bare category name.
        if isinstance(payload, Mapping):
            return self.engine.add_category(payload)
        return self.engine.add_category({"categoryName": payload if isinstance(payload, str) else ""})

    def _item_history(self, payload: Any) -> list:
        if isinstance(payload, Mapping):
            return self.engine.item_history(payload.get("barcode"), payload.get("date"))
        return self.engine.item_history(payload)

    def _report(self, payload: Any) -> Any:
        if isinstance(payload, Mapping):
            return self.engine.report(payload.get("name"), payload.get("limit"))
        return self.engine.report(payload)

    def invoke(self, channel: str, payload: Optional[Any] = None) -> Any:
        handler = self._handlers.get(channel)
        if handler is None:
            raise BridgeError(
                InvalidInput("error_unknown_channel", {"channel": channel}).to_payload()
            )
        try:
            return handler(payload)
        except InventoryError as err:
            logger.log(
                logging.ERROR if err.status >= 500 else logging.INFO,
                "%s rejected: %s %s",
                channel,
                err.key,
                err.context or "",
            )
            raise BridgeError(err.to_payload()) from err
