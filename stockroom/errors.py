"""Domain errors raised by the inventory engine.

Each error carries a machine-readable ``key`` that the presentation layer
localizes, optional structured ``context`` for message interpolation, a
``kind`` tag and the HTTP status the web adapter answers with.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class InventoryError(Exception):
    kind = "INVENTORY_ERROR"
    status = 500
    default_key = "error_unexpected"

    def __init__(self, key: Optional[str] = None, context: Optional[Mapping[str, Any]] = None):
        self.key = key or self.default_key
        self.context: Dict[str, Any] = dict(context or {})
        super().__init__(self.key)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"message": self.key, "errorType": self.kind}
        if self.context:
            payload["context"] = self.context
        return payload


class InvalidInput(InventoryError):
    kind = "INVALID_INPUT"
    status = 400
    default_key = "error_invalid_data"


class NotFound(InventoryError):
    kind = "NOT_FOUND"
    status = 404
    default_key = "error_not_found"


class ItemNotFound(NotFound):
    """The scanned barcode is not a known product."""

    kind = "ITEM_NOT_FOUND"
    default_key = "error_item_not_found"


class SizeNotFound(NotFound):
    """A cut was requested for a size that has never been stocked."""

    kind = "SIZE_NOT_FOUND"
    default_key = "error_size_not_found"


class ItemNotFoundInInventory(NotFound):
    kind = "ITEM_NOT_FOUND_IN_INVENTORY"
    default_key = "error_item_not_found_in_inventory"


class Collision(InventoryError):
    kind = "COLLISION"
    status = 500
    default_key = "error_barcode_collision"


class ProtectedDefault(InventoryError):
    kind = "PROTECTED_DEFAULT"
    status = 403
    default_key = "error_category_delete_default"


class InsufficientStock(InventoryError):
    kind = "INSUFFICIENT_STOCK"
    status = 400
    default_key = "error_not_enough_stock"


class StorageFailure(InventoryError):
    kind = "STORAGE_FAILURE"
    status = 500
    default_key = "error_storage"
