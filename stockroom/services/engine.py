"""One entry point for every tracker operation.

The desktop bridge and the HTTP API both call this class and nothing else.
Methods accept the request payloads the clients send (validated here with the
shared request models) and return the response bodies the clients expect, so
an adapter only has to route a call and turn an :class:`InventoryError` into
its own error format.
"""

from __future__ import annotations

import logging
from functools import wraps
from pathlib import Path
from typing import Any, Mapping, Optional

from stockcommon.config import TrackerConfig
from stockcommon.storage import StoreError

from ..errors import InvalidInput, StorageFailure
from ..schemas import (
    CategoryCreateModel,
    CategoryUpdateModel,
    ProductCreateModel,
    ProductUpdateModel,
    TransactionModel,
    TransactionQueryModel,
    parse_request,
)
from . import reports
from .catalog import CatalogManager
from .ledger import InventoryLedger
from .store import INVENTORY, PRODUCTS, TRANSACTIONS, DataStore
from .transaction_log import TransactionLog

logger = logging.getLogger(__name__)

REPORTS = ("most-active", "inventory-value", "daily-movement")


def storage_guard(fn):
    """Re-raise storage faults as ``StorageFailure``."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except StoreError as exc:
            logger.error("Storage failure in %s: %s", fn.__name__, exc)
            raise StorageFailure("error_storage", {"operation": fn.__name__}) from exc

    return wrapper


class InventoryEngine:
    def __init__(self, data_dir: Path | str, backups: int = 2):
        try:
            self.store = DataStore(data_dir, backups=backups)
        except StoreError as exc:
            logger.error("Cannot open data directory %s: %s", data_dir, exc)
            raise StorageFailure("error_storage", {"operation": "open_store"}) from exc
        self.catalog = CatalogManager(self.store)
        self.ledger = InventoryLedger(self.store)

    @classmethod
    def from_config(cls, config: TrackerConfig) -> "InventoryEngine":
        return cls(config.data_dir, backups=config.backups)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    @storage_guard
    def load_data(self) -> dict:
        return {
            "inventory": self.store.load(INVENTORY),
            "transactions": self.store.load(TRANSACTIONS),
            "products": self.store.load(PRODUCTS),
        }

    @storage_guard
    def list_categories(self) -> dict:
        return self.catalog.list_categories()

    @storage_guard
    def list_products(self) -> dict:
        return self.catalog.list_products()

    @storage_guard
    def get_product(self, barcode: str) -> dict:
        return self.catalog.get_product(_required(barcode, "barcode"))

    @storage_guard
    def list_transactions(self, query: Optional[Mapping[str, Any]] = None) -> list:
        filters = parse_request(TransactionQueryModel, query)
        log = TransactionLog(self.store.load(TRANSACTIONS))
        return log.filter(
            barcode=filters.barcode,
            name=filters.name,
            date=filters.date,
            type_=filters.type,
            limit=filters.limit,
        )

    @storage_guard
    def item_history(self, barcode: str, date: Optional[str] = None) -> list:
        query = parse_request(TransactionQueryModel, {"barcode": _required(barcode, "barcode"), "date": date})
        return reports.item_history(self.store.load(TRANSACTIONS), query.barcode, query.date)

    @storage_guard
    def report(self, name: str, limit: Optional[int] = None) -> Any:
        if name == "most-active":
            query = parse_request(TransactionQueryModel, {"limit": limit})
            return reports.most_active(self.store.load(TRANSACTIONS), self.store.load(PRODUCTS), query.limit)
        if name == "inventory-value":
            return reports.inventory_value(self.store.load(INVENTORY), self.store.load(PRODUCTS))
        if name == "daily-movement":
            return reports.daily_movement(self.store.load(TRANSACTIONS))
        raise InvalidInput("error_unknown_report", {"report": name, "available": list(REPORTS)})

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    @storage_guard
    def add_category(self, payload: Mapping[str, Any]) -> dict:
        request = parse_request(CategoryCreateModel, payload)
        return self.catalog.create_category(request.category_name)

    @storage_guard
    def update_category(self, category_id: str, payload: Mapping[str, Any]) -> dict:
        request = parse_request(CategoryUpdateModel, payload)
        return self.catalog.rename_category(_required(category_id, "id"), request.new_name)

    @storage_guard
    def delete_category(self, category_id: str) -> dict:
        outcome = self.catalog.delete_category(_required(category_id, "id"))
        return {
            "success": True,
            "message": "Category deleted and products reassigned.",
            "reassigned": outcome["reassigned"],
        }

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------
    @storage_guard
    def add_product(self, payload: Mapping[str, Any]) -> dict:
        request = parse_request(ProductCreateModel, payload)
        return self.catalog.create_product(
            request.product_name,
            request.principal_code,
            request.type_code,
            category_id=request.category_id,
            default_cost=request.default_cost,
        )

    @storage_guard
    def update_product(self, barcode: str, payload: Mapping[str, Any]) -> dict:
        request = parse_request(ProductUpdateModel, payload)
        product = self.catalog.update_product(
            _required(barcode, "barcode"),
            request.product_name,
            default_cost=request.default_cost,
            size_costs=request.size_costs,
            category_id=request.category_id,
        )
        return {"success": True, "message": "Product updated successfully", "updatedProduct": product}

    @storage_guard
    def delete_product(self, barcode: str) -> dict:
        self.catalog.delete_product(_required(barcode, "barcode"))
        return {"success": True, "message": "Product deleted successfully"}

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    @storage_guard
    def process_transaction(self, payload: Mapping[str, Any]) -> dict:
        request = parse_request(TransactionModel, payload)
        return self.ledger.apply_transaction(
            request.barcode,
            request.size,
            request.mode,
            request.amount,
            total_sale_price=request.total_sales_price,
        )

    @storage_guard
    def delete_transaction(self, key: str) -> dict:
        return self.ledger.revert_transaction(_required(key, "timestamp"))

    @storage_guard
    def clear_log(self) -> dict:
        with self.store.unit_of_work(TRANSACTIONS) as work:
            removed = TransactionLog(work[TRANSACTIONS]).clear()
        logger.info("Cleared transaction log (%d record(s))", removed)
        return {"success": True, "message": "Transaction log cleared", "removed": removed}


def _required(value: Optional[str], field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput("error_invalid_data", {"fields": [field]})
    return value.strip()
