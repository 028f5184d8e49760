"""Stock cells and the transactions that move them.

A cell is the ``{"stock": int, "cost": float}`` record stored under
``inventory[barcode][size]``. Every stock change goes through
:meth:`InventoryLedger.apply_transaction`, which updates the cell and appends
the matching log record in the same commit; :meth:`revert_transaction` undoes
exactly the stock change a record describes and removes the record.

Modes:

* ``add`` raises the stock by ``amount``.
* ``cut`` lowers it by ``amount`` and never below zero.
* ``adjust`` sets it to ``amount``; the record keeps the difference.

Costs are not changed here. A record always uses the cell's cost at the
moment of the call, and ``totalCost`` is that cost times the signed stock
change, so cuts produce a non-positive total.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Optional

from ..errors import InsufficientStock, InvalidInput, ItemNotFound, ItemNotFoundInInventory, NotFound, SizeNotFound
from .store import INVENTORY, PRODUCTS, TRANSACTIONS, DataStore
from .transaction_log import (
    TYPE_ADDED,
    TYPE_ADJUSTED,
    TYPE_CUT,
    TransactionLog,
    item_label,
    record_size,
    signed_delta,
    utcnow,
)

logger = logging.getLogger(__name__)

MODE_TYPES = {"add": TYPE_ADDED, "cut": TYPE_CUT, "adjust": TYPE_ADJUSTED}


def money(value: float) -> float:
    # Adding 0.0 folds -0.0 into 0.0.
    return round(float(value), 2) + 0.0


@dataclass(frozen=True)
class Transition:
    """Effect of one mode on one cell."""

    type: str
    stock_before: int
    new_stock: int
    delta: int
    amount: int


def plan_transition(current_stock: int, mode: str, amount: int, label: str) -> Transition:
    """Compute the new stock for ``mode`` without touching any store."""

    if mode == "add":
        return Transition(TYPE_ADDED, current_stock, current_stock + amount, amount, amount)
    if mode == "cut":
        if current_stock < amount:
            raise InsufficientStock("error_not_enough_stock", {"item": label, "stock": current_stock})
        return Transition(TYPE_CUT, current_stock, current_stock - amount, -amount, amount)
    if mode == "adjust":
        delta = amount - current_stock
        return Transition(TYPE_ADJUSTED, current_stock, amount, delta, delta)
    raise InvalidInput("error_invalid_data", {"fields": ["mode"]})


def monetary_fields(cost: float, transition: Transition, sale_price: Optional[float]) -> Dict[str, float]:
    total_cost = money(cost * transition.delta)
    if transition.type == TYPE_CUT and sale_price is not None:
        total_sales = money(sale_price)
        profit = money(total_sales + total_cost)
    else:
        total_sales = 0.0
        profit = 0.0
    return {"totalCost": total_cost, "totalSales": total_sales, "profit": profit}


def _validate_request(size: str, mode: str, amount: int, sale_price: Optional[float]) -> None:
    if mode not in MODE_TYPES:
        raise InvalidInput("error_invalid_data", {"fields": ["mode"]})
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidInput("error_invalid_data", {"fields": ["amount"]})
    if (mode == "adjust" and amount < 0) or (mode != "adjust" and amount < 1):
        raise InvalidInput("error_invalid_data", {"fields": ["amount"]})
    if not size:
        raise InvalidInput("error_invalid_data", {"fields": ["size"]})
    if sale_price is not None and sale_price < 0:
        raise InvalidInput("error_invalid_data", {"fields": ["totalSalesPrice"]})


@dataclass(slots=True)
class InventoryLedger:
    store: DataStore
    clock: Callable[[], datetime] = field(default=utcnow, repr=False)

    def stock_levels(self) -> Dict[str, Dict[str, dict]]:
        return self.store.load(INVENTORY)

    def get_cell(self, barcode: str, size: str) -> Optional[dict]:
        return self.store.load(INVENTORY).get(barcode, {}).get(size)

    def apply_transaction(
        self,
        barcode: str,
        size: str,
        mode: str,
        amount: int,
        total_sale_price: Optional[float] = None,
    ) -> dict:
        size = (size or "").strip()
        _validate_request(size, mode, amount, total_sale_price)

        with self.store.unit_of_work(PRODUCTS, INVENTORY, TRANSACTIONS) as work:
            product = work[PRODUCTS].get(barcode)
            if product is None:
                raise ItemNotFound("error_item_not_found", {"itemCode": barcode})
            name = product.get("name") or "Unknown Item"
            label = item_label(name, size)

            cells = work[INVENTORY].setdefault(barcode, {})
            cell = cells.get(size)
            if cell is None:
                if mode == "cut":
                    raise SizeNotFound("error_size_not_found", {"size": size, "item": name})
                cell = {"stock": 0, "cost": float(product.get("default_cost") or 0)}

            cost = float(cell.get("cost") or 0)
            transition = plan_transition(int(cell.get("stock") or 0), mode, amount, label)
            cells[size] = {"stock": transition.new_stock, "cost": cost}

            log = TransactionLog(work[TRANSACTIONS], clock=self.clock)
            record = {
                "id": log.new_id(),
                "timestamp": log.next_timestamp(),
                "itemCode": barcode,
                "itemName": label,
                "size": size,
                "amount": transition.amount,
                "delta": transition.delta,
                "type": transition.type,
                "newStock": transition.new_stock,
                "cost": cost,
                **monetary_fields(cost, transition, total_sale_price),
            }
            log.append(record)

        logger.info(
            "%s %s: %s -> %s (delta %+d)",
            transition.type,
            label,
            transition.stock_before,
            transition.new_stock,
            transition.delta,
        )
        if transition.type == TYPE_ADJUSTED:
            message = f"OK: {transition.type} {label} stock to {transition.new_stock}."
        else:
            message = f"OK: {transition.type} {amount} {label}. New stock: {transition.new_stock}"
        return {
            "message": message,
            "newTransaction": record,
            "updatedItem": {
                "itemCode": barcode,
                "size": size,
                "newStockLevel": transition.new_stock,
                "newCost": cost,
            },
        }

    def revert_transaction(self, key: str) -> dict:
        """Delete the record identified by ``key`` and undo its stock change.

        ``key`` is either the record ``id`` or its exact ``timestamp``. Costs
        written after the record are left alone.
        """

        with self.store.unit_of_work(INVENTORY, TRANSACTIONS) as work:
            log = TransactionLog(work[TRANSACTIONS], clock=self.clock)
            found = log.find(key)
            if found is None:
                raise NotFound("error_delete_transaction", {"key": key})
            record = found[1]

            barcode = record.get("itemCode")
            size = record_size(record)
            cell = work[INVENTORY].get(barcode, {}).get(size) if size else None
            if cell is None:
                raise ItemNotFoundInInventory(
                    "error_item_not_found_in_inventory", {"itemCode": barcode, "size": size}
                )

            stock = int(cell.get("stock") or 0)
            restored = stock - signed_delta(record)
            if restored < 0:
                raise InsufficientStock(
                    "error_revert_not_enough_stock",
                    {"item": record.get("itemName", barcode), "stock": stock},
                )
            cell["stock"] = restored
            log.remove(key)

        logger.info("Reverted %s %s: %s -> %s", record.get("type"), record.get("itemName"), stock, restored)
        return {
            "success": True,
            "message": "Transaction deleted and stock reverted.",
            "revertedTransaction": record,
            "updatedItem": {
                "itemCode": barcode,
                "size": size,
                "newStockLevel": restored,
                "newCost": float(cell.get("cost") or 0),
            },
        }
