"""Read-only reports over products, stock cells and the transaction log."""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Dict, List, Mapping, Optional, Sequence

from .ledger import money
from .transaction_log import TYPE_ADDED, TYPE_CUT, TransactionLog, signed_delta


def most_active(
    transactions: Sequence[dict],
    products: Mapping[str, dict],
    limit: Optional[int] = None,
) -> List[dict]:
    """Barcodes ranked by how many transactions they have."""

    counts = Counter(str(entry.get("itemCode")) for entry in transactions if entry.get("itemCode"))
    ranked = sorted(counts.items(), key=lambda pair: (-pair[1], pair[0]))
    rows = []
    for rank, (barcode, count) in enumerate(ranked, start=1):
        product = products.get(barcode)
        name = product.get("name") if product else None
        rows.append({"rank": rank, "barcode": barcode, "name": name or f"Unknown ({barcode})", "count": count})
    return rows[:limit] if limit else rows


def inventory_value(inventory: Mapping[str, Mapping[str, dict]], products: Mapping[str, dict]) -> dict:
    """Stock on hand valued at each cell's cost."""

    items = []
    total_units = 0
    total_value = 0.0
    for barcode in sorted(inventory):
        sizes = []
        units = 0
        value = 0.0
        for size, cell in sorted(inventory[barcode].items()):
            stock = int(cell.get("stock") or 0)
            cost = float(cell.get("cost") or 0)
            cell_value = money(stock * cost)
            sizes.append({"size": size, "stock": stock, "cost": cost, "value": cell_value})
            units += stock
            value += cell_value
        product = products.get(barcode) or {}
        items.append(
            {
                "barcode": barcode,
                "name": product.get("name") or f"Unknown ({barcode})",
                "units": units,
                "value": money(value),
                "sizes": sizes,
            }
        )
        total_units += units
        total_value += value
    return {"items": items, "totalUnits": total_units, "totalValue": money(total_value)}


def daily_movement(transactions: Sequence[dict]) -> List[dict]:
    """Units moved in and out per calendar day (UTC), oldest first."""

    days: Dict[str, Dict[str, int]] = defaultdict(lambda: {"in": 0, "out": 0})
    for entry in transactions:
        day = str(entry.get("timestamp", ""))[:10]
        if not day:
            continue
        delta = signed_delta(entry)
        if entry.get("type") == TYPE_ADDED or (entry.get("type") != TYPE_CUT and delta > 0):
            days[day]["in"] += abs(delta)
        else:
            days[day]["out"] += abs(delta)
    return [{"date": day, **days[day]} for day in sorted(days)]


def item_history(transactions: List[dict], barcode: str, date: Optional[str] = None) -> List[dict]:
    return TransactionLog(transactions).filter(barcode=barcode, date=date)
