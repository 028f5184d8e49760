"""Products and categories: identity, naming and cascading deletes."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional

from ..errors import Collision, InvalidInput, NotFound, ProtectedDefault
from .store import (
    CATEGORIES,
    DEFAULT_CATEGORY_ID,
    DEFAULT_CATEGORY_NAME,
    INVENTORY,
    PRODUCTS,
    DataStore,
)

logger = logging.getLogger(__name__)

CODE_LENGTH = 4


def product_view(barcode: str, product: Mapping) -> dict:
    return {
        "barcode": barcode,
        "name": product.get("name", ""),
        "category_id": product.get("category_id") or DEFAULT_CATEGORY_ID,
        "default_cost": float(product.get("default_cost") or 0),
    }


def with_default_category(categories: Mapping[str, str]) -> Dict[str, str]:
    merged = {DEFAULT_CATEGORY_ID: DEFAULT_CATEGORY_NAME}
    merged.update(categories)
    return merged


@dataclass(slots=True)
class CatalogManager:
    """High-level operations for the product and category collections."""

    store: DataStore
    clock: Callable[[], float] = field(default=time.time, repr=False)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------
    def list_products(self) -> Dict[str, dict]:
        return self.store.load(PRODUCTS)

    def get_product(self, barcode: str) -> dict:
        product = self.store.load(PRODUCTS).get(str(barcode))
        if product is None:
            raise NotFound("error_product_not_found", {"barcode": barcode})
        return product_view(barcode, product)

    def create_product(
        self,
        name: str,
        principal_code: str,
        type_code: str,
        category_id: Optional[str] = None,
        default_cost: Optional[float] = None,
    ) -> dict:
        """Create a product and return it with its generated barcode.

        The barcode is the two four-character codes followed by the product
        count plus one, zero-padded to four digits. Because the suffix follows
        the count rather than a counter, it can repeat after deletions; that
        case raises ``Collision`` instead of overwriting the existing product.
        """

        name = (name or "").strip()
        principal_code = (principal_code or "").strip()
        type_code = (type_code or "").strip()
        if not name or len(principal_code) != CODE_LENGTH or len(type_code) != CODE_LENGTH:
            raise InvalidInput("error_invalid_data")
        if default_cost is not None and default_cost < 0:
            raise InvalidInput("error_invalid_data", {"fields": ["default_cost"]})

        with self.store.unit_of_work(PRODUCTS, INVENTORY, CATEGORIES) as work:
            products = work[PRODUCTS]
            inventory = work[INVENTORY]
            category_id = category_id or DEFAULT_CATEGORY_ID
            if category_id not in with_default_category(work[CATEGORIES]):
                raise NotFound("error_category_not_found", {"id": category_id})

            barcode = f"{principal_code}{type_code}{len(products) + 1:04d}"
            if barcode in products:
                raise Collision("error_barcode_collision", {"barcode": barcode})

            products[barcode] = {
                "name": name,
                "category_id": category_id,
                "default_cost": float(default_cost or 0),
            }
            inventory.setdefault(barcode, {})

        logger.info("Created product %s (%s)", barcode, name)
        return product_view(barcode, products[barcode])

    def update_product(
        self,
        barcode: str,
        name: str,
        default_cost: Optional[float] = None,
        size_costs: Optional[Mapping[str, float]] = None,
        category_id: Optional[str] = None,
    ) -> dict:
        """Rename a product and update its default and per-size costs.

        Size costs are written to existing cells (stock preserved) or create
        new cells with zero stock. Omitted values keep what is stored.
        """

        name = (name or "").strip()
        if not name:
            raise InvalidInput("error_name_empty")

        with self.store.unit_of_work(PRODUCTS, INVENTORY, CATEGORIES) as work:
            products = work[PRODUCTS]
            product = products.get(barcode)
            if product is None:
                raise NotFound("error_product_not_found", {"barcode": barcode})
            if category_id is not None and category_id not in with_default_category(work[CATEGORIES]):
                raise NotFound("error_category_not_found", {"id": category_id})

            product["name"] = name
            if default_cost is not None:
                product["default_cost"] = float(default_cost)
            if category_id is not None:
                product["category_id"] = category_id

            cells = work[INVENTORY].setdefault(barcode, {})
            for size, cost in (size_costs or {}).items():
                stock = int(cells.get(size, {}).get("stock", 0) or 0)
                cells[size] = {"stock": stock, "cost": float(cost)}

        return product_view(barcode, product)

    def delete_product(self, barcode: str) -> None:
        with self.store.unit_of_work(PRODUCTS, INVENTORY) as work:
            had_product = work[PRODUCTS].pop(barcode, None) is not None
            had_cells = work[INVENTORY].pop(barcode, None) is not None
            if not (had_product or had_cells):
                raise NotFound("error_product_not_found", {"barcode": barcode})
        logger.info("Deleted product %s", barcode)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def list_categories(self) -> Dict[str, str]:
        return with_default_category(self.store.load(CATEGORIES))

    def create_category(self, name: str) -> dict:
        name = (name or "").strip()
        if not name:
            raise InvalidInput("error_category_name_empty")
        with self.store.unit_of_work(CATEGORIES) as work:
            categories = work[CATEGORIES]
            stamp = int(self.clock() * 1000)
            while f"cat_{stamp}" in categories:
                stamp += 1
            category_id = f"cat_{stamp}"
            categories[category_id] = name
        return {"id": category_id, "name": name}

    def rename_category(self, category_id: str, name: str) -> dict:
        name = (name or "").strip()
        if not name:
            raise InvalidInput("error_category_name_empty")
        if category_id == DEFAULT_CATEGORY_ID:
            raise ProtectedDefault("error_category_delete_default")
        with self.store.unit_of_work(CATEGORIES) as work:
            categories = work[CATEGORIES]
            if category_id not in categories:
                raise NotFound("error_category_not_found", {"id": category_id})
            categories[category_id] = name
        return {"id": category_id, "name": name}

    def delete_category(self, category_id: str) -> dict:
        """Delete a category, moving its products to the default category first."""

        if category_id == DEFAULT_CATEGORY_ID:
            raise ProtectedDefault("error_category_delete_default")
        with self.store.unit_of_work(CATEGORIES, PRODUCTS) as work:
            categories = work[CATEGORIES]
            if category_id not in categories:
                raise NotFound("error_category_not_found", {"id": category_id})
            reassigned = []
            for barcode, product in work[PRODUCTS].items():
                if product.get("category_id") == category_id:
                    product["category_id"] = DEFAULT_CATEGORY_ID
                    reassigned.append(barcode)
            del categories[category_id]
        logger.info("Deleted category %s; reassigned %d product(s)", category_id, len(reassigned))
        return {"id": category_id, "reassigned": reassigned}
