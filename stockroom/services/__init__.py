"""Inventory engine services: store, catalog, ledger, log and reports."""

from .engine import InventoryEngine  # noqa: F401

__all__ = ["InventoryEngine"]
