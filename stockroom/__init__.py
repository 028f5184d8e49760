"""Barcode inventory tracker: transaction engine, desktop bridge and HTTP API."""

__version__ = "1.1.0"
