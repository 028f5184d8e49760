"""Common helpers shared across the inventory tracker."""

from .storage import JsonStore, ListStore, Journal, StoreError, atomic_write_json  # noqa: F401
from .config import TrackerConfig, load_config, env_bool
from .log import configure_logging

__all__ = [
    "JsonStore",
    "ListStore",
    "Journal",
    "StoreError",
    "atomic_write_json",
    "TrackerConfig",
    "load_config",
    "env_bool",
    "configure_logging",
]
