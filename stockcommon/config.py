"""Configuration helpers for the inventory tracker.

Values come from the process environment, optionally primed by a ``.env``
file next to the application. Centralising the lookup here lets the desktop
bridge, the HTTP server and the tests share one definition of every setting.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping
import os

from dotenv import load_dotenv

DEFAULT_ORIGINS = (
    "http://localhost:3001",
    "http://127.0.0.1:3001",
    "http://localhost",
    "http://127.0.0.1",
)


@dataclass(frozen=True)
class TrackerConfig:
    """Strongly typed configuration for the tracker."""

    base_dir: Path
    data_dir: Path
    backups: int
    host: str
    port: int
    force_tls: bool
    tls_cert_file: str
    tls_key_file: str
    trust_proxy_headers: bool
    allowed_origins: tuple[str, ...]
    secret_key: str
    log_level: str

    @property
    def ssl_context(self) -> tuple[str, str] | str | None:
        """Explicit certificate pair when given, an ad hoc one when TLS is forced."""

        if self.tls_cert_file and self.tls_key_file:
            return (self.tls_cert_file, self.tls_key_file)
        if self.force_tls:
            return "adhoc"
        return None


def env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _coerce_origins(raw: str | Iterable[str]) -> tuple[str, ...]:
    if isinstance(raw, str):
        items = [piece.strip() for piece in raw.split(",")]
    else:
        items = [piece.strip() for piece in raw]
    return tuple(filter(None, items)) or DEFAULT_ORIGINS


def load_config(base_dir: Path, env: Mapping[str, str] | None = None) -> TrackerConfig:
    """Load tracker configuration for ``base_dir`` from ``env`` (or ``os.environ``)."""

    base_dir = Path(base_dir)
    load_dotenv(base_dir / ".env")
    env_map = dict(os.environ if env is None else env)

    raw_data_dir = env_map.get("INVENTORY_DATA_DIR", "").strip()
    data_dir = Path(raw_data_dir).expanduser() if raw_data_dir else base_dir / "app-data"
    try:
        backups = max(0, int(env_map.get("INVENTORY_BACKUPS", "2")))
        port = int(env_map.get("API_PORT", "3001"))
    except ValueError as exc:
        raise ValueError(f"Invalid numeric setting: {exc}") from exc

    return TrackerConfig(
        base_dir=base_dir,
        data_dir=data_dir,
        backups=backups,
        host=env_map.get("API_HOST", "127.0.0.1").strip() or "127.0.0.1",
        port=port,
        force_tls=env_bool(env_map.get("FORCE_TLS"), False),
        tls_cert_file=env_map.get("TLS_CERT_FILE", "").strip(),
        tls_key_file=env_map.get("TLS_KEY_FILE", "").strip(),
        trust_proxy_headers=env_bool(env_map.get("TRUST_PROXY_HEADERS"), False),
        allowed_origins=_coerce_origins(env_map.get("ALLOWED_ORIGINS", "")),
        secret_key=env_map.get("SECRET_KEY", "dev-change-me"),
        log_level=env_map.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
