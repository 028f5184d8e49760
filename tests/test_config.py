from pathlib import Path
import logging
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from stockcommon.config import DEFAULT_ORIGINS, env_bool, load_config
from stockcommon.log import configure_logging


def test_defaults(tmp_path):
    config = load_config(tmp_path, {})
    assert config.data_dir == tmp_path / "app-data"
    assert config.backups == 2
    assert (config.host, config.port) == ("127.0.0.1", 3001)
    assert config.force_tls is False
    assert config.trust_proxy_headers is False
    assert config.allowed_origins == DEFAULT_ORIGINS
    assert config.log_level == "INFO"
    assert config.ssl_context is None


def test_environment_overrides(tmp_path):
    env = {
        "INVENTORY_DATA_DIR": str(tmp_path / "elsewhere"),
        "INVENTORY_BACKUPS": "5",
        "API_HOST": "0.0.0.0",
        "API_PORT": "8080",
        "FORCE_TLS": "yes",
        "TRUST_PROXY_HEADERS": "1",
        "ALLOWED_ORIGINS": "https://shop.example, ,https://admin.example",
        "LOG_LEVEL": "debug",
    }
    config = load_config(tmp_path, env)
    assert config.data_dir == tmp_path / "elsewhere"
    assert config.backups == 5
    assert (config.host, config.port) == ("0.0.0.0", 8080)
    assert config.force_tls is True
    assert config.trust_proxy_headers is True
    assert config.allowed_origins == ("https://shop.example", "https://admin.example")
    assert config.log_level == "DEBUG"
    assert config.ssl_context == "adhoc"


def test_certificate_pair_wins_over_adhoc(tmp_path):
    config = load_config(tmp_path, {"FORCE_TLS": "true", "TLS_CERT_FILE": "cert.pem", "TLS_KEY_FILE": "key.pem"})
    assert config.ssl_context == ("cert.pem", "key.pem")


def test_negative_backups_are_clamped(tmp_path):
    assert load_config(tmp_path, {"INVENTORY_BACKUPS": "-3"}).backups == 0


def test_invalid_port(tmp_path):
    with pytest.raises(ValueError):
        load_config(tmp_path, {"API_PORT": "http"})


@pytest.mark.parametrize(
    "raw, default, expected",
    [(None, True, True), (None, False, False), ("On", False, True), ("0", True, False), ("nope", True, False)],
)
def test_env_bool(raw, default, expected):
    assert env_bool(raw, default) is expected


def test_configure_logging_is_idempotent():
    configure_logging("warning")
    configure_logging("debug")
    root = logging.getLogger()
    tagged = [handler for handler in root.handlers if getattr(handler, "_stockroom_handler", False)]
    assert len(tagged) == 1
    assert root.level == logging.DEBUG
    assert logging.getLogger("werkzeug").level == logging.WARNING
    configure_logging("INFO")
