from datetime import datetime, timezone

import pytest

from stockroom import app as flask_app


@pytest.fixture(autouse=True)
def configure_test_env(tmp_path, monkeypatch):
    flask_app.app.config.update(TESTING=True)
    data_dir = tmp_path / "app-data"
    monkeypatch.setattr(flask_app, "DATA_DIR", data_dir)
    monkeypatch.setattr(flask_app, "_ENGINE", None)
    talisman = flask_app.app.extensions.get("talisman")
    if talisman:
        talisman.force_https = False
    yield data_dir


@pytest.fixture
def engine(configure_test_env):
    return flask_app.get_engine()


@pytest.fixture
def frozen_clock(engine):
    """Pin the ledger clock so every record is created in the same millisecond."""

    moment = datetime(2024, 5, 17, 9, 30, 0, tzinfo=timezone.utc)
    engine.ledger.clock = lambda: moment
    return moment


@pytest.fixture
def shirt(engine):
    return engine.add_product({"productName": "Shirt", "principalCode": "1234", "typeCode": "5678"})
