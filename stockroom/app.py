"""Flask REST API for the barcode inventory tracker.

- Products, inventory cells, categories and the transaction log live in JSON
  files under the configured data directory; every request re-reads them.
- All inventory rules live in :class:`~stockroom.services.engine.InventoryEngine`.
  The routes here only pull arguments out of the request and hand the
  engine's result (or its error payload) back as JSON.
- Domain errors are returned as ``{"message": <key>, "errorType": <kind>,
  "context": {...}}`` so the browser can localize them.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_talisman import Talisman
from werkzeug.exceptions import InternalServerError
from werkzeug.middleware.proxy_fix import ProxyFix

from stockcommon.config import load_config
from stockcommon.log import configure_logging

from . import __version__
from .desktop import BridgeError, DesktopBridge
from .errors import InventoryError
from .services.engine import InventoryEngine

BASE_DIR = Path(__file__).resolve().parent

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
CONFIG = load_config(BASE_DIR)
configure_logging(CONFIG.log_level)
logger = logging.getLogger(__name__)

DATA_DIR = CONFIG.data_dir
_ENGINE: InventoryEngine | None = None

# ---------------------------------------------------------------------------
# Flask app
# ---------------------------------------------------------------------------
app = Flask(__name__)
app.config.update(
    SECRET_KEY=CONFIG.secret_key,
    PREFERRED_URL_SCHEME="https" if CONFIG.force_tls else "http",
)
app.json.sort_keys = False

CORS(app, resources={r"/api/*": {"origins": list(CONFIG.allowed_origins)}})
Talisman(app, content_security_policy=None, force_https=CONFIG.force_tls)

if CONFIG.trust_proxy_headers:
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)  # type: ignore[assignment]

logger.info("Using data directory %s", DATA_DIR)


def get_engine() -> InventoryEngine:
    """Engine bound to the current ``DATA_DIR`` (rebuilt if it changed)."""

    global _ENGINE
    if _ENGINE is None or _ENGINE.store.data_dir != Path(DATA_DIR):
        _ENGINE = InventoryEngine(DATA_DIR, backups=CONFIG.backups)
    return _ENGINE


def _json_body() -> object:
    payload = request.get_json(silent=True)
    return {} if payload is None else payload


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------
@app.errorhandler(InventoryError)
def handle_inventory_error(err: InventoryError):
    if err.status >= 500:
        logger.error("%s %s failed: %s %s", request.method, request.path, err.key, err.context)
    return jsonify(err.to_payload()), err.status


@app.errorhandler(404)
def handle_unknown_route(_err):
    return jsonify({"message": "error_route_not_found", "errorType": "NOT_FOUND"}), 404


@app.errorhandler(405)
def handle_bad_method(_err):
    return jsonify({"message": "error_method_not_allowed", "errorType": "INVALID_INPUT"}), 405


@app.errorhandler(InternalServerError)
def handle_unexpected(err: InternalServerError):
    logger.exception("Unhandled error on %s %s", request.method, request.path, exc_info=err.original_exception)
    return jsonify({"message": "error_unexpected", "errorType": "INTERNAL"}), 500


# ---------------------------------------------------------------------------
# Routes — data and categories
# ---------------------------------------------------------------------------
@app.route("/api/health", methods=["GET"])
def health():
    return jsonify({"status": "ok", "version": __version__})


@app.route("/api/data", methods=["GET"])
def load_data():
    return jsonify(get_engine().load_data())


@app.route("/api/categories", methods=["GET"])
def get_categories():
    return jsonify(get_engine().list_categories())


@app.route("/api/category", methods=["POST"])
def create_category():
    return jsonify(get_engine().add_category(_json_body())), 201


@app.route("/api/category/<category_id>", methods=["PUT"])
def update_category(category_id):
    return jsonify(get_engine().update_category(category_id, _json_body()))


@app.route("/api/category/<category_id>", methods=["DELETE"])
def delete_category(category_id):
    return jsonify(get_engine().delete_category(category_id))


# ---------------------------------------------------------------------------
# Routes — products
# ---------------------------------------------------------------------------
@app.route("/api/products", methods=["GET"])
def get_products():
    return jsonify(get_engine().list_products())


@app.route("/api/product", methods=["POST"])
def create_product():
    return jsonify(get_engine().add_product(_json_body())), 201


@app.route("/api/product/<barcode>", methods=["GET"])
def get_product(barcode):
    return jsonify(get_engine().get_product(barcode))


@app.route("/api/product/<barcode>", methods=["PUT"])
def update_product(barcode):
    return jsonify(get_engine().update_product(barcode, _json_body()))


@app.route("/api/product/<barcode>", methods=["DELETE"])
def delete_product(barcode):
    return jsonify(get_engine().delete_product(barcode))


# ---------------------------------------------------------------------------
# Routes — transactions and reports
# ---------------------------------------------------------------------------
@app.route("/api/transaction", methods=["POST"])
def process_transaction():
    return jsonify(get_engine().process_transaction(_json_body()))


@app.route("/api/transactions", methods=["GET"])
def list_transactions():
    return jsonify(get_engine().list_transactions(request.args.to_dict()))


@app.route("/api/transaction/<path:key>", methods=["DELETE"])
def delete_transaction(key):
    return jsonify(get_engine().delete_transaction(key))


@app.route("/api/log", methods=["DELETE"])
def clear_log():
    return jsonify(get_engine().clear_log())


@app.route("/api/item/<barcode>/history", methods=["GET"])
def item_history(barcode):
    return jsonify(get_engine().item_history(barcode, request.args.get("date")))


@app.route("/api/reports/<name>", methods=["GET"])
def report(name):
    return jsonify(get_engine().report(name, request.args.get("limit")))


# ---------------------------------------------------------------------------
# Security headers
# ---------------------------------------------------------------------------
@app.after_request
def secure_headers(resp):
    resp.headers["X-Content-Type-Options"] = "nosniff"
    resp.headers["X-Frame-Options"] = "DENY"
    return resp


# ---------------------------------------------------------------------------
# CLI — drive the desktop bridge from a terminal
# ---------------------------------------------------------------------------
@app.cli.command("invoke")
@click.argument("channel")
@click.argument("payload", required=False)
def invoke_command(channel: str, payload: str | None):
    """Call a desktop bridge CHANNEL with an optional JSON PAYLOAD.

    Example:
        flask --app stockroom.app invoke process-transaction '{"lookupValue": "123456780001", "amount": 3, "mode": "add", "size": "M"}'
    """

    try:
        argument = json.loads(payload) if payload else None
    except json.JSONDecodeError:
        argument = payload
    try:
        result = DesktopBridge(get_engine()).invoke(channel, argument)
    except BridgeError as err:
        click.echo(json.dumps(err.payload, indent=2), err=True)
        raise SystemExit(1)
    except InventoryError as err:
        click.echo(json.dumps(err.to_payload(), indent=2), err=True)
        raise SystemExit(1)
    click.echo(json.dumps(result, indent=2))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app.run(host=CONFIG.host, port=CONFIG.port, ssl_context=CONFIG.ssl_context)
