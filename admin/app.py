"""Flask JSON API for the catalog bulk editor.

- ``POST /api/products/filter`` compiles one filter criterion and returns the
  matching products.
- ``POST /api/products/bulk-edit`` applies one edit operation to a selection
  of product ids and reports a verdict plus per-product outcomes.
- ``GET /api/categories`` lists taxonomy categories for the category edit.

The catalog backend (Shopify Admin API or a local JSON product file) is chosen
from configuration; see :mod:`commonlib.config`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_talisman import Talisman
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from werkzeug.middleware.proxy_fix import ProxyFix

from bulkedit import (
    BulkEditService,
    FilterCriterion,
    InvalidFilterCriterion,
    InvalidOperationParameter,
    RemoteError,
    RemoteUnavailable,
    build_service,
)
from commonlib.config import load_bulk_edit_config

BASE_DIR = Path(__file__).resolve().parent

# ---------------------------------------------------------------------------
# Config / Logging
# ---------------------------------------------------------------------------
CONFIG = load_bulk_edit_config(BASE_DIR)

logging.basicConfig(
    level=getattr(logging, CONFIG.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Flask app
# ---------------------------------------------------------------------------
app = Flask(__name__)
app.config.update(
    SECRET_KEY=CONFIG.secret_key,
    PREFERRED_URL_SCHEME="https" if CONFIG.force_tls else "http",
)

CORS(app, resources={r"/api/*": {"origins": list(CONFIG.allowed_origins)}})

# Security headers
Talisman(app, content_security_policy=None, force_https=CONFIG.force_tls, frame_options="DENY")

if CONFIG.trust_proxy_headers:
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)  # type: ignore[assignment]

# Built on first use so importing the app never touches the catalog.
_SERVICE: Optional[BulkEditService] = None


def get_service() -> BulkEditService:
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = build_service(CONFIG)
    return _SERVICE


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------
class FilterRequest(BaseModel):
    field: str = Field(..., min_length=1)
    condition: str = Field(..., min_length=1)
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> str:
        return "" if value is None else str(value)


class BulkEditRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_ids: list[str] = Field(default_factory=list, alias="productIds")
    operation: dict[str, Any]

    @field_validator("product_ids", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, (str, int)):
            value = [value]
        return [str(piece).strip() for piece in value if str(piece).strip()]


def _error(message: str, status: int, details: Any = None):
    payload: dict[str, Any] = {"success": False, "error": message}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.route("/api/health", methods=["GET"])
def health():
    return jsonify({"ok": True, "backend": CONFIG.catalog_backend})


@app.route("/api/products/filter", methods=["POST"])
def filter_products():
    try:
        body = FilterRequest(**_payload())
    except ValidationError as err:
        return _error("Invalid filter request", 400, err.errors(include_url=False, include_context=False))

    try:
        criterion = FilterCriterion.from_raw(body.field, body.condition, body.value)
        products = get_service().filter_items(criterion)
    except InvalidFilterCriterion as exc:
        return _error(str(exc), 400)
    except RemoteUnavailable as exc:
        logger.error("Filter failed, catalog unavailable: %s", exc)
        return _error(f"Catalog unavailable: {exc}", 502)
    except RemoteError as exc:
        logger.warning("Filter failed: %s", exc)
        return _error(f"Catalog error: {exc}", 502)

    return jsonify(
        {
            "success": True,
            "data": {"filtered_products": [product.to_dict() for product in products]},
        }
    )


@app.route("/api/products/bulk-edit", methods=["POST"])
def bulk_edit_products():
    try:
        body = BulkEditRequest(**_payload())
    except ValidationError as err:
        return _error("Invalid bulk edit request", 400, err.errors(include_url=False, include_context=False))

    try:
        result = get_service().bulk_edit(body.product_ids, body.operation)
    except InvalidOperationParameter as exc:
        return _error(str(exc), 400, exc.errors)

    payload = result.to_dict()
    status = 502 if result.report.aborted else 200
    return jsonify(payload), status


@app.route("/api/categories", methods=["GET"])
def list_categories():
    text = request.args.get("q", "")
    try:
        limit = max(1, min(int(request.args.get("limit", "50")), 250))
    except ValueError:
        return _error("limit must be an integer", 400)
    try:
        categories = get_service().categories.search(text, limit)
    except RemoteUnavailable as exc:
        return _error(f"Catalog unavailable: {exc}", 502)
    except RemoteError as exc:
        return _error(f"Catalog error: {exc}", 502)
    return jsonify(
        {
            "success": True,
            "data": [{"label": label, "id": category_id} for label, category_id in categories],
        }
    )


# ---------------------------------------------------------------------------
# Security headers
# ---------------------------------------------------------------------------
@app.after_request
def secure_headers(resp):
    resp.headers["X-Content-Type-Options"] = "nosniff"
    resp.headers["X-Frame-Options"] = "DENY"
    return resp


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app.run(host=CONFIG.api_host, port=CONFIG.api_port)
