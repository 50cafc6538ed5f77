"""Catalog gateway for the Shopify Admin GraphQL API."""

from __future__ import annotations

import logging
import threading
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional, Sequence

import requests

from commonlib.network import graphql_endpoint

from ..errors import RemoteError, RemoteUnavailable
from ..models import Item, Variant

logger = logging.getLogger(__name__)

PRODUCT_GID = "gid://shopify/Product/{}"
UNAVAILABLE_STATUS_CODES = {401, 402, 403, 423}

_VARIANT_FIELDS = """
  id
  title
  price
  compareAtPrice
  barcode
  sku
  inventoryItem {
    unitCost { amount }
    requiresShipping
    tracked
    measurement { weight { value unit } }
  }
"""

_PRODUCT_FIELDS = f"""
  id
  title
  descriptionHtml
  productType
  vendor
  status
  category {{ id }}
  tags
  variants(first: 100) {{ edges {{ node {{ {_VARIANT_FIELDS} }} }} }}
"""

SEARCH_QUERY = f"""
query searchProducts($first: Int!, $query: String) {{
  products(first: $first, query: $query) {{ edges {{ node {{ {_PRODUCT_FIELDS} }} }} }}
}}
"""

PRODUCT_QUERY = f"""
query getProduct($id: ID!) {{
  product(id: $id) {{ {_PRODUCT_FIELDS} }}
}}
"""

PRODUCT_UPDATE = f"""
mutation productUpdate($input: ProductInput!) {{
  productUpdate(input: $input) {{
    product {{ {_PRODUCT_FIELDS} }}
    userErrors {{ field message }}
  }}
}}
"""

VARIANTS_UPDATE = f"""
mutation productVariantsBulkUpdate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {{
  productVariantsBulkUpdate(productId: $productId, variants: $variants) {{
    productVariants {{ {_VARIANT_FIELDS} }}
    userErrors {{ field message }}
  }}
}}
"""

TAXONOMY_QUERY = """
query taxonomyCategories($first: Int!, $after: String, $search: String, $descendantsOf: ID) {
  taxonomy {
    categories(first: $first, after: $after, search: $search, descendantsOf: $descendantsOf) {
      edges { node { id fullName isLeaf } }
      pageInfo { hasNextPage endCursor }
    }
  }
}
"""
TAXONOMY_PAGE_SIZE = 250

# Engine field name -> ProductInput field.
_PRODUCT_INPUT_KEYS = {
    "title": "title",
    "description": "descriptionHtml",
    "productType": "productType",
    "vendor": "vendor",
    "status": "status",
    "category": "category",
    "tags": "tags",
}

_WEIGHT_UNITS = {"g": "GRAMS", "kg": "KILOGRAMS", "oz": "OUNCES", "lb": "POUNDS"}
_WEIGHT_UNIT_CODES = {name: code for code, name in _WEIGHT_UNITS.items()}


def numeric_id(gid: str) -> str:
    return str(gid).rsplit("/", 1)[-1]


def _decimal(value: Any) -> Optional[Decimal]:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _money(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else f"{value:.2f}"


def variant_from_node(node: Mapping[str, Any]) -> Variant:
    inventory = node.get("inventoryItem") or {}
    unit_cost = (inventory.get("unitCost") or {}).get("amount")
    weight = (inventory.get("measurement") or {}).get("weight") or {}
    unit = weight.get("unit")
    return Variant(
        id=str(node.get("id")),
        title=str(node.get("title") or ""),
        price=_decimal(node.get("price")) or Decimal("0"),
        compare_at_price=_decimal(node.get("compareAtPrice")),
        cost=_decimal(unit_cost),
        barcode=node.get("barcode"),
        sku=node.get("sku"),
        weight=_decimal(weight.get("value")),
        weight_unit=_WEIGHT_UNIT_CODES.get(unit, unit.lower() if unit else None),
        requires_shipping=inventory.get("requiresShipping"),
        tracks_inventory=inventory.get("tracked"),
    )


def item_from_node(node: Mapping[str, Any]) -> Item:
    edges = ((node.get("variants") or {}).get("edges")) or []
    return Item(
        id=numeric_id(node.get("id", "")),
        title=str(node.get("title") or ""),
        description=str(node.get("descriptionHtml") or ""),
        product_type=str(node.get("productType") or ""),
        vendor=str(node.get("vendor") or ""),
        status=str(node.get("status") or "ACTIVE"),
        category_id=(node.get("category") or {}).get("id"),
        variants=tuple(variant_from_node(edge.get("node") or {}) for edge in edges),
        tags=tuple(node.get("tags") or ()),
    )


def variant_input(variant_id: str, values: Mapping[str, Any]) -> dict[str, Any]:
    """Build one ``ProductVariantsBulkInput`` entry from planned values.

    Cost, SKU, shipping and tracking flags and the weight all live on the
    variant's inventory item. Weight value and unit must be given together.
    """

    payload: dict[str, Any] = {"id": variant_id}
    inventory: dict[str, Any] = {}
    for key, value in values.items():
        if key in ("price", "compareAtPrice"):
            payload[key] = _money(value)
        elif key == "barcode":
            payload["barcode"] = value
        elif key == "cost":
            inventory["cost"] = _money(value)
        elif key == "sku":
            inventory["sku"] = value
        elif key == "requiresShipping":
            inventory["requiresShipping"] = bool(value)
        elif key == "tracksInventory":
            inventory["tracked"] = bool(value)
        elif key not in ("weight", "weightUnit"):
            raise RemoteError(f"unsupported variant field: {key}")

    if "weight" in values or "weightUnit" in values:
        unit = _WEIGHT_UNITS.get(str(values.get("weightUnit") or "").lower())
        if values.get("weight") is None or unit is None:
            raise RemoteError("weight needs both a value and a unit (g, kg, oz, lb)")
        inventory["measurement"] = {"weight": {"value": float(values["weight"]), "unit": unit}}
    if inventory:
        payload["inventoryItem"] = inventory
    return payload


def _raise_user_errors(result: Mapping[str, Any] | None, operation: str) -> None:
    errors = (result or {}).get("userErrors") or []
    if errors:
        detail = "; ".join(str(error.get("message")) for error in errors)
        raise RemoteError(f"{operation} rejected: {detail}")


class ShopifyGateway:
    """:class:`~bulkedit.gateways.CatalogGateway` speaking Admin GraphQL.

    Every call is attempted once. Connection failures and authorisation
    errors raise :class:`RemoteUnavailable`; anything else that goes wrong
    with a single call raises :class:`RemoteError`.

    ``requests.Session`` is not thread-safe, so unless a session is injected
    each calling thread gets its own from ``session_factory``.
    """

    def __init__(
        self,
        shop: str,
        access_token: str,
        *,
        api_version: str = "2024-10",
        timeout: float = 20.0,
        session: requests.Session | None = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        if not access_token:
            raise ValueError("a Shopify access token is required")
        self.endpoint = graphql_endpoint(shop, api_version)
        self._headers = {"X-Shopify-Access-Token": access_token, "Content-Type": "application/json"}
        self._shared_session = session
        if session is not None:
            session.headers.update(self._headers)
        self._session_factory = session_factory
        self._local = threading.local()
        self._timeout = timeout

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._session_factory()
            session.headers.update(self._headers)
            self._local.session = session
        return session

    def _call(self, query: str, variables: Mapping[str, Any]) -> dict[str, Any]:
        try:
            response = self.session.post(
                self.endpoint,
                json={"query": query, "variables": dict(variables)},
                timeout=self._timeout,
            )
        except requests.ConnectionError as exc:
            raise RemoteUnavailable(f"cannot reach {self.endpoint}: {exc}") from exc
        except requests.RequestException as exc:
            raise RemoteError(f"request failed: {exc}") from exc

        if response.status_code in UNAVAILABLE_STATUS_CODES:
            raise RemoteUnavailable(f"catalog refused access (HTTP {response.status_code})")
        if response.status_code >= 400:
            raise RemoteError(f"catalog returned HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteError("catalog response was not valid JSON") from exc
        if payload.get("errors"):
            messages = "; ".join(str(error.get("message", error)) for error in payload["errors"])
            raise RemoteError(f"GraphQL errors: {messages}")
        data = payload.get("data")
        if not isinstance(data, dict):
            raise RemoteError("catalog response had no data")
        return data

    # ------------------------------------------------------------------
    # Gateway API
    # ------------------------------------------------------------------
    def search(self, query: str, limit: int = 50) -> list[Item]:
        data = self._call(SEARCH_QUERY, {"first": limit, "query": query or None})
        edges = ((data.get("products") or {}).get("edges")) or []
        logger.info("Search %r returned %d products", query, len(edges))
        return [item_from_node(edge.get("node") or {}) for edge in edges]

    def get_item(self, item_id: str) -> Optional[Item]:
        data = self._call(PRODUCT_QUERY, {"id": PRODUCT_GID.format(item_id)})
        node = data.get("product")
        return item_from_node(node) if node else None

    def get_variants(self, item_id: str) -> list[Variant]:
        item = self.get_item(item_id)
        if item is None:
            raise RemoteError(f"product {item_id} not found")
        return list(item.variants)

    def update_item(self, item_id: str, changes: Mapping[str, Any]) -> Optional[Item]:
        product_input: dict[str, Any] = {"id": PRODUCT_GID.format(item_id)}
        for key, value in changes.items():
            if key not in _PRODUCT_INPUT_KEYS:
                raise RemoteError(f"unsupported product field: {key}")
            product_input[_PRODUCT_INPUT_KEYS[key]] = list(value) if key == "tags" else value
        data = self._call(PRODUCT_UPDATE, {"input": product_input})
        result = data.get("productUpdate")
        _raise_user_errors(result, "productUpdate")
        node = (result or {}).get("product")
        return item_from_node(node) if node else None

    def update_variants(self, item_id: str, changes: Sequence[tuple[str, Mapping[str, Any]]]) -> Optional[list[Variant]]:
        variables = {
            "productId": PRODUCT_GID.format(item_id),
            "variants": [variant_input(variant_id, values) for variant_id, values in changes],
        }
        data = self._call(VARIANTS_UPDATE, variables)
        result = data.get("productVariantsBulkUpdate")
        _raise_user_errors(result, "productVariantsBulkUpdate")
        nodes = (result or {}).get("productVariants")
        if nodes is None:
            return None
        return [variant_from_node(node) for node in nodes]

    def _category_nodes(self, **filters: Any) -> list[dict[str, Any]]:
        nodes: list[dict[str, Any]] = []
        after: Optional[str] = None
        while True:
            variables = {"first": TAXONOMY_PAGE_SIZE, "after": after, "search": None, "descendantsOf": None, **filters}
            data = self._call(TAXONOMY_QUERY, variables)
            page = (data.get("taxonomy") or {}).get("categories") or {}
            nodes.extend(edge.get("node") or {} for edge in page.get("edges") or ())
            info = page.get("pageInfo") or {}
            if not info.get("hasNextPage"):
                return nodes
            after = info.get("endCursor")
            if not after:
                raise RemoteError("taxonomy listing reported more pages without a cursor")

    def list_categories(self, search: str = "") -> list[tuple[str, str]]:
        """Every category matching ``search``, or the whole taxonomy when empty.

        Without a search term the API only lists top-level categories, so the
        descendants of each non-leaf root are fetched as well.
        """

        if search:
            nodes = self._category_nodes(search=search)
        else:
            roots = self._category_nodes()
            nodes = list(roots)
            for root in roots:
                if not root.get("isLeaf"):
                    nodes.extend(self._category_nodes(descendantsOf=root.get("id")))
        logger.info("Fetched %d taxonomy categories", len(nodes))
        return [(str(node.get("fullName")), str(node.get("id"))) for node in nodes]
