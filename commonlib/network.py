"""Endpoint helpers for the remote catalog service."""
from __future__ import annotations

import re

DEFAULT_API_VERSION = "2024-10"

_SHOP_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*\.myshopify\.com$")


def normalise_shop_domain(shop: str) -> str:
    """Return the bare ``<name>.myshopify.com`` host for ``shop``.

    Accepts a full URL, a host with a trailing path, or just the store
    handle (``my-store``).
    """

    candidate = (shop or "").strip().lower()
    if not candidate:
        raise ValueError("shop domain is required")

    for prefix in ("https://", "http://"):
        if candidate.startswith(prefix):
            candidate = candidate[len(prefix):]
    candidate = candidate.split("/", 1)[0]

    if "." not in candidate:
        candidate = f"{candidate}.myshopify.com"
    if not _SHOP_PATTERN.match(candidate):
        raise ValueError(f"not a valid shop domain: {shop!r}")
    return candidate


def build_api_url(base: str, path: str = "/") -> str:
    """Combine a base URL with a path while avoiding double slashes."""

    base = (base or "").rstrip("/")
    if not path:
        return base
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"


def graphql_endpoint(shop: str, api_version: str = DEFAULT_API_VERSION) -> str:
    """Return the Admin GraphQL URL for ``shop``."""

    version = (api_version or DEFAULT_API_VERSION).strip()
    return build_api_url(f"https://{normalise_shop_domain(shop)}", f"/admin/api/{version}/graphql.json")
