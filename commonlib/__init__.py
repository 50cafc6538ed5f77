"""Common helpers shared by the bulk editor services."""

from .storage import ListStore, StoreError  # noqa: F401
from .network import (
    DEFAULT_API_VERSION,
    build_api_url,
    graphql_endpoint,
    normalise_shop_domain,
)

__all__ = [
    "ListStore",
    "StoreError",
    "DEFAULT_API_VERSION",
    "build_api_url",
    "graphql_endpoint",
    "normalise_shop_domain",
]
