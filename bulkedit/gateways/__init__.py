"""Remote catalog gateways.

The engine only talks to the catalog through :class:`CatalogGateway`; it
produces query strings and field/value pairs and never builds transport
requests itself.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable

from ..models import Item, Variant


@runtime_checkable
class CatalogGateway(Protocol):
    """Operations the bulk editor needs from a catalog backend.

    Implementations raise :class:`bulkedit.errors.RemoteError` when a single
    call fails and :class:`bulkedit.errors.RemoteUnavailable` when the backend
    cannot be reached at all.
    """

    def search(self, query: str, limit: int) -> list[Item]: ...

    def get_item(self, item_id: str) -> Optional[Item]: ...

    def get_variants(self, item_id: str) -> list[Variant]: ...

    def update_item(self, item_id: str, changes: Mapping[str, Any]) -> Optional[Item]: ...

    def update_variants(
        self, item_id: str, changes: Sequence[tuple[str, Mapping[str, Any]]]
    ) -> Optional[list[Variant]]: ...

    def list_categories(self, search: str = "") -> list[tuple[str, str]]: ...


__all__ = ["CatalogGateway"]
