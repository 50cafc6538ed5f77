"""Catalog gateway backed by a local JSON product file.

Used for self-hosted catalogs and tests. It understands the same search
syntax as the remote service, and just as coarsely: ``field:*text*`` is a
plain substring test whatever condition produced it.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence
from uuid import uuid4

from commonlib.storage import ListStore, StoreError

from ..errors import RemoteError, RemoteUnavailable
from ..models import Item, Variant

logger = logging.getLogger(__name__)

_CLAUSE = re.compile(r"(-?)(\w+):(?:'([^']*)'|\*([^*]*)\*|(\S+))")

_ITEM_KEYS = {
    "title": "title",
    "description": "description",
    "productType": "productType",
    "vendor": "vendor",
    "status": "status",
    "category": "categoryId",
    "tags": "tags",
}

_VARIANT_KEYS = (
    "price",
    "compareAtPrice",
    "cost",
    "barcode",
    "sku",
    "weight",
    "weightUnit",
    "requiresShipping",
    "tracksInventory",
)

_MONEY_KEYS = {"price", "compareAtPrice", "cost"}


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _serialise(key: str, value: Any) -> Any:
    if isinstance(value, Decimal):
        return f"{value:.2f}" if key in _MONEY_KEYS else str(value)
    if isinstance(value, tuple):
        return list(value)
    return value


def _flag(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _tags(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    pieces = value.split(",") if isinstance(value, str) else value
    return tuple(str(piece).strip() for piece in pieces if str(piece).strip())


def variant_from_record(record: Mapping[str, Any]) -> Variant:
    return Variant(
        id=str(record.get("id")),
        title=str(record.get("title") or ""),
        price=_decimal(record.get("price")) or Decimal("0"),
        compare_at_price=_decimal(record.get("compareAtPrice")),
        cost=_decimal(record.get("cost")),
        barcode=record.get("barcode"),
        sku=record.get("sku"),
        weight=_decimal(record.get("weight")),
        weight_unit=record.get("weightUnit"),
        requires_shipping=_flag(record.get("requiresShipping")),
        tracks_inventory=_flag(record.get("tracksInventory")),
    )


def item_from_record(record: Mapping[str, Any]) -> Item:
    return Item(
        id=str(record.get("id")),
        title=str(record.get("title") or ""),
        description=str(record.get("description") or ""),
        product_type=str(record.get("productType") or ""),
        vendor=str(record.get("vendor") or ""),
        status=str(record.get("status") or "ACTIVE").upper(),
        category_id=record.get("categoryId"),
        variants=tuple(variant_from_record(v) for v in record.get("variants") or ()),
        tags=_tags(record.get("tags")),
    )


def _clause_matches(record: Mapping[str, Any], field: str, exact: Optional[str], wildcard: Optional[str], bare: Optional[str]) -> bool:
    haystack = str(record.get(field) or "").lower()
    if exact is not None:
        return haystack == exact.lower()
    needle = (wildcard if wildcard is not None else bare or "").lower()
    return needle in haystack


class LocalCatalogGateway:
    """:class:`~bulkedit.gateways.CatalogGateway` over a :class:`ListStore`."""

    def __init__(self, path: Path | str, backups: int = 2, *, taxonomy_path: Path | str | None = None):
        self._store = ListStore(path, backups=backups, label="product catalog")
        self._taxonomy = ListStore(taxonomy_path, backups=0, label="taxonomy") if taxonomy_path else None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _records(self) -> list[dict]:
        try:
            return self._store.load()
        except StoreError as exc:
            raise RemoteUnavailable(f"product catalog unreadable: {exc}") from exc

    def _mutate(self, item_id: str, apply) -> dict:
        target = str(item_id)
        updated: dict | None = None

        def mutator(records: list[dict]) -> None:
            nonlocal updated
            for record in records:
                if str(record.get("id")) == target:
                    apply(record)
                    updated = record
                    return

        try:
            self._store.mutate(mutator)
        except StoreError as exc:
            raise RemoteError(f"could not save product {target}: {exc}") from exc
        if updated is None:
            raise RemoteError(f"product {target} not found")
        return updated

    # ------------------------------------------------------------------
    # Catalog management
    # ------------------------------------------------------------------
    def add(self, payload: Mapping[str, Any]) -> Item:
        record = {key: _serialise(key, value) for key, value in payload.items()}
        record.setdefault("id", str(uuid4().int)[:12])
        record["variants"] = [
            {key: _serialise(key, value) for key, value in variant.items()}
            for variant in record.get("variants") or ()
        ]
        self._store.mutate(lambda records: records.append(record))
        return item_from_record(record)

    # ------------------------------------------------------------------
    # Gateway API
    # ------------------------------------------------------------------
    def search(self, query: str, limit: int = 50) -> list[Item]:
        clauses = _CLAUSE.findall(query or "")
        results: list[Item] = []
        for record in self._records():
            keep = True
            for negate, field, exact, wildcard, bare in clauses:
                hit = _clause_matches(record, field, exact or None, wildcard or None, bare or None)
                if negate:
                    hit = not hit
                if not hit:
                    keep = False
                    break
            if keep:
                results.append(item_from_record(record))
            if len(results) >= limit:
                break
        logger.debug("Local search %r returned %d products", query, len(results))
        return results

    def get_item(self, item_id: str) -> Optional[Item]:
        target = str(item_id)
        for record in self._records():
            if str(record.get("id")) == target:
                return item_from_record(record)
        return None

    def get_variants(self, item_id: str) -> list[Variant]:
        item = self.get_item(item_id)
        if item is None:
            raise RemoteError(f"product {item_id} not found")
        return list(item.variants)

    def update_item(self, item_id: str, changes: Mapping[str, Any]) -> Optional[Item]:
        unknown = set(changes) - set(_ITEM_KEYS)
        if unknown:
            raise RemoteError(f"unsupported product fields: {', '.join(sorted(unknown))}")

        def apply(record: dict) -> None:
            for key, value in changes.items():
                record[_ITEM_KEYS[key]] = _serialise(key, value)

        return item_from_record(self._mutate(item_id, apply))

    def update_variants(self, item_id: str, changes: Sequence[tuple[str, Mapping[str, Any]]]) -> Optional[list[Variant]]:
        wanted = {str(variant_id): dict(values) for variant_id, values in changes}

        def apply(record: dict) -> None:
            variants = record.get("variants") or []
            known = {str(variant.get("id")) for variant in variants}
            missing = set(wanted) - known
            if missing:
                raise RemoteError(f"unknown variants: {', '.join(sorted(missing))}")
            for variant in variants:
                values = wanted.get(str(variant.get("id")))
                if not values:
                    continue
                for key, value in values.items():
                    if key not in _VARIANT_KEYS:
                        raise RemoteError(f"unsupported variant field: {key}")
                    variant[key] = _serialise(key, value)

        record = self._mutate(item_id, apply)
        return [variant_from_record(variant) for variant in record.get("variants") or ()]

    def list_categories(self, search: str = "") -> list[tuple[str, str]]:
        if self._taxonomy is None:
            return []
        needle = (search or "").lower()
        pairs = []
        for entry in self._taxonomy.load():
            label = str(entry.get("fullName") or entry.get("name") or "")
            if needle and needle not in label.lower():
                continue
            pairs.append((label, str(entry.get("id"))))
        return pairs
