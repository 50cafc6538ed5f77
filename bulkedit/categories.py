"""Category lookup for the category edit.

Taxonomy listings are large and change rarely, so they are cached. The cache
is an explicit object handed to :class:`CategoryLookup`; whoever builds the
lookup decides its lifetime and time-to-live.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from .errors import InvalidOperationParameter

logger = logging.getLogger(__name__)

CategoryPair = tuple[str, str]  # ("Apparel > Shirts", "gid://shopify/TaxonomyCategory/aa-1")


def normalise_path(label: str) -> str:
    """Canonical form of an ``A > B > C`` path for comparisons."""

    return " > ".join(part.strip().lower() for part in (label or "").split(">") if part.strip())


class TaxonomyCache:
    """Holds one taxonomy listing until ``ttl_seconds`` have elapsed."""

    def __init__(self, ttl_seconds: float = 3600.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Optional[list[CategoryPair]] = None
        self._loaded_at = 0.0

    def get(self) -> Optional[list[CategoryPair]]:
        with self._lock:
            if self._entries is None:
                return None
            if self.ttl_seconds > 0 and self._clock() - self._loaded_at >= self.ttl_seconds:
                self._entries = None
                return None
            return list(self._entries)

    def put(self, entries: list[CategoryPair]) -> None:
        with self._lock:
            self._entries = list(entries)
            self._loaded_at = self._clock()

    def invalidate(self) -> None:
        with self._lock:
            self._entries = None


class CategoryLookup:
    """Resolve an operator's category selection to an opaque category id."""

    def __init__(self, loader: Callable[..., list[CategoryPair]], cache: TaxonomyCache | None = None):
        self._loader = loader
        self._cache = cache or TaxonomyCache()

    def categories(self) -> list[CategoryPair]:
        cached = self._cache.get()
        if cached is not None:
            return cached
        entries = list(self._loader())
        logger.info("Loaded %d taxonomy categories", len(entries))
        self._cache.put(entries)
        return entries

    def search(self, text: str = "", limit: int = 50) -> list[CategoryPair]:
        needle = (text or "").strip().lower()
        matches = [pair for pair in self.categories() if needle in pair[0].lower()]
        return matches[:limit]

    def resolve_category(self, selection: str) -> str:
        selection = (selection or "").strip()
        if not selection:
            raise InvalidOperationParameter("a category selection is required")
        if selection.startswith("gid://"):
            return selection

        wanted = normalise_path(selection)
        for label, category_id in self.categories():
            if normalise_path(label) == wanted or category_id == selection:
                return category_id

        # Not in the cached listing: ask the catalog for the leaf name directly.
        if wanted:
            leaf = wanted.rsplit(" > ", 1)[-1]
            for label, category_id in self._loader(leaf):
                if normalise_path(label) == wanted:
                    return category_id
        raise InvalidOperationParameter(f"unknown category: {selection}")
