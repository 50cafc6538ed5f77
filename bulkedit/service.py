"""Request-level entry points: filter the catalog, then bulk edit a selection."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from .categories import CategoryLookup, TaxonomyCache
from .classifier import classify
from .errors import RemoteError, RemoteUnavailable
from .executor import BatchExecutor
from .filters import CompiledFilter, FilterCompiler, refine_candidates
from .gateways import CatalogGateway
from .gateways.local import LocalCatalogGateway
from .gateways.shopify import ShopifyGateway
from .models import BatchReport, FilterCriterion, Item, Verdict, VerdictKind
from .operations import CategoryEdit, parse_operation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BulkEditResult:
    report: BatchReport
    verdict: Verdict

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.verdict.ok,
            "verdict": self.verdict.kind.value,
            "message": self.verdict.message,
            "report": self.report.to_dict(),
        }


class BulkEditService:
    """Wire the filter compiler, executor and classifier to one gateway.

    The service holds no per-request state; every call builds a fresh
    executor and report.
    """

    def __init__(
        self,
        gateway: CatalogGateway,
        *,
        categories: CategoryLookup | None = None,
        search_limit: int = 50,
        max_workers: int = 1,
        skip_unchanged: bool = False,
    ) -> None:
        self.gateway = gateway
        self.compiler = FilterCompiler()
        self.categories = categories or CategoryLookup(gateway.list_categories, TaxonomyCache())
        self.search_limit = search_limit
        self.max_workers = max_workers
        self.skip_unchanged = skip_unchanged

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------
    def filter_items(self, criterion: FilterCriterion) -> list[Item]:
        """Return the candidate set for ``criterion``.

        Raises ``InvalidFilterCriterion`` before any remote call when the
        criterion is malformed.
        """

        compiled = self.compiler.compile(criterion)
        if compiled.is_direct_lookup:
            item = self.gateway.get_item(compiled.item_id)
            return [item] if item is not None else []

        candidates = self.gateway.search(compiled.remote_query, self.search_limit)
        refined = refine_candidates(candidates, compiled)
        logger.info(
            "Filter %s %s %r: %d remote candidates, %d after refinement",
            criterion.field.value,
            criterion.condition.value,
            criterion.value,
            len(candidates),
            len(refined),
        )
        return refined

    def compile_filter(self, criterion: FilterCriterion) -> CompiledFilter:
        return self.compiler.compile(criterion)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def bulk_edit(
        self,
        item_ids: Sequence[str],
        operation: Mapping[str, Any] | Any,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> BulkEditResult:
        """Validate ``operation``, apply it to ``item_ids`` and classify the result.

        Raises ``InvalidOperationParameter`` before any remote call when the
        operation is invalid. Remote failures never raise; they end up in the
        report and verdict.
        """

        op = parse_operation(operation)
        ids = [str(item_id).strip() for item_id in item_ids if str(item_id).strip()]

        category_id = None
        if isinstance(op, CategoryEdit):
            category_id = op.category_id
            if not category_id:
                try:
                    category_id = self.categories.resolve_category(op.category_path or "")
                except (RemoteError, RemoteUnavailable) as exc:
                    logger.error("Could not load categories: %s", exc)
                    report = BatchReport(aborted=True, abort_reason=str(exc))
                    return BulkEditResult(report=report, verdict=classify(report))

        if not ids:
            report = BatchReport()
            return BulkEditResult(report=report, verdict=classify(report))

        executor = BatchExecutor(
            self.gateway,
            max_workers=self.max_workers,
            skip_unchanged=self.skip_unchanged,
            cancel_event=cancel_event,
        )
        report = executor.execute_ids(ids, op, category_id=category_id)
        verdict = classify(report)
        log = logger.info if verdict.kind in (VerdictKind.SUCCESS, VerdictKind.NO_OP_WARNING) else logger.warning
        log("Bulk %s edit verdict: %s (%s)", op.field, verdict.kind.value, verdict.message)
        return BulkEditResult(report=report, verdict=verdict)


def build_gateway(config) -> CatalogGateway:
    """Construct the catalog gateway selected by ``config.catalog_backend``."""

    if config.uses_shopify:
        return ShopifyGateway(
            config.shop_domain,
            config.access_token,
            api_version=config.api_version,
            timeout=config.request_timeout,
        )

    taxonomy = config.taxonomy_file if config.taxonomy_file.exists() else None
    return LocalCatalogGateway(config.product_file, config.product_backups, taxonomy_path=taxonomy)


def build_service(config) -> BulkEditService:
    gateway = build_gateway(config)
    logger.info("Using %s catalog backend", config.catalog_backend)
    return BulkEditService(
        gateway,
        categories=CategoryLookup(gateway.list_categories, TaxonomyCache(config.taxonomy_cache_ttl)),
        search_limit=config.search_limit,
        max_workers=config.max_workers,
        skip_unchanged=config.skip_unchanged,
    )
