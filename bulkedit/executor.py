"""Apply one edit operation across a batch of catalog items.

Each item is its own failure domain: a failed read, plan or write for one item
is recorded as that item's ``error`` outcome and the batch moves on. Only
:class:`RemoteUnavailable` stops the batch, since no later call could succeed.
Nothing is retried.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional, Sequence, Union

from .errors import PlanError, RemoteError, RemoteUnavailable
from .gateways import CatalogGateway
from .models import BatchReport, Item, ItemOutcome, OutcomeStatus
from .planner import item_value, plan_item, plan_variant, variant_values

logger = logging.getLogger(__name__)

Target = Union[Item, str]


def _collapse(values: list[dict[str, Any]]) -> Any:
    """Shrink per-variant value maps to the simplest comparable shape.

    One field per variant becomes a scalar, and a single-variant item reports
    that variant's value directly instead of a one-element tuple.
    """

    shaped = [next(iter(value.values())) if len(value) == 1 else value for value in values]
    return shaped[0] if len(shaped) == 1 else tuple(shaped)


class BatchExecutor:
    """Run the per-item read-modify-write cycle for one bulk edit request.

    Items are processed sequentially in input order unless ``max_workers`` is
    greater than one, in which case a bounded thread pool is used and the
    outcomes are put back in input order. ``cancel_event`` stops the batch
    between items; outcomes recorded so far are kept.
    """

    def __init__(
        self,
        gateway: CatalogGateway,
        *,
        max_workers: int = 1,
        skip_unchanged: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.gateway = gateway
        self.max_workers = max(1, int(max_workers))
        self.skip_unchanged = skip_unchanged
        self.cancel_event = cancel_event

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def execute(self, items: Sequence[Item], operation: Any, *, category_id: Optional[str] = None) -> BatchReport:
        return self._run(list(items), operation, category_id)

    def execute_ids(self, item_ids: Sequence[str], operation: Any, *, category_id: Optional[str] = None) -> BatchReport:
        """Like :meth:`execute`, fetching each item's snapshot inside its own failure domain."""

        return self._run([str(item_id) for item_id in item_ids], operation, category_id)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    def _run(self, targets: list[Target], operation: Any, category_id: Optional[str]) -> BatchReport:
        logger.info("Starting %s edit for %d products", operation.field, len(targets))
        if self.max_workers > 1 and len(targets) > 1:
            outcomes, aborted, reason = self._run_parallel(targets, operation, category_id)
        else:
            outcomes, aborted, reason = self._run_sequential(targets, operation, category_id)

        cancelled = not aborted and len(outcomes) < len(targets)
        report = BatchReport(
            outcomes=tuple(outcomes),
            aborted=aborted,
            cancelled=cancelled,
            abort_reason=reason,
        )
        logger.info(
            "Finished %s edit: %d updated, %d skipped, %d failed%s",
            operation.field,
            report.updated_count,
            report.skipped_count,
            report.error_count,
            " (aborted)" if aborted else " (cancelled)" if cancelled else "",
        )
        return report

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _run_sequential(self, targets, operation, category_id):
        outcomes: list[ItemOutcome] = []
        for target in targets:
            if self._cancelled():
                break
            try:
                outcomes.append(self._process(target, operation, category_id))
            except RemoteUnavailable as exc:
                logger.error("Catalog unavailable, aborting batch: %s", exc)
                return outcomes, True, str(exc)
        return outcomes, False, None

    def _run_parallel(self, targets, operation, category_id):
        slots: list[Optional[ItemOutcome]] = [None] * len(targets)
        stop = threading.Event()
        failures: list[str] = []

        def work(index: int, target: Target) -> None:
            if stop.is_set() or self._cancelled():
                return
            try:
                slots[index] = self._process(target, operation, category_id)
            except RemoteUnavailable as exc:
                failures.append(str(exc))
                stop.set()

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(work, index, target) for index, target in enumerate(targets)]
            for future in futures:
                future.result()

        outcomes = [outcome for outcome in slots if outcome is not None]
        if failures:
            logger.error("Catalog unavailable, aborting batch: %s", failures[0])
            return outcomes, True, failures[0]
        return outcomes, False, None

    # ------------------------------------------------------------------
    # Per item
    # ------------------------------------------------------------------
    def _process(self, target: Target, operation: Any, category_id: Optional[str]) -> ItemOutcome:
        item_id = target if isinstance(target, str) else target.id
        try:
            item = self._resolve(target)
            if operation.variant_level:
                outcome = self._process_variants(item, operation)
            else:
                outcome = self._process_item(item, operation, category_id)
        except RemoteUnavailable:
            raise
        except (RemoteError, PlanError) as exc:
            outcome = ItemOutcome(item_id=item_id, status=OutcomeStatus.ERROR, error_detail=str(exc))
        except Exception as exc:  # isolate unexpected failures to this item
            logger.exception("Unexpected error while editing product %s", item_id)
            outcome = ItemOutcome(item_id=item_id, status=OutcomeStatus.ERROR, error_detail=f"unexpected error: {exc}")

        if outcome.status is OutcomeStatus.ERROR:
            logger.warning("Product %s failed: %s", item_id, outcome.error_detail)
        else:
            logger.debug("Product %s %s: %r -> %r", item_id, outcome.status.value, outcome.original_value, outcome.new_value)
        return outcome

    def _resolve(self, target: Target) -> Item:
        if isinstance(target, Item):
            return target
        item = self.gateway.get_item(target)
        if item is None:
            raise RemoteError(f"product {target} not found")
        return item

    def _process_item(self, item: Item, operation: Any, category_id: Optional[str]) -> ItemOutcome:
        old = item_value(item, operation)
        new = plan_item(item, operation, category_id=category_id)
        if self.skip_unchanged and new == old:
            return ItemOutcome(item_id=item.id, status=OutcomeStatus.SKIPPED, original_value=old, new_value=new)

        updated = self.gateway.update_item(item.id, {operation.field: new})
        reported = item_value(updated, operation) if updated is not None else new
        return ItemOutcome(item_id=item.id, status=OutcomeStatus.UPDATED, original_value=old, new_value=reported)

    def _process_variants(self, item: Item, operation: Any) -> ItemOutcome:
        variants = self.gateway.get_variants(item.id)
        if not variants:
            return ItemOutcome(
                item_id=item.id,
                status=OutcomeStatus.ERROR,
                error_detail=f"no variants found for product {item.id}",
            )

        changes = [plan_variant(variant, operation) for variant in variants]
        originals = [variant_values(variant, change.changes) for variant, change in zip(variants, changes)]
        planned = [dict(change.changes) for change in changes]
        old, new = _collapse(originals), _collapse(planned)
        if self.skip_unchanged and new == old:
            return ItemOutcome(item_id=item.id, status=OutcomeStatus.SKIPPED, original_value=old, new_value=new)

        returned = self.gateway.update_variants(item.id, [(change.variant_id, change.changes) for change in changes])
        if returned is not None:
            by_id = {variant.id: variant for variant in returned}
            reported = [
                variant_values(by_id[change.variant_id], change.changes) if change.variant_id in by_id else dict(change.changes)
                for change in changes
            ]
            new = _collapse(reported)
        return ItemOutcome(item_id=item.id, status=OutcomeStatus.UPDATED, original_value=old, new_value=new)

