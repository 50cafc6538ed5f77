"""Turn a batch report into the single verdict shown to the operator.

The remote API reports success for writes that leave a value untouched, so a
batch whose writes all "succeeded" without changing anything is reported as a
``noOpWarning`` rather than a success.
"""

from __future__ import annotations

from .models import BatchReport, OutcomeStatus, Verdict, VerdictKind


def classify(report: BatchReport) -> Verdict:
    """Classify ``report``; the first matching rule wins."""

    counts = dict(updated=report.updated_count, skipped=report.skipped_count, errors=report.error_count)
    total = len(report.outcomes)

    if report.aborted:
        reason = report.abort_reason or "catalog unavailable"
        return Verdict(VerdictKind.FAILURE, f"Bulk edit aborted: {reason}.", **counts)

    if not total:
        return Verdict(VerdictKind.FAILURE, "No items to update.", **counts)

    if report.error_count == total:
        details = sorted({o.error_detail for o in report.outcomes if o.error_detail})
        suffix = f" Errors: {'; '.join(details)}" if details else ""
        return Verdict(VerdictKind.FAILURE, f"Failed to update any of the {total} products.{suffix}", **counts)

    if report.error_count:
        return Verdict(
            VerdictKind.PARTIAL_FAILURE,
            f"Updated {report.updated_count} of {total} products; {report.error_count} failed.",
            **counts,
        )

    changed = sum(1 for outcome in report.outcomes if outcome.changed)
    suffix = " (cancelled before completion)" if report.cancelled else ""
    if not changed:
        return Verdict(VerdictKind.NO_OP_WARNING, f"Completed, but no values changed.{suffix}", **counts)

    unchanged = sum(1 for o in report.outcomes if o.status is OutcomeStatus.UPDATED and not o.changed)
    message = f"Updated {changed} products"
    if unchanged or report.skipped_count:
        message += f"; {unchanged + report.skipped_count} already had the requested value"
    return Verdict(VerdictKind.SUCCESS, f"{message}.{suffix}", **counts)
