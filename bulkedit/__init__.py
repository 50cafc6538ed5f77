"""Bulk edit engine: filter catalog items, then apply one edit to all of them."""

from .classifier import classify
from .errors import (
    BulkEditError,
    InvalidFilterCriterion,
    InvalidOperationParameter,
    PlanError,
    RemoteError,
    RemoteUnavailable,
)
from .executor import BatchExecutor
from .filters import CompiledFilter, FilterCompiler
from .matcher import matches
from .models import (
    BatchReport,
    Condition,
    FieldKind,
    FilterCriterion,
    Item,
    ItemOutcome,
    OutcomeStatus,
    Variant,
    Verdict,
    VerdictKind,
)
from .operations import parse_operation
from .service import BulkEditResult, BulkEditService, build_service

__all__ = [
    "BatchExecutor",
    "BatchReport",
    "BulkEditError",
    "BulkEditResult",
    "BulkEditService",
    "CompiledFilter",
    "Condition",
    "FieldKind",
    "FilterCompiler",
    "FilterCriterion",
    "InvalidFilterCriterion",
    "InvalidOperationParameter",
    "Item",
    "ItemOutcome",
    "OutcomeStatus",
    "PlanError",
    "RemoteError",
    "RemoteUnavailable",
    "Variant",
    "Verdict",
    "VerdictKind",
    "build_service",
    "classify",
    "matches",
    "parse_operation",
]
