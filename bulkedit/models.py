"""Value objects shared by the bulk edit engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from .errors import InvalidFilterCriterion


class FieldKind(str, Enum):
    """Fields an operator can filter the catalog on."""

    TITLE = "title"
    DESCRIPTION = "description"
    ITEM_ID = "productId"


class Condition(str, Enum):
    """Filter conditions understood by the matcher."""

    IS = "is"
    CONTAINS = "contains"
    DOES_NOT_CONTAIN = "doesNotContain"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    EMPTY = "empty"


class OutcomeStatus(str, Enum):
    UPDATED = "updated"
    SKIPPED = "skipped"
    ERROR = "error"


class VerdictKind(str, Enum):
    SUCCESS = "success"
    NO_OP_WARNING = "noOpWarning"
    PARTIAL_FAILURE = "partialFailure"
    FAILURE = "failure"


@dataclass(frozen=True)
class FilterCriterion:
    """One ``(field, condition, value)`` triple chosen by the operator."""

    field: FieldKind
    condition: Condition
    value: str = ""

    @classmethod
    def from_raw(cls, field: str, condition: str, value: str | None = None) -> "FilterCriterion":
        """Build a criterion from untrusted strings, validating the combination."""

        try:
            field_kind = FieldKind(field)
        except ValueError as exc:
            raise InvalidFilterCriterion(f"unknown filter field: {field!r}") from exc
        try:
            cond = Condition(condition)
        except ValueError as exc:
            raise InvalidFilterCriterion(f"unknown filter condition: {condition!r}") from exc
        criterion = cls(field=field_kind, condition=cond, value=(value or ""))
        criterion.validate()
        return criterion

    def validate(self) -> None:
        if self.condition is Condition.EMPTY and self.field is not FieldKind.DESCRIPTION:
            raise InvalidFilterCriterion("the 'empty' condition only applies to descriptions")
        if self.field is FieldKind.ITEM_ID and self.condition is not Condition.IS:
            raise InvalidFilterCriterion("product ids can only be matched with 'is'")
        if self.condition is not Condition.EMPTY and not self.value.strip():
            raise InvalidFilterCriterion("a filter value is required")


@dataclass(frozen=True, slots=True)
class Variant:
    """Mutable sub-resource of an item carrying price, cost and identifiers."""

    id: str
    price: Decimal = Decimal("0")
    compare_at_price: Optional[Decimal] = None
    cost: Optional[Decimal] = None
    barcode: Optional[str] = None
    sku: Optional[str] = None
    title: str = ""
    weight: Optional[Decimal] = None
    weight_unit: Optional[str] = None
    requires_shipping: Optional[bool] = None
    tracks_inventory: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "price": _money(self.price),
            "compareAtPrice": _money(self.compare_at_price),
            "cost": _money(self.cost),
            "barcode": self.barcode,
            "sku": self.sku,
            "weight": None if self.weight is None else str(self.weight),
            "weightUnit": self.weight_unit,
            "requiresShipping": self.requires_shipping,
            "tracksInventory": self.tracks_inventory,
        }


@dataclass(frozen=True, slots=True)
class Item:
    """Read-only snapshot of a catalog product."""

    id: str
    title: str = ""
    description: str = ""
    product_type: str = ""
    vendor: str = ""
    status: str = "ACTIVE"
    category_id: Optional[str] = None
    variants: tuple[Variant, ...] = ()
    tags: tuple[str, ...] = ()

    @property
    def price(self) -> Decimal:
        return self.variants[0].price if self.variants else Decimal("0")

    @property
    def cost(self) -> Optional[Decimal]:
        return self.variants[0].cost if self.variants else None

    @property
    def barcode(self) -> Optional[str]:
        return self.variants[0].barcode if self.variants else None

    @property
    def sku(self) -> Optional[str]:
        return self.variants[0].sku if self.variants else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "productType": self.product_type,
            "vendor": self.vendor,
            "status": self.status,
            "categoryId": self.category_id,
            "tags": list(self.tags),
            "price": _money(self.price),
            "variants": [variant.to_dict() for variant in self.variants],
        }


@dataclass(frozen=True, slots=True)
class ItemOutcome:
    """What happened to one item during a batch. Never mutated after creation."""

    item_id: str
    status: OutcomeStatus
    original_value: Any = None
    new_value: Any = None
    error_detail: Optional[str] = None
    # Server-reported change flag, when the gateway exposes one.
    remote_changed: Optional[bool] = None

    @property
    def changed(self) -> bool:
        if self.status is not OutcomeStatus.UPDATED:
            return False
        if self.remote_changed is not None:
            return self.remote_changed
        return self.new_value != self.original_value

    def to_dict(self) -> dict[str, Any]:
        return {
            "itemId": self.item_id,
            "status": self.status.value,
            "originalValue": _jsonable(self.original_value),
            "newValue": _jsonable(self.new_value),
            "errorDetail": self.error_detail,
        }


@dataclass(frozen=True)
class BatchReport:
    """Aggregate of all outcomes for one bulk edit request."""

    outcomes: tuple[ItemOutcome, ...] = ()
    aborted: bool = False
    cancelled: bool = False
    abort_reason: Optional[str] = None
    updated_count: int = field(init=False)
    skipped_count: int = field(init=False)
    error_count: int = field(init=False)

    def __post_init__(self) -> None:
        counts = {status: 0 for status in OutcomeStatus}
        for outcome in self.outcomes:
            counts[outcome.status] += 1
        object.__setattr__(self, "updated_count", counts[OutcomeStatus.UPDATED])
        object.__setattr__(self, "skipped_count", counts[OutcomeStatus.SKIPPED])
        object.__setattr__(self, "error_count", counts[OutcomeStatus.ERROR])

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "updatedCount": self.updated_count,
            "skippedCount": self.skipped_count,
            "errorCount": self.error_count,
            "aborted": self.aborted,
            "cancelled": self.cancelled,
        }


@dataclass(frozen=True, slots=True)
class Verdict:
    kind: VerdictKind
    message: str
    updated: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def ok(self) -> bool:
        return self.kind in (VerdictKind.SUCCESS, VerdictKind.NO_OP_WARNING)


def _money(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return f"{value:.2f}"


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        # Weights can carry more than two decimals; money never does.
        return _money(value) if value == value.quantize(Decimal("0.01")) else str(value)
    if isinstance(value, tuple):
        return [_jsonable(piece) for piece in value]
    if isinstance(value, dict):
        return {key: _jsonable(piece) for key, piece in value.items()}
    return value
