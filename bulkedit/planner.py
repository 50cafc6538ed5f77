"""Pure transforms computing a field's new value from its old value.

Every function here is side-effect free. A plan that produces the same value
as before is still returned as-is; deciding whether a batch changed anything
is left to :mod:`bulkedit.classifier`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from .errors import PlanError
from .models import Item, Variant
from .operations import (
    BarcodeEdit,
    Capitalization,
    CategoryEdit,
    CostEdit,
    DescriptionEdit,
    Direction,
    PriceEdit,
    PriceMode,
    PriceTarget,
    ProductTypeEdit,
    RequiresShippingEdit,
    RoundingMode,
    SkuEdit,
    StatusEdit,
    TagMode,
    TagsEdit,
    TextMode,
    TitleEdit,
    TitleMode,
    TracksInventoryEdit,
    VendorEdit,
    VendorMode,
    WeightEdit,
)

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class VariantChange:
    """Planned write for one variant: remote field name -> new value."""

    variant_id: str
    changes: dict[str, Any] = field(default_factory=dict)


# ----------------------------------------------------------------------
# Text
# ----------------------------------------------------------------------
def capitalize(text: str, mode: Capitalization) -> str:
    if mode is Capitalization.TITLE_CASE:
        return " ".join(word[:1].upper() + word[1:] for word in text.lower().split(" "))
    if mode is Capitalization.UPPERCASE:
        return text.upper()
    if mode is Capitalization.LOWERCASE:
        return text.lower()
    if mode is Capitalization.FIRST_LETTER:
        return text[:1].upper() + text[1:].lower()
    raise PlanError(f"unsupported capitalization: {mode!r}")


def _pattern(text: str, use_regex: bool) -> re.Pattern[str]:
    source = text if use_regex else re.escape(text)
    try:
        return re.compile(source, re.IGNORECASE)
    except re.error as exc:
        raise PlanError(f"invalid pattern {text!r}: {exc}") from exc


def edit_text(current: str, mode: TextMode | TitleMode, text: str, replacement: str = "", use_regex: bool = False) -> str:
    """Apply a prepend/append/replace/remove edit to ``current``."""

    current = current or ""
    mode_value = mode.value
    if mode_value == "prepend":
        return f"{text} {current}"
    if mode_value == "append":
        return f"{current} {text}"
    if not text:
        raise PlanError("text to find is required")
    pattern = _pattern(text, use_regex)
    if mode_value == "remove":
        if not pattern.search(current):
            return current
        return pattern.sub("", current).strip()
    if mode_value == "replace":
        # Callable replacement keeps the text literal (no backslash expansion).
        return pattern.sub(lambda _match: replacement, current)
    raise PlanError(f"unsupported text edit: {mode_value!r}")


def plan_title(old: str, operation: TitleEdit) -> str:
    mode = operation.mode
    if mode is TitleMode.CAPITALIZE:
        if operation.capitalization is None:
            raise PlanError("capitalization is required")
        return capitalize(old or "", operation.capitalization)
    if mode is TitleMode.TRUNCATE:
        if operation.length is None or operation.length <= 0:
            raise PlanError("truncate length must be greater than 0")
        return (old or "")[: operation.length]
    return edit_text(old, mode, operation.text, operation.replacement, operation.use_regex)


def plan_description(old: str, operation: DescriptionEdit) -> str:
    return edit_text(old, operation.mode, operation.text, operation.replacement)


def plan_vendor(old: str, operation: VendorEdit) -> str:
    if operation.mode is VendorMode.CAPITALIZE:
        if operation.capitalization is None:
            raise PlanError("capitalization is required")
        return capitalize(old or "", operation.capitalization)
    return operation.value


# ----------------------------------------------------------------------
# Tags
# ----------------------------------------------------------------------
def _unique(tags) -> tuple[str, ...]:
    return tuple(dict.fromkeys(tags))


def plan_tags(old: tuple[str, ...], operation: TagsEdit) -> tuple[str, ...]:
    current = tuple(old or ())
    mode = operation.mode
    if mode is TagMode.ADD:
        return _unique(current + operation.tags)
    if mode is TagMode.REMOVE:
        if not operation.tags:
            return ()
        return tuple(tag for tag in current if tag not in operation.tags)
    if mode is TagMode.REPLACE:
        return _unique(operation.tags)
    if mode is TagMode.FIND_REPLACE:
        if not any(tag in operation.find_tags for tag in current):
            return current
        kept = [tag for tag in current if tag not in operation.find_tags]
        return _unique([*kept, *operation.tags])
    raise PlanError(f"unsupported tag edit: {mode!r}")


# ----------------------------------------------------------------------
# Money
# ----------------------------------------------------------------------
def to_money(value: Decimal) -> Decimal:
    try:
        return max(value, ZERO).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise PlanError(f"amount out of range: {value}") from exc


def adjust_absolute(base: Decimal, amount: Decimal, direction: Direction) -> Decimal:
    if amount <= 0:
        raise PlanError("adjustment amount must be greater than 0")
    if direction is Direction.INCREASE:
        return to_money(base + amount)
    return to_money(base - amount)


def adjust_percent(base: Decimal, percent: Decimal, direction: Direction) -> Decimal:
    if not (0 < percent <= HUNDRED):
        raise PlanError("percentage must be between 0 and 100")
    factor = percent / HUNDRED
    if direction is Direction.INCREASE:
        return to_money(base * (1 + factor))
    lowered = to_money(base * (1 - factor))
    # Cent rounding can swallow a small cut; a decrease always lowers a positive price.
    if base > 0 and lowered >= base:
        lowered = to_money(base - CENT)
    return lowered


def round_to_step(value: Decimal, mode: RoundingMode, step: int) -> Decimal:
    """Round the integer part of ``value`` to a multiple of ``step``."""

    if step < 1:
        raise PlanError("rounding step must be at least 1")
    whole = int(value)
    if mode is RoundingMode.UPPER:
        units = -(-whole // step)
    elif mode is RoundingMode.LOWER:
        units = whole // step
    else:
        units = int((Decimal(whole) / step).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return to_money(Decimal(units * step))


def plan_price(variant: Variant, operation: PriceEdit) -> dict[str, Any]:
    """Return the variant fields (``price`` / ``compareAtPrice``) to write."""

    original_price = variant.price
    mode = operation.mode
    targets_price = operation.target is PriceTarget.PRICE

    if mode is PriceMode.REMOVE_COMPARE_AT:
        return {"compareAtPrice": None}

    if mode is PriceMode.ROUND:
        if operation.rounding is None or operation.rounding_step is None:
            raise PlanError("rounding mode and step are required")
        if targets_price:
            return {"price": round_to_step(original_price, operation.rounding, operation.rounding_step)}
        base = variant.compare_at_price or ZERO
        return {"compareAtPrice": round_to_step(base, operation.rounding, operation.rounding_step)}

    amount = operation.amount
    if amount is None:
        raise PlanError("amount is required")
    base = original_price if targets_price else (variant.compare_at_price or original_price)

    if mode is PriceMode.SET:
        if amount < 0:
            raise PlanError("price cannot be negative")
        new_value = to_money(amount)
    elif operation.direction is None:
        raise PlanError("direction is required for adjustments")
    elif mode is PriceMode.ADJUST_ABSOLUTE:
        new_value = adjust_absolute(base, amount, operation.direction)
    elif mode is PriceMode.ADJUST_PERCENT:
        new_value = adjust_percent(base, amount, operation.direction)
    else:
        raise PlanError(f"unsupported price edit: {mode!r}")

    if not targets_price:
        return {"compareAtPrice": new_value}
    changes: dict[str, Any] = {"price": new_value}
    if operation.sync_compare_at:
        changes["compareAtPrice"] = to_money(original_price)
    return changes


def plan_cost(old: Optional[Decimal], operation: CostEdit) -> Decimal:
    if operation.amount < 0:
        raise PlanError("cost cannot be negative")
    return to_money(operation.amount)


def plan_weight(variant: Variant, operation: WeightEdit) -> dict[str, Any]:
    """Weight and unit are written together; a unit-only edit keeps the number."""

    value = operation.value if operation.value is not None else (variant.weight or ZERO)
    return {"weight": value, "weightUnit": operation.unit.value}


# ----------------------------------------------------------------------
# Dispatch
# ----------------------------------------------------------------------
_ITEM_ATTRIBUTES = {
    "title": "title",
    "description": "description",
    "productType": "product_type",
    "vendor": "vendor",
    "status": "status",
    "category": "category_id",
    "tags": "tags",
}

_VARIANT_ATTRIBUTES = {
    "price": "price",
    "compareAtPrice": "compare_at_price",
    "cost": "cost",
    "barcode": "barcode",
    "sku": "sku",
    "weight": "weight",
    "weightUnit": "weight_unit",
    "requiresShipping": "requires_shipping",
    "tracksInventory": "tracks_inventory",
}


def item_value(item: Item, operation: Any) -> Any:
    """Current value of the item-level field targeted by ``operation``."""

    return getattr(item, _ITEM_ATTRIBUTES[operation.field])


def variant_values(variant: Variant, keys: Any) -> dict[str, Any]:
    return {key: getattr(variant, _VARIANT_ATTRIBUTES[key]) for key in keys}


def plan_item(item: Item, operation: Any, *, category_id: Optional[str] = None) -> Any:
    """Plan the new value of an item-level field."""

    old = item_value(item, operation)
    if isinstance(operation, TitleEdit):
        return plan_title(old, operation)
    if isinstance(operation, DescriptionEdit):
        return plan_description(old, operation)
    if isinstance(operation, VendorEdit):
        return plan_vendor(old, operation)
    if isinstance(operation, TagsEdit):
        return plan_tags(old, operation)
    if isinstance(operation, (ProductTypeEdit, StatusEdit)):
        return operation.value
    if isinstance(operation, CategoryEdit):
        resolved = category_id or operation.category_id
        if not resolved:
            raise PlanError("category has not been resolved")
        return resolved
    raise PlanError(f"{operation.field} is not an item-level field")


def plan_variant(variant: Variant, operation: Any) -> VariantChange:
    """Plan the write for one variant."""

    if isinstance(operation, PriceEdit):
        changes = plan_price(variant, operation)
    elif isinstance(operation, CostEdit):
        changes = {"cost": plan_cost(variant.cost, operation)}
    elif isinstance(operation, (BarcodeEdit, SkuEdit, RequiresShippingEdit, TracksInventoryEdit)):
        changes = {operation.field: operation.value}
    elif isinstance(operation, WeightEdit):
        changes = plan_weight(variant, operation)
    else:
        raise PlanError(f"{operation.field} is not a variant-level field")
    return VariantChange(variant_id=variant.id, changes=changes)
