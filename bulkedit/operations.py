"""Edit operations accepted by the bulk editor.

Each operation is a pydantic model tagged by ``field``; :func:`parse_operation`
validates raw request payloads (camelCase or snake_case keys) and turns any
validation problem into :class:`InvalidOperationParameter` before a single
remote call is made.
"""

from __future__ import annotations

import re
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .errors import InvalidOperationParameter


class TitleMode(str, Enum):
    PREPEND = "prepend"
    APPEND = "append"
    REPLACE = "replace"
    REMOVE = "remove"
    CAPITALIZE = "capitalize"
    TRUNCATE = "truncate"


class TextMode(str, Enum):
    PREPEND = "prepend"
    APPEND = "append"
    REPLACE = "replace"
    REMOVE = "remove"


class Capitalization(str, Enum):
    TITLE_CASE = "titleCase"
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    FIRST_LETTER = "firstLetter"


class PriceMode(str, Enum):
    SET = "set"
    ADJUST_ABSOLUTE = "adjustAbsolute"
    ADJUST_PERCENT = "adjustPercent"
    ROUND = "round"
    REMOVE_COMPARE_AT = "removeCompareAt"


class PriceTarget(str, Enum):
    PRICE = "price"
    COMPARE_AT_PRICE = "compareAtPrice"


class Direction(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


class RoundingMode(str, Enum):
    UPPER = "upper"
    LOWER = "lower"
    NEAREST = "nearest"


class VendorMode(str, Enum):
    SET = "set"
    CAPITALIZE = "capitalize"


class TagMode(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"
    FIND_REPLACE = "findReplace"


class WeightUnit(str, Enum):
    GRAMS = "g"
    KILOGRAMS = "kg"
    OUNCES = "oz"
    POUNDS = "lb"


PRODUCT_STATUSES = ("ACTIVE", "DRAFT", "ARCHIVED")

# Upper bound for money amounts, rounding steps and weights.
MAX_AMOUNT = Decimal("1000000000")


class _Operation(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    # Operations on variant-level fields need the item's variants resolved first.
    variant_level: ClassVar[bool] = False


def _check_pattern(text: str, use_regex: bool) -> None:
    if use_regex:
        try:
            re.compile(text)
        except re.error as exc:
            raise ValueError(f"invalid pattern: {exc}") from exc


class TitleEdit(_Operation):
    """Rewrite product titles."""

    field: Literal["title"] = "title"
    mode: TitleMode
    text: str = ""
    replacement: str = ""
    use_regex: bool = False
    capitalization: Optional[Capitalization] = None
    length: Optional[int] = None

    @model_validator(mode="after")
    def _check_parameters(self) -> "TitleEdit":
        if self.mode in (TitleMode.PREPEND, TitleMode.APPEND, TitleMode.REPLACE, TitleMode.REMOVE):
            if not self.text:
                raise ValueError("text is required")
            _check_pattern(self.text, self.use_regex)
        elif self.mode is TitleMode.CAPITALIZE and self.capitalization is None:
            raise ValueError("capitalization is required")
        elif self.mode is TitleMode.TRUNCATE and (self.length is None or self.length <= 0):
            raise ValueError("length must be greater than 0")
        return self


class DescriptionEdit(_Operation):
    """Add, remove or replace text inside product descriptions."""

    field: Literal["description"] = "description"
    mode: TextMode
    text: str = Field(..., min_length=1)
    replacement: str = ""


class PriceEdit(_Operation):
    """Set, adjust or round variant prices (or compare-at prices)."""

    variant_level: ClassVar[bool] = True

    field: Literal["price"] = "price"
    mode: PriceMode
    target: PriceTarget = PriceTarget.PRICE
    direction: Optional[Direction] = None
    amount: Optional[Decimal] = None
    sync_compare_at: bool = False
    rounding: Optional[RoundingMode] = None
    rounding_step: Optional[int] = None

    @model_validator(mode="after")
    def _check_parameters(self) -> "PriceEdit":
        mode = self.mode
        if mode in (PriceMode.SET, PriceMode.ADJUST_ABSOLUTE, PriceMode.ADJUST_PERCENT):
            if self.amount is None:
                raise ValueError("amount is required")
            if not self.amount.is_finite():
                raise ValueError("amount must be a number")
            if abs(self.amount) > MAX_AMOUNT:
                raise ValueError(f"amount must not exceed {MAX_AMOUNT}")
        if mode is PriceMode.SET and self.amount < 0:
            raise ValueError("price cannot be negative")
        if mode in (PriceMode.ADJUST_ABSOLUTE, PriceMode.ADJUST_PERCENT) and self.direction is None:
            raise ValueError("direction is required for adjustments")
        if mode is PriceMode.ADJUST_ABSOLUTE and self.amount <= 0:
            raise ValueError("adjustment amount must be greater than 0")
        if mode is PriceMode.ADJUST_PERCENT and not (0 < self.amount <= 100):
            raise ValueError("percentage must be between 0 and 100")
        if mode is PriceMode.ROUND:
            if self.rounding is None:
                raise ValueError("rounding is required")
            if self.rounding_step is None or self.rounding_step < 1:
                raise ValueError("rounding step must be at least 1")
            if self.rounding_step > MAX_AMOUNT:
                raise ValueError(f"rounding step must not exceed {MAX_AMOUNT}")
        return self


class CostEdit(_Operation):
    variant_level: ClassVar[bool] = True

    field: Literal["cost"] = "cost"
    amount: Decimal = Field(..., ge=0, le=MAX_AMOUNT, allow_inf_nan=False)


class BarcodeEdit(_Operation):
    variant_level: ClassVar[bool] = True

    field: Literal["barcode"] = "barcode"
    value: str = Field(..., min_length=1)


class SkuEdit(_Operation):
    variant_level: ClassVar[bool] = True

    field: Literal["sku"] = "sku"
    value: str = Field(..., min_length=1)


class ProductTypeEdit(_Operation):
    field: Literal["productType"] = "productType"
    value: str = Field(..., min_length=1)


class VendorEdit(_Operation):
    field: Literal["vendor"] = "vendor"
    mode: VendorMode = VendorMode.SET
    value: str = ""
    capitalization: Optional[Capitalization] = None

    @model_validator(mode="after")
    def _check_parameters(self) -> "VendorEdit":
        if self.mode is VendorMode.SET and not self.value:
            raise ValueError("vendor value is required")
        if self.mode is VendorMode.CAPITALIZE and self.capitalization is None:
            raise ValueError("capitalization is required")
        return self


class StatusEdit(_Operation):
    field: Literal["status"] = "status"
    value: str

    @field_validator("value")
    @classmethod
    def _known_status(cls, value: str) -> str:
        cleaned = value.strip().upper()
        if cleaned not in PRODUCT_STATUSES:
            raise ValueError(f"status must be one of {', '.join(PRODUCT_STATUSES)}")
        return cleaned


class CategoryEdit(_Operation):
    """Assign a taxonomy category, by opaque id or by its ``A > B > C`` path."""

    field: Literal["category"] = "category"
    category_id: Optional[str] = None
    category_path: Optional[str] = None

    @model_validator(mode="after")
    def _check_parameters(self) -> "CategoryEdit":
        if not (self.category_id or self.category_path):
            raise ValueError("a category id or path is required")
        return self


def _split_tags(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        pieces = value.split(",")
    elif isinstance(value, (list, tuple)):
        pieces = value
    else:
        raise ValueError("tags must be a list or a comma separated string")
    return tuple(str(piece).strip() for piece in pieces if str(piece).strip())


class TagsEdit(_Operation):
    """Add, remove or replace product tags.

    Tags may be given as a list or as one comma separated string. ``remove``
    without tags clears every tag; ``findReplace`` swaps ``findTags`` for
    ``tags`` on products carrying at least one of them.
    """

    field: Literal["tags"] = "tags"
    mode: TagMode
    tags: tuple[str, ...] = ()
    find_tags: tuple[str, ...] = ()

    @field_validator("tags", "find_tags", mode="before")
    @classmethod
    def _split(cls, value: Any) -> tuple[str, ...]:
        return _split_tags(value)

    @model_validator(mode="after")
    def _check_parameters(self) -> "TagsEdit":
        if self.mode in (TagMode.ADD, TagMode.REPLACE) and not self.tags:
            raise ValueError("at least one tag is required")
        if self.mode is TagMode.FIND_REPLACE and not self.find_tags:
            raise ValueError("tags to find are required")
        return self


class WeightEdit(_Operation):
    """Set variant weights, or only their unit when ``value`` is omitted."""

    variant_level: ClassVar[bool] = True

    field: Literal["weight"] = "weight"
    value: Optional[Decimal] = Field(None, ge=0, le=MAX_AMOUNT, allow_inf_nan=False)
    unit: WeightUnit


class RequiresShippingEdit(_Operation):
    variant_level: ClassVar[bool] = True

    field: Literal["requiresShipping"] = "requiresShipping"
    value: bool


class TracksInventoryEdit(_Operation):
    variant_level: ClassVar[bool] = True

    field: Literal["tracksInventory"] = "tracksInventory"
    value: bool


EditOperation = Annotated[
    Union[
        TitleEdit,
        DescriptionEdit,
        PriceEdit,
        CostEdit,
        BarcodeEdit,
        SkuEdit,
        ProductTypeEdit,
        VendorEdit,
        StatusEdit,
        CategoryEdit,
        TagsEdit,
        WeightEdit,
        RequiresShippingEdit,
        TracksInventoryEdit,
    ],
    Field(discriminator="field"),
]

_OPERATION_ADAPTER: TypeAdapter[Any] = TypeAdapter(EditOperation)


def parse_operation(payload: Mapping[str, Any] | _Operation) -> _Operation:
    """Validate ``payload`` and return the matching operation model."""

    if isinstance(payload, _Operation):
        return payload
    if not isinstance(payload, Mapping):
        raise InvalidOperationParameter("operation must be an object")
    try:
        return _OPERATION_ADAPTER.validate_python(dict(payload))
    except ValidationError as err:
        errors = err.errors(include_url=False, include_context=False)
        first = errors[0] if errors else {}
        message = first.get("msg", "invalid operation")
        location = ".".join(str(piece) for piece in first.get("loc", ()) if piece)
        if location:
            message = f"{location}: {message}"
        raise InvalidOperationParameter(message, errors) from err
