from decimal import Decimal

import pytest

from bulkedit.errors import PlanError
from bulkedit.models import Variant
from bulkedit.operations import Capitalization, RoundingMode, TextMode, parse_operation
from bulkedit.planner import (
    capitalize,
    edit_text,
    plan_item,
    plan_price,
    plan_title,
    plan_variant,
    round_to_step,
    to_money,
)

from fakes import make_item


def op(**payload):
    return parse_operation(payload)


def test_truncate_is_idempotent():
    truncate = op(field="title", mode="truncate", length=5)
    once = plan_title("Hello World", truncate)
    assert once == "Hello"
    assert plan_title(once, truncate) == once


def test_prepend_and_append_join_with_space():
    assert edit_text("Shirt", TextMode.PREPEND, "Sale:") == "Sale: Shirt"
    assert edit_text("Shirt", TextMode.APPEND, "(new)") == "Shirt (new)"


def test_replace_is_case_insensitive_and_literal():
    assert edit_text("Red shirt, RED hat", TextMode.REPLACE, "red", "Blue") == "Blue shirt, Blue hat"
    assert edit_text("a.b", TextMode.REPLACE, ".", r"\1") == r"a\1b"


def test_remove_strips_result():
    assert edit_text("SALE Shirt", TextMode.REMOVE, "sale") == "Shirt"
    assert edit_text("Shirt", TextMode.REMOVE, "hat") == "Shirt"


def test_regex_title_replace():
    title_op = op(field="title", mode="replace", text=r"\d+", replacement="#", useRegex=True)
    assert plan_title("Pack of 12 socks", title_op) == "Pack of # socks"


@pytest.mark.parametrize(
    "mode, expected",
    [
        (Capitalization.TITLE_CASE, "Blue Cotton Shirt"),
        (Capitalization.UPPERCASE, "BLUE COTTON SHIRT"),
        (Capitalization.LOWERCASE, "blue cotton shirt"),
        (Capitalization.FIRST_LETTER, "Blue cotton shirt"),
    ],
)
def test_capitalize(mode, expected):
    assert capitalize("bLUE cotton SHIRT", mode) == expected


def test_percent_increase_with_compare_at_sync():
    variant = Variant(id="v1", price=Decimal("20.00"))
    changes = plan_price(
        variant, op(field="price", mode="adjustPercent", direction="increase", amount=10, syncCompareAt=True)
    )
    assert changes == {"price": Decimal("22.00"), "compareAtPrice": Decimal("20.00")}


@pytest.mark.parametrize("price", ["0.50", "1.00", "19.99", "20.00", "1234.56"])
@pytest.mark.parametrize("percent", ["1", "10", "33.3", "100"])
def test_percent_decrease_is_strictly_lower(price, percent):
    variant = Variant(id="v1", price=Decimal(price))
    decrease = op(field="price", mode="adjustPercent", direction="decrease", amount=percent)
    new_price = plan_price(variant, decrease)["price"]
    assert Decimal("0") <= new_price < Decimal(price)


def test_small_percent_cut_still_lowers_price():
    variant = Variant(id="v1", price=Decimal("0.50"))
    decrease = op(field="price", mode="adjustPercent", direction="decrease", amount=1)
    assert plan_price(variant, decrease) == {"price": Decimal("0.49")}


def test_absolute_decrease_clamps_at_zero():
    variant = Variant(id="v1", price=Decimal("3.00"))
    changes = plan_price(variant, op(field="price", mode="adjustAbsolute", direction="decrease", amount=5))
    assert changes == {"price": Decimal("0.00")}


def test_money_rounds_half_up():
    assert to_money(Decimal("2.005")) == Decimal("2.01")
    assert to_money(Decimal("-4")) == Decimal("0.00")


@pytest.mark.parametrize(
    "value, mode, step, expected",
    [
        ("17.49", RoundingMode.UPPER, 5, "20.00"),
        ("17.49", RoundingMode.LOWER, 5, "15.00"),
        ("17.49", RoundingMode.NEAREST, 5, "15.00"),
        ("18.00", RoundingMode.NEAREST, 5, "20.00"),
        ("20.00", RoundingMode.UPPER, 5, "20.00"),
    ],
)
def test_round_to_step(value, mode, step, expected):
    assert round_to_step(Decimal(value), mode, step) == Decimal(expected)


def test_compare_at_target_uses_compare_at_base():
    variant = Variant(id="v1", price=Decimal("10.00"), compare_at_price=Decimal("15.00"))
    changes = plan_price(
        variant,
        op(field="price", mode="adjustAbsolute", direction="increase", amount=1, target="compareAtPrice"),
    )
    assert changes == {"compareAtPrice": Decimal("16.00")}


def test_remove_compare_at():
    variant = Variant(id="v1", price=Decimal("10.00"), compare_at_price=Decimal("15.00"))
    assert plan_price(variant, op(field="price", mode="removeCompareAt")) == {"compareAtPrice": None}


def test_plan_variant_for_cost_and_sku():
    variant = Variant(id="v9", price=Decimal("1.00"))
    assert plan_variant(variant, op(field="cost", amount="4.5")).changes == {"cost": Decimal("4.50")}
    assert plan_variant(variant, op(field="sku", value="SKU-9")).changes == {"sku": "SKU-9"}


def test_plan_item_fields():
    item = make_item("1", title="shirt", vendor="acme co")
    assert plan_item(item, op(field="vendor", mode="capitalize", capitalization="titleCase")) == "Acme Co"
    assert plan_item(item, op(field="productType", value="Shirts")) == "Shirts"
    assert plan_item(item, op(field="status", value="archived")) == "ARCHIVED"
    assert plan_item(item, op(field="category", categoryPath="A > B"), category_id="gid://c/1") == "gid://c/1"


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"mode": "add", "tags": "sale, summer"}, ("new", "sale", "summer")),
        ({"mode": "remove", "tags": ["sale"]}, ("new",)),
        ({"mode": "remove"}, ()),
        ({"mode": "replace", "tags": "clearance, clearance"}, ("clearance",)),
        ({"mode": "findReplace", "findTags": "sale", "tags": "discount"}, ("new", "discount")),
        ({"mode": "findReplace", "findTags": "winter", "tags": "discount"}, ("new", "sale")),
    ],
)
def test_plan_tags(payload, expected):
    item = make_item("1", tags=("new", "sale"))
    assert plan_item(item, op(field="tags", **payload)) == expected


def test_plan_weight_sets_value_and_unit():
    variant = Variant(id="v1", weight=Decimal("2"), weight_unit="kg")
    assert plan_variant(variant, op(field="weight", value="0.75", unit="lb")).changes == {
        "weight": Decimal("0.75"),
        "weightUnit": "lb",
    }


def test_plan_weight_unit_only_keeps_number():
    variant = Variant(id="v1", weight=Decimal("2"), weight_unit="kg")
    assert plan_variant(variant, op(field="weight", unit="g")).changes == {"weight": Decimal("2"), "weightUnit": "g"}


def test_plan_shipping_and_tracking_flags():
    variant = Variant(id="v1", requires_shipping=True, tracks_inventory=False)
    assert plan_variant(variant, op(field="requiresShipping", value=False)).changes == {"requiresShipping": False}
    assert plan_variant(variant, op(field="tracksInventory", value=True)).changes == {"tracksInventory": True}


def test_money_out_of_range_is_plan_error():
    with pytest.raises(PlanError):
        to_money(Decimal("1e40"))
