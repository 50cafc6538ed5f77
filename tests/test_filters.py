import pytest

from bulkedit.errors import InvalidFilterCriterion
from bulkedit.filters import FilterCompiler, build_remote_query, normalise_item_id, refine_candidates
from bulkedit.models import Condition, FieldKind, FilterCriterion

from fakes import make_item


def criterion(field, condition, value=""):
    return FilterCriterion(FieldKind(field), Condition(condition), value)


@pytest.mark.parametrize(
    "field, condition, value, expected",
    [
        ("title", "is", "Red Shirt", "title:'Red Shirt'"),
        ("title", "contains", "shirt", "title:*shirt*"),
        ("title", "startsWith", "shirt", "title:*shirt*"),
        ("title", "endsWith", "shirt", "title:*shirt*"),
        ("title", "doesNotContain", "shirt", "-title:*shirt*"),
        ("description", "contains", "cotton", "description:*cotton*"),
        ("description", "doesNotContain", "cotton", ""),
        ("description", "empty", "", ""),
        ("title", "is", "Bob's 'best'", "title:'Bobs best'"),
    ],
)
def test_build_remote_query(field, condition, value, expected):
    assert build_remote_query(criterion(field, condition, value)) == expected


def test_starts_with_scenario_refines_remote_superset(shirts):
    compiled = FilterCompiler().compile(criterion("title", "startsWith", "Shirt"))
    assert compiled.remote_query == "title:*Shirt*"

    candidates = shirts + [make_item("4", title="Shirt Deluxe")]
    result = refine_candidates(candidates, compiled)
    assert [item.id for item in result] == ["4"]


def test_refinement_never_grows_candidate_set(shirts):
    for cond, value in [("is", "red shirt"), ("contains", "s"), ("doesNotContain", "shirt"), ("endsWith", "xl")]:
        compiled = FilterCompiler().compile(criterion("title", cond, value))
        refined = refine_candidates(shirts, compiled)
        assert len(refined) <= len(shirts)
        assert all(item in shirts for item in refined)


def test_description_empty_refinement():
    items = [make_item("1", description=""), make_item("2", description="Soft cotton"), make_item("3", description="  ")]
    compiled = FilterCompiler().compile(criterion("description", "empty"))
    assert compiled.remote_query == ""
    assert [item.id for item in refine_candidates(items, compiled)] == ["1", "3"]


def test_product_id_compiles_to_direct_lookup():
    compiled = FilterCompiler().compile(criterion("productId", "is", "gid://shopify/Product/42"))
    assert compiled.is_direct_lookup
    assert compiled.item_id == "42"
    assert compiled.remote_query == ""


@pytest.mark.parametrize("raw", ["abc", "gid://shopify/Variant/1", "12a", "", "²", "１２", "gid://shopify/Product/٣"])
def test_malformed_item_id_rejected(raw):
    with pytest.raises(InvalidFilterCriterion):
        normalise_item_id(raw)


def test_empty_condition_only_for_description():
    with pytest.raises(InvalidFilterCriterion):
        FilterCompiler().compile(criterion("title", "empty"))


def test_product_id_requires_is():
    with pytest.raises(InvalidFilterCriterion):
        FilterCompiler().compile(criterion("productId", "contains", "12"))


def test_value_required_for_text_conditions():
    with pytest.raises(InvalidFilterCriterion):
        FilterCriterion.from_raw("title", "contains", "  ")


def test_from_raw_rejects_unknown_field():
    with pytest.raises(InvalidFilterCriterion):
        FilterCriterion.from_raw("colour", "is", "red")


def test_contains_scenario_keeps_only_shirts():
    items = [make_item("1", title="Red Shirt"), make_item("2", title="Hat"), make_item("3", title="Blue Shirt")]
    compiled = FilterCompiler().compile(FilterCriterion.from_raw("title", "contains", "Shirt"))
    assert [item.title for item in refine_candidates(items, compiled)] == ["Red Shirt", "Blue Shirt"]
