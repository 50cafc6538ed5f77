"""Turn filter criteria into remote search queries plus a local refinement.

The remote search syntax only knows ``field:'value'`` for equality and
``field:*value*`` wildcards, so prefix and suffix searches are sent as plain
wildcards and the remote result is treated as a superset. The exact matcher is
always applied afterwards over whatever the remote layer returns.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .errors import InvalidFilterCriterion
from .matcher import matches
from .models import Condition, FieldKind, FilterCriterion, Item

_GID_PATTERN = re.compile(r"^gid://shopify/Product/([0-9]+)$")

# Remote search field for each filterable field.
SEARCH_FIELDS = {
    FieldKind.TITLE: "title",
    FieldKind.DESCRIPTION: "description",
}

# Fields whose remote search honours a leading ``-`` negation.
NEGATABLE_FIELDS = frozenset({FieldKind.TITLE})

Predicate = Callable[[Item], bool]


@dataclass(frozen=True)
class CompiledFilter:
    """Result of compiling one criterion.

    Exactly one of ``item_id`` (direct lookup) or ``remote_query`` (search,
    possibly empty meaning "everything") drives the remote call.
    """

    criterion: FilterCriterion
    remote_query: str = ""
    refine: Optional[Predicate] = None
    item_id: Optional[str] = None

    @property
    def is_direct_lookup(self) -> bool:
        return self.item_id is not None


def normalise_item_id(raw: str) -> str:
    """Return the numeric product id for ``raw`` or raise ``InvalidFilterCriterion``."""

    candidate = (raw or "").strip()
    match = _GID_PATTERN.match(candidate)
    if match:
        return match.group(1)
    if candidate.isascii() and candidate.isdigit():
        return candidate
    raise InvalidFilterCriterion(f"malformed product id: {raw!r}")


def field_value(item: Item, field: FieldKind) -> Optional[str]:
    if field is FieldKind.TITLE:
        return item.title
    if field is FieldKind.DESCRIPTION:
        return item.description
    return item.id


def _escape(value: str) -> str:
    return value.replace("'", "").replace('"', "").strip()


def build_remote_query(criterion: FilterCriterion) -> str:
    """Return the remote search fragment for a text criterion ('' means no clause)."""

    search_field = SEARCH_FIELDS.get(criterion.field)
    if search_field is None:
        return ""
    value = _escape(criterion.value)
    if not value:
        return ""

    condition = criterion.condition
    if condition is Condition.IS:
        return f"{search_field}:'{value}'"
    if condition in (Condition.CONTAINS, Condition.STARTS_WITH, Condition.ENDS_WITH):
        return f"{search_field}:*{value}*"
    if condition is Condition.DOES_NOT_CONTAIN:
        if criterion.field in NEGATABLE_FIELDS:
            return f"-{search_field}:*{value}*"
        return ""
    return ""


class FilterCompiler:
    """Compile :class:`FilterCriterion` objects. Performs no network calls."""

    def compile(self, criterion: FilterCriterion) -> CompiledFilter:
        criterion.validate()

        if criterion.field is FieldKind.ITEM_ID:
            return CompiledFilter(criterion=criterion, item_id=normalise_item_id(criterion.value))

        def refine(item: Item) -> bool:
            return matches(field_value(item, criterion.field), criterion.condition, criterion.value)

        return CompiledFilter(
            criterion=criterion,
            remote_query=build_remote_query(criterion),
            refine=refine,
        )


def refine_candidates(items: Iterable[Item], compiled: CompiledFilter) -> list[Item]:
    """Apply the local predicate of ``compiled`` to the remote candidates."""

    if compiled.refine is None:
        return list(items)
    return [item for item in items if compiled.refine(item)]
