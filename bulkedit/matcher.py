"""Client-side evaluation of filter conditions.

Comparisons are case-insensitive so local refinement agrees with the remote
search, which ignores case as well.
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import Condition

logger = logging.getLogger(__name__)


def matches(field_value: Optional[str], condition: Condition | str, target: str) -> bool:
    """Return ``True`` when ``field_value`` satisfies ``condition`` for ``target``.

    An unrecognised condition matches everything so that a misconfigured
    filter never silently drops every candidate.
    """

    try:
        condition = Condition(condition)
    except ValueError:
        logger.warning("Unknown filter condition %r; matching every candidate", condition)
        return True

    if condition is Condition.EMPTY:
        return field_value is None or not field_value.strip()

    value = (field_value or "").lower()
    needle = (target or "").lower()

    if condition is Condition.IS:
        return value == needle
    if condition is Condition.CONTAINS:
        return needle in value
    if condition is Condition.DOES_NOT_CONTAIN:
        return needle not in value
    if condition is Condition.STARTS_WITH:
        return value.startswith(needle)
    if condition is Condition.ENDS_WITH:
        return value.endswith(needle)
    return True
