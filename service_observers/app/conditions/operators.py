"""
Operator library for observer conditions.

Every operator receives ``(old_value, new_value, constraint)`` and is
edge-triggered: it holds when the constraint is unsatisfied by the old value
(or the old value is absent) and satisfied by the new one. ``$changes`` is a
plain change detector and ``$ne`` inverts the old-side check. An absent new
value satisfies only ``$changes``, ``$ne`` and ``$nin``; strings are the
only values a ``$regex`` can match.

For example::

    { "price": { "$gte": 100 } }

applies when ``price`` becomes greater than or equal to 100, and::

    { "color": { "$in": ["red", "green", "blue"] } }

applies when a non RGB ``color`` takes one of the RGB values.
"""

import copy
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from shared.errors import InvalidCondition, InvalidOperator

from .models import is_absent, parse_conditions


def values_equal(a: Any, b: Any) -> bool:
    """JSON equality: booleans never equal numbers, at any nesting depth."""
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return set(a) == set(b) and all(values_equal(a[key], b[key]) for key in a)
    return a == b


def _contains(collection: Any, value: Any) -> bool:
    return any(values_equal(item, value) for item in collection)


def _require_list(constraint: Any, operator: str) -> List[Any]:
    if not isinstance(constraint, (list, tuple)):
        raise TypeError(f"{operator} expects an array constraint, got {type(constraint).__name__}")
    return list(constraint)


def _require_collection(value: Any, operator: str):
    if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, "__iter__"):
        raise TypeError(f"{operator} expects an array field, got {type(value).__name__}")
    return value


def apply_changes(old_value: Any, new_value: Any, constraint: Any) -> bool:
    """``{"updated_at": {"$changes": true}}``: the field took a different value."""
    if constraint is None or constraint is False:
        return False
    return not values_equal(new_value, old_value)


def apply_size(old_value: Any, new_value: Any, constraint: Any) -> bool:
    """``{"tags": {"$size": 3}}``"""
    if isinstance(constraint, bool) or not isinstance(constraint, int):
        raise TypeError(f"$size expects an integer constraint, got {type(constraint).__name__}")
    return (
        (is_absent(old_value) or len(old_value) != constraint)
        and not is_absent(new_value) and len(new_value) == constraint
    )


def apply_regex(old_value: Any, new_value: Any, constraint: Any) -> bool:
    """``{"name": {"$regex": "^m"}}``"""
    pattern = re.compile(constraint)

    def _matches(value: Any) -> bool:
        return isinstance(value, str) and pattern.search(value) is not None

    return not _matches(old_value) and _matches(new_value)


def apply_elem_match(old_value: Any, new_value: Any, constraint: Any) -> bool:
    """
    ``{"items": {"$elemMatch": {"sku": "A1", "qty": {"$gte": 2}}}}``

    Each element is evaluated as a standalone record with no prior state.
    """
    from .evaluator import evaluate

    def _any_element(value: Any) -> bool:
        return any(evaluate(constraint, element, None) for element in _require_collection(value, "$elemMatch"))

    return (
        (is_absent(old_value) or not _any_element(old_value))
        and not is_absent(new_value) and _any_element(new_value)
    )


def apply_all(old_value: Any, new_value: Any, constraint: Any) -> bool:
    """``{"tags": {"$all": [10, 25, "hello"]}}``"""
    required = _require_list(constraint, "$all")

    def _superset(value: Any) -> bool:
        items = list(_require_collection(value, "$all"))
        return all(_contains(items, item) for item in required)

    return (
        (is_absent(old_value) or not _superset(old_value))
        and not is_absent(new_value) and _superset(new_value)
    )


def apply_mod(old_value: Any, new_value: Any, constraint: Any) -> bool:
    """``{"age": {"$mod": [2, 1]}}`` applies when ``age`` becomes odd."""
    if not isinstance(constraint, (list, tuple)) or len(constraint) != 2:
        raise ValueError(f"$mod expects [divisor, remainder], got {constraint!r}")
    divisor, remainder = constraint
    return (
        (is_absent(old_value) or old_value % divisor != remainder)
        and not is_absent(new_value) and new_value % divisor == remainder
    )


def apply_ne(old_value: Any, new_value: Any, constraint: Any) -> bool:
    """``{"color": {"$ne": "yellow"}}`` applies when a yellow ``color`` takes another value."""
    return (is_absent(old_value) or values_equal(old_value, constraint)) and not values_equal(new_value, constraint)


def apply_gt(old_value: Any, new_value: Any, constraint: Any) -> bool:
    return (is_absent(old_value) or old_value <= constraint) and not is_absent(new_value) and new_value > constraint


def apply_gte(old_value: Any, new_value: Any, constraint: Any) -> bool:
    return (is_absent(old_value) or old_value < constraint) and not is_absent(new_value) and new_value >= constraint


def apply_lt(old_value: Any, new_value: Any, constraint: Any) -> bool:
    return (is_absent(old_value) or old_value >= constraint) and not is_absent(new_value) and new_value < constraint


def apply_lte(old_value: Any, new_value: Any, constraint: Any) -> bool:
    return (is_absent(old_value) or old_value > constraint) and not is_absent(new_value) and new_value <= constraint


def apply_in(old_value: Any, new_value: Any, constraint: Any) -> bool:
    values = _require_list(constraint, "$in")
    return (
        (is_absent(old_value) or not _contains(values, old_value))
        and not is_absent(new_value) and _contains(values, new_value)
    )


def apply_nin(old_value: Any, new_value: Any, constraint: Any) -> bool:
    values = _require_list(constraint, "$nin")
    return (is_absent(old_value) or _contains(values, old_value)) and not _contains(values, new_value)


def _prepare_elem_match(constraint: Any):
    if not isinstance(constraint, Mapping):
        raise InvalidCondition(
            "$elemMatch expects a condition object",
            {"operator": "$elemMatch", "value": repr(constraint)}
        )
    return parse_conditions(constraint)


def _keep(constraint: Any) -> Any:
    return copy.deepcopy(constraint)


@dataclass(frozen=True)
class Operator:
    """A named operator and the hook that prepares its constraint at parse time."""

    name: str
    apply: Callable[[Any, Any, Any], bool]
    prepare: Callable[[Any], Any] = _keep


OPERATORS: Dict[str, Operator] = {
    op.name: op for op in (
        Operator("$changes", apply_changes),
        Operator("$size", apply_size),
        Operator("$regex", apply_regex),
        Operator("$elemMatch", apply_elem_match, _prepare_elem_match),
        Operator("$all", apply_all),
        Operator("$mod", apply_mod),
        Operator("$ne", apply_ne),
        Operator("$gt", apply_gt),
        Operator("$gte", apply_gte),
        Operator("$lt", apply_lt),
        Operator("$lte", apply_lte),
        Operator("$in", apply_in),
        Operator("$nin", apply_nin),
    )
}


def get_operator(name: str) -> Operator:
    """Resolve an operator by its ``$name``."""
    try:
        return OPERATORS[name]
    except KeyError:
        raise InvalidOperator(name) from None
