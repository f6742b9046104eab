"""
Condition tree and record state models.

A raw condition tree is a JSON-compatible mapping. It is parsed once into
frozen node objects so that operator names are resolved and validated before
any record is evaluated against it.
"""

import copy
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple, Union

from shared.errors import InvalidCondition, InvalidOperator


class _Absent:
    """Sentinel returned by state lookups for unset fields."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


ABSENT = _Absent()


def is_absent(value: Any) -> bool:
    """Return True when a field value is unset or null."""
    return value is None or value is ABSENT


# =============================================================================
# STATE OBJECTS
# =============================================================================

class MappingState:
    """State object over a mapping of field name to value."""

    __slots__ = ("data",)

    def __init__(self, data: Mapping):
        self.data = data

    def lookup(self, name: str) -> Any:
        return self.data.get(name, ABSENT)

    def __repr__(self) -> str:
        return f"MappingState({self.data!r})"


class AttributeState:
    """State object over an arbitrary object's attributes."""

    __slots__ = ("obj",)

    def __init__(self, obj: Any):
        self.obj = obj

    def lookup(self, name: str) -> Any:
        return getattr(self.obj, name, ABSENT)

    def __repr__(self) -> str:
        return f"AttributeState({self.obj!r})"


_NON_STATE_TYPES = (str, bytes, int, float, bool, list, tuple, set, frozenset)


def as_state(obj: Any):
    """
    Adapt a record snapshot to the state object interface.

    Returns None for a missing snapshot. Anything exposing a callable
    ``lookup`` is used as-is, mappings are wrapped in ``MappingState`` and
    other objects in ``AttributeState``. Scalars and sequences carry no
    named fields and are rejected.
    """
    if obj is None:
        return None
    if isinstance(obj, (MappingState, AttributeState)):
        return obj
    if isinstance(obj, Mapping):
        return MappingState(obj)
    if callable(getattr(obj, "lookup", None)):
        return obj
    if isinstance(obj, _NON_STATE_TYPES):
        raise TypeError(f"{type(obj).__name__} value is not a record: {obj!r}")
    return AttributeState(obj)


@dataclass(frozen=True)
class Transition:
    """The (old, new) values of one field across a record change."""

    field: str
    old_value: Any
    new_value: Any

    @classmethod
    def of(cls, field: str, state_now, state_before=None) -> "Transition":
        """Look a field up in both snapshots; absent values surface as None."""
        old_value = state_before.lookup(field) if state_before is not None else ABSENT
        new_value = state_now.lookup(field)
        return cls(
            field=field,
            old_value=None if old_value is ABSENT else old_value,
            new_value=None if new_value is ABSENT else new_value,
        )


# =============================================================================
# CONDITION TREE
# =============================================================================

class CombinatorOp(str, Enum):
    """Boolean combinators."""
    AND = "$and"
    OR = "$or"
    NOT = "$not"


@dataclass(frozen=True)
class Combinator:
    op: CombinatorOp
    children: Tuple["Node", ...] = ()


@dataclass(frozen=True)
class Literal:
    """Implicit equality-edge constraint."""
    value: Any


@dataclass(frozen=True)
class OperatorClause:
    name: str
    constraint: Any


@dataclass(frozen=True)
class OperatorMap:
    clauses: Tuple[OperatorClause, ...]


LeafConstraint = Union[Literal, OperatorMap]


@dataclass(frozen=True)
class FieldLeaf:
    field: str
    constraint: LeafConstraint


Node = Union[Combinator, FieldLeaf]

EMPTY_TREE = Combinator(CombinatorOp.AND, ())

OPERATOR_PATTERN = re.compile(r"\A\$([A-Za-z_][A-Za-z0-9_]*)\Z")

_COMBINATORS = {op.value: op for op in CombinatorOp}


def parse_conditions(raw: Optional[Mapping]) -> Node:
    """
    Parse a raw condition tree into nodes.

    Top-level keys become the children of an implicit ``$and``. An empty or
    missing tree parses to ``EMPTY_TREE``, which every transition satisfies.

    Raises:
        InvalidCondition: if the tree or a combinator is malformed.
        InvalidOperator: if a leaf names an unknown or malformed operator.
    """
    if raw is None:
        return EMPTY_TREE
    if isinstance(raw, (Combinator, FieldLeaf)):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidCondition(
            f"Condition tree must be an object, got {type(raw).__name__}",
            {"value": repr(raw)}
        )
    return Combinator(
        CombinatorOp.AND,
        tuple(_parse_entry(key, sub) for key, sub in raw.items())
    )


def _parse_entry(key: Any, sub: Any) -> Node:
    if not isinstance(key, str):
        raise InvalidCondition(f"Condition keys must be strings, got {key!r}")

    op = _COMBINATORS.get(key)
    if op is CombinatorOp.NOT:
        if not isinstance(sub, Mapping):
            raise InvalidCondition("$not expects a condition object", {"combinator": key})
        return Combinator(op, (parse_conditions(sub),))
    if op is not None:
        if not isinstance(sub, (list, tuple)):
            raise InvalidCondition(f"{key} expects a list of condition objects", {"combinator": key})
        return Combinator(op, tuple(parse_conditions(child) for child in sub))

    return FieldLeaf(key, parse_constraint(sub))


def parse_constraint(constraint: Any) -> LeafConstraint:
    """Parse the constraint side of a field leaf."""
    if not isinstance(constraint, Mapping):
        return Literal(copy.deepcopy(constraint))

    # Imported here: the operator registry depends on this module's tree types
    from .operators import get_operator

    clauses = []
    for name, value in constraint.items():
        if not isinstance(name, str) or not OPERATOR_PATTERN.match(name):
            raise InvalidOperator(str(name))
        operator = get_operator(name)
        clauses.append(OperatorClause(name, operator.prepare(value)))
    return OperatorMap(tuple(clauses))

