"""
Condition evaluator for observer triggers.

Decides whether a record transition satisfies a condition tree::

    { "status": "done", "total": { "$gt": 100 } }

matches when ``status`` becomes ``"done"`` and ``total`` rises above 100 in
the same change. Evaluation is pure: no I/O, no mutation of the tree or of
the record snapshots, and no state kept across calls.
"""

from typing import Any

from shared.errors import OperatorError
from shared.logging import get_logger

from .models import (
    CombinatorOp, FieldLeaf, LeafConstraint, Literal, Node, OperatorMap, Transition,
    as_state, parse_conditions, parse_constraint
)
from .operators import get_operator, values_equal

logger = get_logger("observers.conditions")


def matches(object_now: Any, object_before: Any = None, condition_tree: Any = None) -> bool:
    """
    Return True when the transition from ``object_before`` to ``object_now``
    satisfies ``condition_tree``.

    ``object_now`` is required and must be a record (a mapping, an object
    with attributes or one exposing ``lookup``). ``object_before`` is None
    for newly created records. ``condition_tree`` may be a raw mapping or a
    tree returned by ``parse_conditions``; an empty or missing tree always
    matches.

    Raises:
        InvalidCondition: the tree is malformed.
        InvalidOperator: a leaf names an unknown operator.
        OperatorError: an operator failed on the supplied values.
        TypeError: a snapshot is not a record, or ``object_now`` is missing
            while the tree has field conditions.
    """
    return evaluate(parse_conditions(condition_tree), object_now, object_before)


def evaluate(node: Node, object_now: Any, object_before: Any = None) -> bool:
    """Evaluate an already parsed tree."""
    return _evaluate(node, as_state(object_now), as_state(object_before))


def _evaluate(node: Node, state_now, state_before) -> bool:
    if isinstance(node, FieldLeaf):
        if state_now is None:
            raise TypeError(f"cannot evaluate field '{node.field}' without a current record")
        transition = Transition.of(node.field, state_now, state_before)
        return _applies(node.constraint, transition.old_value, transition.new_value)

    if node.op is CombinatorOp.OR:
        return any(_evaluate(child, state_now, state_before) for child in node.children)
    if node.op is CombinatorOp.NOT:
        return not all(_evaluate(child, state_now, state_before) for child in node.children)
    return all(_evaluate(child, state_now, state_before) for child in node.children)


def applies(constraint: Any, old_value: Any, new_value: Any) -> bool:
    """
    Decide whether a single field transition satisfies a leaf constraint.

    A literal constraint applies when the field becomes exactly that value
    and was not already it. An operator map applies when every operator
    in it applies.
    """
    if not isinstance(constraint, (Literal, OperatorMap)):
        constraint = parse_constraint(constraint)
    return _applies(constraint, old_value, new_value)


def _applies(constraint: LeafConstraint, old_value: Any, new_value: Any) -> bool:
    if isinstance(constraint, Literal):
        return not values_equal(old_value, constraint.value) and values_equal(new_value, constraint.value)

    for clause in constraint.clauses:
        operator = get_operator(clause.name)
        try:
            result = operator.apply(old_value, new_value, clause.constraint)
        except Exception as e:
            logger.debug("Operator failed", operator=clause.name, error=str(e))
            raise OperatorError(clause.name, e) from e
        if not result:
            return False
    return True

