"""
Observer conditions package.

Evaluates declarative, edge-triggered condition trees against a record
transition. A condition applies only when the new state satisfies it and
the old state did not, so an observer fires once per qualifying change.

Modules of interest:
- models: Record state adapters and the parsed condition tree.
- operators: The ``$operator`` library and its registry.
- evaluator: ``matches`` and ``applies``.
"""

from .evaluator import applies, evaluate, matches
from .models import ABSENT, is_absent, parse_conditions
from .operators import OPERATORS, get_operator

__all__ = [
    "ABSENT",
    "OPERATORS",
    "applies",
    "evaluate",
    "get_operator",
    "is_absent",
    "matches",
    "parse_conditions",
]
