"""
Observers service package for the Observer Conditions layer.

This package decides which observers a record change should fire. It
provides:

- app.conditions: Condition tree model, operator library and evaluator.
- app.observers: Observer definitions and the in-memory observer registry.

Guidelines:
- Evaluation is pure; the host persistence layer supplies the before/after
  snapshots and executes observer side effects.
- Keep condition evaluation deterministic and observable (metrics + logs).
"""
