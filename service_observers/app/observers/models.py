"""
Observer data models.
"""

import uuid
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from shared.errors import ErrorResponse

from ..conditions.evaluator import evaluate
from ..conditions.models import Node, parse_conditions


@dataclass
class Observer:
    """An observer whose conditions gate a trigger on one data type."""
    observer_id: str
    name: str
    data_type: str
    conditions: Dict[str, Any] = field(default_factory=dict)
    enabled: bool = True
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    tree: Node = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        # Parsed once; unknown operators are rejected at registration time
        self.tree = parse_conditions(self.conditions)

    def conditions_apply_to(self, object_now: Any, object_before: Any = None) -> bool:
        """Check whether a record transition satisfies this observer's conditions."""
        return evaluate(self.tree, object_now, object_before)


class ObserverDefinition(BaseModel):
    """Observer definition as loaded from configuration."""
    observer_id: Optional[str] = Field(None, description="Observer ID")
    name: str = Field(..., description="Observer name")
    data_type: str = Field(..., description="Data type the observer watches")
    conditions: Dict[str, Any] = Field(default_factory=dict, description="Condition tree")
    enabled: bool = Field(True, description="Whether the observer is enabled")

    @field_validator("conditions", mode="before")
    @classmethod
    def conditions_object(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError("conditions must be an object")
        return value

    def to_observer(self) -> Observer:
        """Build an Observer, generating an ID when none was given."""
        return Observer(
            observer_id=self.observer_id or str(uuid.uuid4()),
            name=self.name,
            data_type=self.data_type,
            conditions=self.conditions,
            enabled=self.enabled
        )


class LookupResult(BaseModel):
    """Outcome of looking up the observers triggered by a record change."""
    data_type: str
    matched_observers: List[str] = Field(default_factory=list, description="Observer IDs that matched")
    errors: Dict[str, ErrorResponse] = Field(default_factory=dict, description="Failed evaluations by observer ID")
    evaluation_time_ms: float = 0.0
