"""
Observer registry for the Observers service.
"""

import time
from datetime import datetime
from typing import Dict, Any, Optional, List

from pydantic import ValidationError as PydanticValidationError

from shared.config import ObserversConfig, get_config
from shared.errors import ConditionError, ValidationError
from shared.logging import clear_context, get_logger, set_observer_context, set_record_context
from shared.metrics import MetricsCollector, get_metrics_collector
from ..conditions.models import parse_conditions
from .models import Observer, ObserverDefinition, LookupResult


class ObserverRegistry:
    """Keeps observers by data type and decides which ones a change triggers."""

    def __init__(self, config: Optional[ObserversConfig] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.config = config or get_config()
        self.logger = get_logger("observers.registry")
        self.metrics = metrics
        if self.metrics is None and self.config.metrics_enabled:
            self.metrics = get_metrics_collector(self.config.service_name)
        self.observers: Dict[str, Observer] = {}
        self.observer_cache: Dict[str, List[Observer]] = {}  # data_type -> observers

    def add_observer(self, observer: Observer) -> bool:
        """Add an observer to the registry."""
        self.observers[observer.observer_id] = observer
        self._invalidate_cache()
        self.logger.info("Observer added", observer_id=observer.observer_id, name=observer.name)
        return True

    def remove_observer(self, observer_id: str) -> bool:
        """Remove an observer from the registry."""
        if observer_id in self.observers:
            observer = self.observers.pop(observer_id)
            self._invalidate_cache()
            self.logger.info("Observer removed", observer_id=observer_id, name=observer.name)
            return True
        return False

    def update_observer(self, observer: Observer) -> bool:
        """Update an observer in the registry."""
        if observer.observer_id in self.observers:
            observer.tree = parse_conditions(observer.conditions)
            observer.updated_at = datetime.now()
            self.observers[observer.observer_id] = observer
            self._invalidate_cache()
            self.logger.info("Observer updated", observer_id=observer.observer_id, name=observer.name)
            return True
        return False

    def get_observer(self, observer_id: str) -> Optional[Observer]:
        """Get an observer by ID."""
        return self.observers.get(observer_id)

    def get_observers_for_data_type(self, data_type: str) -> List[Observer]:
        """Get the enabled observers watching a data type."""
        if data_type in self.observer_cache:
            return self.observer_cache[data_type]

        observers = [
            observer for observer in self.observers.values()
            if observer.data_type == data_type and observer.enabled
        ]
        observers.sort(key=lambda o: (o.name, o.observer_id))

        self.observer_cache[data_type] = observers
        return observers

    def load_definitions(self, definitions: List[Dict[str, Any]]) -> List[Observer]:
        """
        Register observers from raw definitions.

        Raises:
            ValidationError: a definition is not a valid observer.
            ConditionError: a definition's conditions cannot be parsed.
        """
        loaded = []
        for index, raw in enumerate(definitions):
            try:
                definition = ObserverDefinition.model_validate(raw)
            except PydanticValidationError as e:
                raise ValidationError(
                    "Invalid observer definition",
                    {"index": index, "errors": e.errors(include_url=False)}
                ) from e
            observer = definition.to_observer()
            self.add_observer(observer)
            loaded.append(observer)
        return loaded

    def lookup(self, data_type: str, object_now: Any, object_before: Any = None,
               record_id: Optional[str] = None) -> LookupResult:
        """
        Evaluate every enabled observer of ``data_type`` against a record change.

        ``object_before`` is None for a newly created record. With
        ``fail_fast`` configured, the first failed evaluation propagates;
        otherwise the observer is skipped and its error reported in the result.
        """
        start_time = time.time()
        set_record_context(record_id, data_type)
        result = LookupResult(data_type=data_type)

        try:
            for observer in self.get_observers_for_data_type(data_type):
                set_observer_context(observer.observer_id)
                try:
                    if observer.conditions_apply_to(object_now, object_before):
                        result.matched_observers.append(observer.observer_id)
                except ConditionError as e:
                    self.logger.error("Condition evaluation error", error=str(e), code=e.code)
                    if self.metrics:
                        self.metrics.record_error(e.code)
                    if self.config.fail_fast:
                        raise
                    result.errors[observer.observer_id] = e.to_response()
                except TypeError as e:
                    self.logger.error("Invalid record snapshot", error=str(e))
                    if self.metrics:
                        self.metrics.record_error("INVALID_RECORD")
                    raise
            set_observer_context(None)

            duration = time.time() - start_time
            result.evaluation_time_ms = duration * 1000
            if self.metrics:
                self.metrics.record_lookup(data_type, len(result.matched_observers), duration)

            self.logger.debug(
                "Observer lookup result",
                matched=result.matched_observers,
                errors=list(result.errors)
            )
            return result
        finally:
            clear_context()

    def _invalidate_cache(self):
        """Invalidate observer cache."""
        self.observer_cache.clear()

    def get_registry_stats(self) -> Dict[str, Any]:
        """Get registry statistics."""
        return {
            "total_observers": len(self.observers),
            "enabled_observers": len([o for o in self.observers.values() if o.enabled]),
            "cached_data_types": len(self.observer_cache),
            "data_types": sorted(set(o.data_type for o in self.observers.values()))
        }

    def clear_all_observers(self):
        """Clear all observers from the registry."""
        self.observers.clear()
        self._invalidate_cache()
        self.logger.info("All observers cleared")
