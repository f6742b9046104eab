"""
Integration tests for the observer lookup flow.

A minimal in-memory store plays the host persistence layer: it stamps
timestamps, keeps the stored snapshot from before each save and asks the
registry which observers the change triggers.
"""

import copy
import itertools
from datetime import datetime, timedelta

import pytest
from prometheus_client import CollectorRegistry

from service_observers.app.observers.registry import ObserverRegistry
from shared.config import ObserversConfig
from shared.metrics import MetricsCollector


class RecordStore:
    """In-memory record store that reports triggered observers on save."""

    def __init__(self, registry: ObserverRegistry, data_type: str):
        self.registry = registry
        self.data_type = data_type
        self.records = {}
        self.fired = []
        self._clock = itertools.count()

    def save(self, record_id: str, fields: dict):
        before = copy.deepcopy(self.records.get(record_id))
        record = dict(before or {})
        record.update(fields)
        record["updated_at"] = (datetime(2024, 1, 1) + timedelta(seconds=next(self._clock))).isoformat()
        if before is None:
            record["created_at"] = record["updated_at"]
        self.records[record_id] = record

        result = self.registry.lookup(self.data_type, record, before, record_id=record_id)
        self.fired.extend(result.matched_observers)
        return result


class TestObserverFlow:
    """Integration tests for observer lookups driven by record saves."""

    @pytest.fixture
    def registry(self):
        registry = ObserverRegistry(
            ObserversConfig(fail_fast=True),
            metrics=MetricsCollector("observers", CollectorRegistry())
        )
        registry.load_definitions([
            {
                "observer_id": "order-shipped",
                "name": "Order shipped",
                "data_type": "order",
                "conditions": {"status": "shipped"}
            },
            {
                "observer_id": "big-order",
                "name": "Big order",
                "data_type": "order",
                "conditions": {"total": {"$gte": 1000}}
            },
            {
                "observer_id": "vip-or-rush",
                "name": "VIP or rush",
                "data_type": "order",
                "conditions": {
                    "$or": [
                        {"tags": {"$all": ["vip"]}},
                        {"priority": {"$in": ["rush", "express"]}}
                    ]
                }
            },
            {
                "observer_id": "any-update",
                "name": "Any update",
                "data_type": "order",
                "conditions": {"updated_at": {"$changes": True}}
            },
        ])
        return registry

    @pytest.fixture
    def store(self, registry):
        return RecordStore(registry, "order")

    def test_create_fires_matching_observers(self, store):
        result = store.save("o-1", {"status": "new", "total": 1200, "tags": []})

        assert sorted(result.matched_observers) == ["any-update", "big-order"]

    def test_observers_fire_once_per_transition(self, store):
        store.save("o-1", {"status": "new", "total": 100, "tags": []})
        store.save("o-1", {"status": "shipped"})
        store.save("o-1", {"status": "shipped", "total": 150})
        store.save("o-1", {"status": "delivered"})
        store.save("o-1", {"status": "shipped"})

        assert store.fired.count("order-shipped") == 2
        assert store.fired.count("any-update") == 5
        assert "big-order" not in store.fired

    def test_threshold_crossing(self, store):
        store.save("o-1", {"total": 500})
        result = store.save("o-1", {"total": 1500})
        assert "big-order" in result.matched_observers

        result = store.save("o-1", {"total": 2000})
        assert "big-order" not in result.matched_observers

    def test_combinator_observer(self, store):
        store.save("o-1", {"tags": ["gift"], "priority": "normal"})

        result = store.save("o-1", {"priority": "rush"})
        assert "vip-or-rush" in result.matched_observers

        result = store.save("o-1", {"priority": "express"})
        assert "vip-or-rush" not in result.matched_observers

        result = store.save("o-1", {"tags": ["gift", "vip"]})
        assert "vip-or-rush" in result.matched_observers

    def test_records_are_independent(self, store):
        store.save("o-1", {"status": "shipped"})
        result = store.save("o-2", {"status": "shipped"})

        assert "order-shipped" in result.matched_observers
        assert store.fired.count("order-shipped") == 2
