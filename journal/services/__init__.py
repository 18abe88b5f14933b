"""
Services of the health journal.

This package contains the persistence gateway, the per-metric repositories,
validation, classification, statistics and the ``HealthJournal`` facade
that ties them together.
"""

from .gateway import GatewayConfig, KeyValueStore, PersistenceGateway, Result
from .journal import HealthJournal, MetricSnapshot
from .repository import (
    ActivityRepository,
    GlucoseRepository,
    PressureRepository,
    ReadingRepository,
    WeightRepository,
)
from .statistics import JournalStatistics

__all__ = [
    "KeyValueStore",
    "GatewayConfig",
    "PersistenceGateway",
    "Result",
    "ReadingRepository",
    "GlucoseRepository",
    "PressureRepository",
    "WeightRepository",
    "ActivityRepository",
    "JournalStatistics",
    "HealthJournal",
    "MetricSnapshot",
]
