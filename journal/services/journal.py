"""
Journal facade combining storage, repositories, classification and statistics.

This is what a UI layer talks to:
1. Build the store and gateway from configuration
2. Validate and save submitted readings (``submit``)
3. Classify readings with the configured clinical references
4. Produce per-metric dashboard snapshots
"""

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, cast

import pydantic
import structlog

from adapters.storage import InMemoryKeyValueStore, JsonFileKeyValueStore
from journal.config import AppConfig, configure_logging, get_config
from journal.domain.errors import JournalError, ReadingRejected, StorageReadError
from journal.domain.models import (
    BaseReading,
    Classification,
    MetricType,
    PressureAverage,
    Reading,
    Trend,
    local_now,
)
from journal.services.classification import classify
from journal.services.gateway import GatewayConfig, KeyValueStore, PersistenceGateway, Result
from journal.services.repository import (
    REPOSITORY_TYPES,
    ActivityRepository,
    GlucoseRepository,
    PressureRepository,
    ReadingRepository,
    WeightRepository,
    day_bounds,
)
from journal.services.statistics import (
    JournalStatistics,
    average_over_period,
    streak,
    trend,
)
from journal.services.validation import validate_reading

logger = structlog.get_logger(__name__)


@dataclass
class MetricSnapshot:
    """Everything a dashboard tile needs for one metric."""

    metric: MetricType
    latest: BaseReading | None
    classification: Classification | None
    average: float | PressureAverage | None
    trend: Trend | None
    streak: int
    today_count: int


def build_store(config: AppConfig) -> KeyValueStore:
    """Instantiate the configured key-value store backend."""
    if config.storage.backend == "memory":
        return InMemoryKeyValueStore()
    return JsonFileKeyValueStore(config.storage.path)


class HealthJournal:
    """
    One user's journal: a repository per metric over a shared gateway.

    Operations on different metrics touch disjoint storage keys and may run
    concurrently; operations on the same metric are serialized by the gateway.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: AppConfig | None = None,
        on_read_error: Callable[[StorageReadError], None] | None = None,
    ) -> None:
        self.config = config or get_config()
        self.gateway = PersistenceGateway(
            store,
            GatewayConfig(
                key_prefix=self.config.storage.key_prefix,
                max_read_diagnostics=self.config.storage.max_read_diagnostics,
            ),
            on_read_error=on_read_error,
        )
        self.repositories: dict[MetricType, ReadingRepository[Any]] = {
            metric: factory(self.gateway) for metric, factory in REPOSITORY_TYPES.items()
        }
        self.statistics = JournalStatistics(
            self.repositories,
            stable_threshold_pct=self.config.clinical.trend_stable_threshold_pct,
        )
        self.logger = logger.bind(component="health_journal")

    @property
    def glucose(self) -> GlucoseRepository:
        return cast(GlucoseRepository, self.repositories[MetricType.GLUCOSE])

    @property
    def pressure(self) -> PressureRepository:
        return cast(PressureRepository, self.repositories[MetricType.PRESSURE])

    @property
    def weight(self) -> WeightRepository:
        return cast(WeightRepository, self.repositories[MetricType.WEIGHT])

    @property
    def activity(self) -> ActivityRepository:
        return cast(ActivityRepository, self.repositories[MetricType.ACTIVITY])

    @classmethod
    def from_config(cls, config: AppConfig | None = None) -> "HealthJournal":
        config = config or get_config()
        configure_logging(config.logging)
        return cls(build_store(config), config)

    def repository(self, metric: MetricType | str) -> ReadingRepository[Any]:
        return self.repositories[MetricType(metric)]

    async def submit(
        self, metric: MetricType | str, candidate: Mapping[str, Any]
    ) -> Result[BaseReading, JournalError]:
        """
        Validate a raw candidate and save it when it passes.

        Returns ``Result.err(ReadingRejected)`` with field-level messages when
        validation fails, and ``Result.err(StorageWriteError)`` when the store
        rejects the write.
        """
        metric = MetricType(metric)
        verdict = validate_reading(metric, candidate)
        if not verdict.valid:
            self.logger.info("reading_rejected", metric=metric.value, errors=verdict.errors)
            return Result.err(ReadingRejected(verdict.errors))

        try:
            saved = await self.repository(metric).save(candidate)
        except pydantic.ValidationError as e:
            errors = [
                f"{'.'.join(str(part) for part in err['loc']) or 'reading'}: {err['msg']}"
                for err in e.errors()
            ]
            self.logger.info("reading_rejected", metric=metric.value, errors=errors)
            return Result.err(ReadingRejected(errors))

        if saved.is_err():
            return Result.err(saved.unwrap_err())
        return Result.ok(saved.unwrap())

    def classify(self, reading: Reading, height_cm: float | None = None) -> Classification | None:
        """Classify with the user's configured height, falling back to the reference height."""
        clinical = self.config.clinical
        return classify(
            reading,
            height_cm=height_cm if height_cm is not None else clinical.user_height_cm,
            reference_height_cm=clinical.reference_height_cm,
        )

    async def metric_snapshot(
        self, metric: MetricType | str, now: datetime | None = None
    ) -> MetricSnapshot:
        """Latest reading, its band and the rolling statistics for one metric."""
        metric = MetricType(metric)
        now = now or local_now()
        clinical = self.config.clinical
        readings = await self.repository(metric).get_all()

        latest = max(readings, key=lambda r: r.timestamp) if readings else None
        today_start, today_end = day_bounds(now)
        has_primary_value = metric is not MetricType.ACTIVITY
        return MetricSnapshot(
            metric=metric,
            latest=latest,
            classification=self.classify(latest) if latest is not None else None,
            average=(
                average_over_period(readings, clinical.default_average_days, now)
                if has_primary_value
                else None
            ),
            trend=(
                trend(
                    readings,
                    clinical.default_trend_days,
                    now,
                    clinical.trend_stable_threshold_pct,
                )
                if has_primary_value
                else None
            ),
            streak=streak(readings, now),
            today_count=sum(1 for r in readings if today_start <= r.timestamp <= today_end),
        )

    async def snapshot(self, now: datetime | None = None) -> list[MetricSnapshot]:
        """Snapshots for every metric, loaded concurrently."""
        now = now or local_now()
        async with asyncio.TaskGroup() as task_group:
            tasks = [
                task_group.create_task(self.metric_snapshot(metric, now))
                for metric in self.repositories
            ]
        snapshots = [task.result() for task in tasks]
        self.logger.info(
            "journal_snapshot_built",
            metrics=len(snapshots),
            read_errors=len(self.gateway.read_errors),
        )
        return snapshots

