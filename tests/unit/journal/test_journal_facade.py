"""Tests for the HealthJournal facade in `journal/services/journal.py`."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from adapters.storage import InMemoryKeyValueStore, JsonFileKeyValueStore
import journal.services.journal as journal_module
from journal.config import AppConfig, ClinicalConfig, LoggingConfig, StorageConfig
from journal.domain.errors import ReadingRejected, StorageReadError, StorageWriteError
from journal.domain.models import (
    GlucoseReading,
    MetricType,
    PressureAverage,
    SleepEntry,
    WeightReading,
)
from journal.services.journal import HealthJournal, build_store

NOW = datetime(2024, 5, 10, 18, 0).astimezone()


class BrokenStore(InMemoryKeyValueStore):
    async def set(self, key: str, value: str) -> None:
        raise OSError("disk full")


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(storage=StorageConfig(backend="memory"))


@pytest.fixture
def journal(config: AppConfig) -> HealthJournal:
    return HealthJournal(InMemoryKeyValueStore(), config)


class TestBuild:
    def test_memory_backend(self, config: AppConfig) -> None:
        assert isinstance(build_store(config), InMemoryKeyValueStore)

    def test_json_backend(self, tmp_path: Path) -> None:
        config = AppConfig(storage=StorageConfig(backend="json", path=str(tmp_path / "j.json")))
        store = build_store(config)
        assert isinstance(store, JsonFileKeyValueStore)
        assert store.path == tmp_path / "j.json"

    def test_repositories_share_one_gateway(self, journal: HealthJournal) -> None:
        assert journal.glucose.gateway is journal.gateway
        assert journal.activity.gateway is journal.gateway
        assert journal.repository("weight") is journal.weight

    async def test_key_prefix_from_config(self) -> None:
        store = InMemoryKeyValueStore()
        config = AppConfig(storage=StorageConfig(backend="memory", key_prefix="bob:"))
        journal = HealthJournal(store, config)

        await journal.submit(MetricType.WEIGHT, {"weight": 80})

        assert store.keys() == ["bob:weight_readings"]

    def test_from_config_applies_logging_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        applied: list[LoggingConfig] = []
        monkeypatch.setattr(journal_module, "configure_logging", applied.append)
        config = AppConfig(
            storage=StorageConfig(backend="memory"),
            logging=LoggingConfig(level="WARNING", format="json"),
        )

        journal = HealthJournal.from_config(config)

        assert applied == [config.logging]
        assert journal.config is config


class TestSubmit:
    async def test_valid_reading_is_saved(self, journal: HealthJournal) -> None:
        result = await journal.submit("glucose", {"value": "105", "mealContext": "fasting"})

        assert result.is_ok()
        reading = result.unwrap()
        assert isinstance(reading, GlucoseReading)
        assert reading.value == 105
        assert await journal.glucose.get_all() == [reading]

    async def test_invalid_reading_is_rejected_without_writing(
        self, journal: HealthJournal
    ) -> None:
        result = await journal.submit(MetricType.PRESSURE, {"systolic": 80, "diastolic": 90})

        assert result.is_err()
        error = result.unwrap_err()
        assert isinstance(error, ReadingRejected)
        assert error.errors == ["Systolic pressure should be higher than diastolic pressure"]
        assert await journal.pressure.get_all() == []

    async def test_model_level_problems_are_rejected(self, journal: HealthJournal) -> None:
        result = await journal.submit(
            MetricType.ACTIVITY, {"activityType": "exercise", "intensity": "extreme"}
        )

        assert result.is_err()
        error = result.unwrap_err()
        assert isinstance(error, ReadingRejected)
        assert any("intensity" in message for message in error.errors)

    async def test_write_failure_is_returned(self, config: AppConfig) -> None:
        journal = HealthJournal(BrokenStore(), config)

        result = await journal.submit(MetricType.GLUCOSE, {"value": 100})

        assert result.is_err()
        assert isinstance(result.unwrap_err(), StorageWriteError)

    async def test_sleep_entry_submission(self, journal: HealthJournal) -> None:
        bedtime = NOW - timedelta(hours=9)
        result = await journal.submit(
            "activity",
            {
                "activityType": "sleep",
                "bedtime": bedtime.isoformat(),
                "wakeTime": (bedtime + timedelta(hours=7, minutes=30)).isoformat(),
            },
        )
        entry = result.unwrap()
        assert isinstance(entry, SleepEntry)
        assert entry.hours_slept == pytest.approx(7.5)


class TestClassify:
    def test_reference_height_without_user_height(self, journal: HealthJournal) -> None:
        result = journal.classify(WeightReading(weight=70))
        assert result is not None
        assert result.estimated is True

    def test_user_height_from_config(self) -> None:
        config = AppConfig(
            storage=StorageConfig(backend="memory"),
            clinical=ClinicalConfig(user_height_cm=160),
        )
        journal = HealthJournal(InMemoryKeyValueStore(), config)

        result = journal.classify(WeightReading(weight=70))

        assert result is not None
        assert result.estimated is False
        assert result.category == "overweight"

    def test_explicit_height_wins(self, journal: HealthJournal) -> None:
        result = journal.classify(WeightReading(weight=70), height_cm=190)
        assert result is not None
        assert result.score == 19.4


class TestSnapshot:
    async def test_snapshot_covers_every_metric(self, journal: HealthJournal) -> None:
        for days_ago, systolic in ((2, 150), (1, 140), (0, 128)):
            await journal.submit(
                MetricType.PRESSURE,
                {
                    "systolic": systolic,
                    "diastolic": 82,
                    "timestamp": (NOW - timedelta(days=days_ago)).isoformat(),
                },
            )
        await journal.submit(MetricType.ACTIVITY, {"activityType": "other", "timestamp": NOW})

        snapshots = {s.metric: s for s in await journal.snapshot(NOW)}

        assert set(snapshots) == set(MetricType)
        pressure = snapshots[MetricType.PRESSURE]
        assert pressure.classification is not None
        assert pressure.classification.category == "stage1"
        assert isinstance(pressure.average, PressureAverage)
        assert pressure.average.systolic == pytest.approx(418 / 3)
        assert pressure.average.diastolic == 82
        assert pressure.trend is not None
        assert pressure.trend.direction == "decreasing"
        assert pressure.streak == 3
        assert pressure.today_count == 1

        activity = snapshots[MetricType.ACTIVITY]
        assert activity.classification is None
        assert activity.average is None
        assert activity.streak == 1

        glucose = snapshots[MetricType.GLUCOSE]
        assert glucose.latest is None
        assert glucose.streak == 0

    async def test_corrupt_collection_surfaces_through_callback(
        self, config: AppConfig
    ) -> None:
        seen: list[StorageReadError] = []
        store = InMemoryKeyValueStore({"weight_readings": "not json"})
        journal = HealthJournal(store, config, on_read_error=seen.append)

        snapshots = await journal.snapshot(NOW)

        assert len(snapshots) == 4
        assert [e.key for e in seen] == ["weight_readings"]
