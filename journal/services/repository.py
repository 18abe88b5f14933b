"""
Reading repositories: one per metric, all sharing the same contract.

Every operation reloads the metric's collection through the gateway; nothing
is cached between calls. Mutations run their load-modify-store cycle under the
gateway's per-key lock and report storage failures as ``Result.err``.
"""

from collections.abc import Callable, Mapping
from datetime import datetime, time, timedelta
from typing import Any, ClassVar, Generic, TypeVar

import structlog
from pydantic import BaseModel, TypeAdapter

from journal.domain.errors import StorageReadError, StorageWriteError
from journal.domain.models import (
    ActivityEntry,
    ActivityType,
    BaseActivity,
    BaseReading,
    GlucoseReading,
    MetricType,
    PressureReading,
    WeightReading,
    ensure_aware,
    local_now,
    new_reading_id,
)
from journal.services.gateway import PersistenceGateway, Result

logger = structlog.get_logger(__name__)

ReadingT = TypeVar("ReadingT", bound=BaseReading)

IMMUTABLE_FIELDS = frozenset({"id", "activity_type"})


def day_bounds(moment: datetime) -> tuple[datetime, datetime]:
    """First and last instant of the local calendar day containing ``moment``."""
    day = ensure_aware(moment).astimezone().date()
    # Each bound takes its own UTC offset; changeover days are not 24 hours long.
    start = datetime.combine(day, time()).astimezone()
    end = datetime.combine(day + timedelta(days=1), time()).astimezone()
    return start, end - timedelta(microseconds=1)


class ReadingRepository(Generic[ReadingT]):
    """
    Create/read/update/delete over one metric's reading collection.

    Subclasses bind the metric, its storage key and the model (or tagged
    union) the collection holds. The repository trusts its caller to have
    validated ranges; it only enforces model-level invariants.
    """

    metric: ClassVar[MetricType]
    storage_key: ClassVar[str]
    item_type: ClassVar[Any]

    def __init__(self, gateway: PersistenceGateway) -> None:
        self.gateway = gateway
        self._item_adapter: TypeAdapter[ReadingT] = TypeAdapter(self.item_type)
        self._adapter: TypeAdapter[list[ReadingT]] = TypeAdapter(list[self.item_type])
        self.logger = logger.bind(component="reading_repository", metric=self.metric.value)

    async def save(
        self, fields: Mapping[str, Any] | BaseModel
    ) -> Result[ReadingT, StorageWriteError]:
        """
        Persist a new reading built from ``fields``.

        Any incoming ``id`` is replaced by a fresh one and ``timestamp`` is
        coerced to an aware datetime.

        Raises:
            pydantic.ValidationError: if the fields do not form a valid model.
        """
        data = fields.model_dump() if isinstance(fields, BaseModel) else dict(fields)
        data["id"] = new_reading_id()
        reading = self._item_adapter.validate_python(data)

        async with self.gateway.locked(self.storage_key):
            loaded = await self._load_for_update()
            if loaded.is_err():
                return Result.err(loaded.unwrap_err())
            written = await self._write([*loaded.unwrap(), reading])

        if written.is_err():
            return Result.err(written.unwrap_err())
        self.logger.info("reading_saved", reading_id=reading.id)
        return Result.ok(reading)

    async def get_all(self) -> list[ReadingT]:
        """Every reading for the metric, in storage (insertion) order."""
        return await self.gateway.load(self.storage_key, self._adapter)

    async def get_by_date_range(self, start: datetime, end: datetime) -> list[ReadingT]:
        """Readings with ``start <= timestamp <= end``."""
        start, end = ensure_aware(start), ensure_aware(end)
        return [r for r in await self.get_all() if start <= r.timestamp <= end]

    async def get_today(self, now: datetime | None = None) -> list[ReadingT]:
        """Readings within the caller's local calendar day."""
        start, end = day_bounds(now or local_now())
        return await self.get_by_date_range(start, end)

    async def get_latest(self) -> ReadingT | None:
        """
        Reading with the greatest timestamp.

        On equal timestamps the earliest inserted of the tied readings wins.
        """
        readings = await self.get_all()
        if not readings:
            return None
        return max(readings, key=lambda r: r.timestamp)

    async def update(
        self, reading_id: str, **fields: Any
    ) -> Result[ReadingT | None, StorageWriteError]:
        """
        Shallow-merge ``fields`` into the reading with ``reading_id``.

        Returns ``Ok(None)`` without writing when the id is unknown.

        Raises:
            ValueError: for unknown fields or an attempt to change ``id`` or
                the activity type.
        """
        for name in fields:
            if name in IMMUTABLE_FIELDS or name == "activityType":
                raise ValueError(f"{name} cannot be changed by update")

        async with self.gateway.locked(self.storage_key):
            loaded = await self._load_for_update()
            if loaded.is_err():
                return Result.err(loaded.unwrap_err())
            readings = loaded.unwrap()

            index = next((i for i, r in enumerate(readings) if r.id == reading_id), None)
            if index is None:
                self.logger.info("reading_not_found", reading_id=reading_id)
                return Result.ok(None)

            existing = readings[index]
            changes = _resolve_field_names(type(existing), fields)
            updated = type(existing).model_validate({**existing.model_dump(), **changes})
            readings[index] = updated
            written = await self._write(readings)

        if written.is_err():
            return Result.err(written.unwrap_err())
        self.logger.info("reading_updated", reading_id=reading_id, fields=sorted(changes))
        return Result.ok(updated)

    async def delete(self, reading_id: str) -> Result[None, StorageWriteError]:
        """Remove the reading with ``reading_id``; unknown ids are a no-op."""
        async with self.gateway.locked(self.storage_key):
            loaded = await self._load_for_update()
            if loaded.is_err():
                return Result.err(loaded.unwrap_err())
            readings = loaded.unwrap()

            remaining = [r for r in readings if r.id != reading_id]
            if len(remaining) == len(readings):
                return Result.ok(None)
            written = await self._write(remaining)

        if written.is_ok():
            self.logger.info("reading_deleted", reading_id=reading_id)
        return written

    async def _load_for_update(self) -> Result[list[ReadingT], StorageWriteError]:
        try:
            return Result.ok(
                await self.gateway.load(self.storage_key, self._adapter, for_update=True)
            )
        except StorageReadError as e:
            return Result.err(StorageWriteError(e.key, f"collection unreadable: {e.reason}"))

    async def _write(self, readings: list[ReadingT]) -> Result[None, StorageWriteError]:
        return await self.gateway.store(self.storage_key, readings, self._adapter)


def _resolve_field_names(model: type[BaseModel], fields: Mapping[str, Any]) -> dict[str, Any]:
    """Map snake_case names or camelCase aliases onto the model's field names."""
    lookup: dict[str, str] = {}
    for name, info in model.model_fields.items():
        lookup[name] = name
        if info.alias:
            lookup[info.alias] = name

    resolved: dict[str, Any] = {}
    for key, value in fields.items():
        if key not in lookup:
            raise ValueError(f"{model.__name__} has no field {key!r}")
        resolved[lookup[key]] = value
    return resolved


class GlucoseRepository(ReadingRepository[GlucoseReading]):
    metric = MetricType.GLUCOSE
    storage_key = "blood_sugar_readings"
    item_type = GlucoseReading


class PressureRepository(ReadingRepository[PressureReading]):
    metric = MetricType.PRESSURE
    storage_key = "blood_pressure_readings"
    item_type = PressureReading


class WeightRepository(ReadingRepository[WeightReading]):
    metric = MetricType.WEIGHT
    storage_key = "weight_readings"
    item_type = WeightReading


class ActivityRepository(ReadingRepository[BaseActivity]):
    """Activity log holding every activity variant in one collection."""

    metric = MetricType.ACTIVITY
    storage_key = "activity_entries"
    item_type = ActivityEntry

    async def get_by_type(self, activity_type: ActivityType | str) -> list[BaseActivity]:
        wanted = ActivityType(activity_type).value
        return [e for e in await self.get_all() if e.activity_type == wanted]

    async def search(self, query: str) -> list[BaseActivity]:
        """Case-insensitive substring match over name and notes."""
        needle = query.lower()
        return [
            e
            for e in await self.get_all()
            if needle in e.name.lower() or (e.notes is not None and needle in e.notes.lower())
        ]


REPOSITORY_TYPES: Mapping[MetricType, Callable[[PersistenceGateway], ReadingRepository[Any]]] = {
    MetricType.GLUCOSE: GlucoseRepository,
    MetricType.PRESSURE: PressureRepository,
    MetricType.WEIGHT: WeightRepository,
    MetricType.ACTIVITY: ActivityRepository,
}
