"""
Rolling statistics over a metric's stored history.

The module-level functions are pure and work on readings that are already
loaded; ``JournalStatistics`` is the async entry point that loads them from
the repositories first. Only arithmetic means, first/last trends and
run-length streaks are computed.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta
from statistics import mean

import structlog

from journal.domain.models import (
    ActivitySummary,
    ActivityType,
    BaseActivity,
    BaseReading,
    ExerciseEntry,
    GlucoseReading,
    MealEntry,
    MedicationEntry,
    MetricType,
    OtherEntry,
    PressureAverage,
    PressureReading,
    SleepEntry,
    Trend,
    TrendDirection,
    WeightReading,
    WeightUnit,
    ensure_aware,
    local_now,
)
from journal.services.classification import convert_weight
from journal.services.repository import ActivityRepository, ReadingRepository

logger = structlog.get_logger(__name__)

DEFAULT_STABLE_THRESHOLD_PCT = 1.0


def readings_in_window(
    readings: Sequence[BaseReading], days: float, now: datetime | None = None
) -> list[BaseReading]:
    """Readings with ``now - days <= timestamp <= now``, in their stored order."""
    if days < 0:
        raise ValueError("days must not be negative")
    end = ensure_aware(now) if now is not None else local_now()
    start = end - timedelta(days=days)
    return [r for r in readings if start <= r.timestamp <= end]


def primary_value(reading: BaseReading, weight_unit: WeightUnit | None = None) -> float:
    """
    The single number a trend follows for this reading.

    Glucose uses its value, weight its weight (converted to ``weight_unit``
    when given) and pressure its systolic figure.
    """
    match reading:
        case GlucoseReading():
            return reading.value
        case WeightReading():
            if weight_unit is None:
                return reading.weight
            return convert_weight(reading.weight, reading.unit, weight_unit)
        case PressureReading():
            return reading.systolic
    raise TypeError(f"{type(reading).__name__} has no primary value")


def average_over_period(
    readings: Sequence[BaseReading], days: float, now: datetime | None = None
) -> float | PressureAverage | None:
    """
    Mean of the primary field(s) over the last ``days`` days.

    Pressure averages both figures. Weight is averaged in the unit of the most
    recent reading in the window. Returns None for an empty window.
    """
    window = readings_in_window(readings, days, now)
    if not window:
        return None

    if all(isinstance(r, PressureReading) for r in window):
        return PressureAverage(
            systolic=mean(r.systolic for r in window),  # type: ignore[attr-defined]
            diastolic=mean(r.diastolic for r in window),  # type: ignore[attr-defined]
        )

    unit = _latest_weight_unit(window)
    return mean(primary_value(r, unit) for r in window)


def trend(
    readings: Sequence[BaseReading],
    days: float,
    now: datetime | None = None,
    stable_threshold_pct: float = DEFAULT_STABLE_THRESHOLD_PCT,
) -> Trend | None:
    """
    Direction and size of the change from the earliest to the latest reading.

    ``stable`` when the absolute percentage change is below the threshold.
    Needs at least two readings in the window.
    """
    window = sorted(readings_in_window(readings, days, now), key=lambda r: r.timestamp)
    if len(window) < 2:
        return None

    unit = _latest_weight_unit(window)
    first = primary_value(window[0], unit)
    last = primary_value(window[-1], unit)
    change = last - first
    change_percentage = change * 100 / first

    direction: TrendDirection
    if abs(change_percentage) < stable_threshold_pct:
        direction = "stable"
    elif change > 0:
        direction = "increasing"
    else:
        direction = "decreasing"

    return Trend(
        direction=direction,
        change=change,
        change_percentage=change_percentage,
        first=first,
        last=last,
    )


def streak(readings: Sequence[BaseReading], now: datetime | None = None) -> int:
    """
    Consecutive local calendar days, ending today, with at least one reading.

    Several readings on one day count once; readings dated after today are
    ignored. No reading today means a streak of 0.
    """
    today = (ensure_aware(now) if now is not None else local_now()).astimezone().date()
    logged_days = {r.timestamp.astimezone().date() for r in readings}

    count = 0
    day = today
    while day in logged_days:
        count += 1
        day -= timedelta(days=1)
    return count


def activity_summary(
    entries: Sequence[BaseActivity], days: float = 7, now: datetime | None = None
) -> ActivitySummary:
    """Totals per activity kind over the last ``days`` days."""
    window = readings_in_window(entries, days, now)

    exercise_minutes = 0.0
    calories_burned = 0.0
    meals_logged = 0
    medications_taken = 0
    sleep_hours: list[float] = []

    for entry in window:
        match entry:
            case ExerciseEntry():
                exercise_minutes += entry.duration_minutes or 0
                calories_burned += entry.calories or 0
            case MealEntry():
                meals_logged += 1
            case MedicationEntry():
                if entry.taken:
                    medications_taken += 1
            case SleepEntry():
                sleep_hours.append(entry.hours_slept)
            case OtherEntry():
                pass

    return ActivitySummary(
        total_activities=len(window),
        exercise_minutes=exercise_minutes,
        calories_burned=calories_burned,
        meals_logged=meals_logged,
        medications_taken=medications_taken,
        average_sleep_hours=mean(sleep_hours) if sleep_hours else 0.0,
    )


def _latest_weight_unit(window: Sequence[BaseReading]) -> WeightUnit | None:
    weights = [r for r in window if isinstance(r, WeightReading)]
    if not weights:
        return None
    return max(weights, key=lambda r: r.timestamp).unit


class JournalStatistics:
    """
    Statistics computed from the repositories' current contents.

    Holds no state of its own: every call reloads the metric's history.
    """

    def __init__(
        self,
        repositories: Mapping[MetricType, ReadingRepository],
        stable_threshold_pct: float = DEFAULT_STABLE_THRESHOLD_PCT,
    ) -> None:
        self.repositories = repositories
        self.stable_threshold_pct = stable_threshold_pct
        self.logger = logger.bind(component="journal_statistics")

    def _repository(self, metric: MetricType | str) -> ReadingRepository:
        return self.repositories[MetricType(metric)]

    def _numeric_repository(self, metric: MetricType | str) -> ReadingRepository:
        if MetricType(metric) is MetricType.ACTIVITY:
            raise ValueError("activity has no primary value")
        return self._repository(metric)

    async def average(
        self, metric: MetricType | str, days: float, now: datetime | None = None
    ) -> float | PressureAverage | None:
        readings = await self._numeric_repository(metric).get_all()
        return average_over_period(readings, days, now)

    async def trend(
        self, metric: MetricType | str, days: float = 30, now: datetime | None = None
    ) -> Trend | None:
        readings = await self._numeric_repository(metric).get_all()
        return trend(readings, days, now, self.stable_threshold_pct)

    async def streak(
        self,
        metric: MetricType | str,
        activity_type: ActivityType | str | None = None,
        now: datetime | None = None,
    ) -> int:
        """Logging streak for a metric, or for one activity kind of the activity log."""
        repository = self._repository(metric)
        if activity_type is not None:
            if not isinstance(repository, ActivityRepository):
                raise ValueError("activity_type only applies to the activity metric")
            readings = await repository.get_by_type(activity_type)
        else:
            readings = await repository.get_all()

        count = streak(readings, now)
        self.logger.debug(
            "streak_computed",
            metric=MetricType(metric).value,
            activity_type=activity_type,
            streak=count,
        )
        return count

    async def activity_summary(
        self, days: float = 7, now: datetime | None = None
    ) -> ActivitySummary:
        entries = await self._repository(MetricType.ACTIVITY).get_all()
        return activity_summary(entries, days, now)
