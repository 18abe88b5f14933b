"""
Domain models for the health journal.

These models represent the readings a user records and the derived values the
engine hands back to dashboards. They are framework-agnostic pydantic models:
validation happens on construction and instances are immutable.

Serialized records use camelCase keys (``mealContext``, ``wakeTime``) so the
stored layout matches what the journal has always written; snake_case field
names are accepted on input as well.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


class MetricType(str, Enum):
    """Health metrics the journal keeps a collection for."""

    GLUCOSE = "glucose"
    PRESSURE = "pressure"
    WEIGHT = "weight"
    ACTIVITY = "activity"


class MealContext(str, Enum):
    """When a glucose reading was taken relative to food."""

    FASTING = "fasting"
    BEFORE_MEAL = "before-meal"
    AFTER_MEAL = "after-meal"
    BEDTIME = "bedtime"


class WeightUnit(str, Enum):
    KG = "kg"
    LBS = "lbs"


class ActivityType(str, Enum):
    """Discriminant of the activity log variants."""

    EXERCISE = "exercise"
    MEAL = "meal"
    MEDICATION = "medication"
    SLEEP = "sleep"
    OTHER = "other"


def new_reading_id() -> str:
    """Opaque, never-reused reading identifier."""
    return uuid.uuid4().hex


def local_now() -> datetime:
    """Current time as an aware datetime in the local timezone."""
    return datetime.now().astimezone()


def ensure_aware(value: datetime) -> datetime:
    """Interpret naive datetimes as local time so every comparison is well defined."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


class JournalModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class BaseReading(JournalModel):
    """Fields every reading carries regardless of metric."""

    id: str = Field(default_factory=new_reading_id, min_length=1)
    timestamp: datetime = Field(
        default_factory=local_now, description="Instant the reading applies to"
    )
    notes: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _timestamp_is_aware(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class GlucoseReading(BaseReading):
    """Blood glucose measurement in mg/dL."""

    value: float = Field(gt=0, allow_inf_nan=False, description="mg/dL")
    meal_context: MealContext | None = None


class PressureReading(BaseReading):
    """Blood pressure measurement in mmHg."""

    systolic: float = Field(gt=0, allow_inf_nan=False)
    diastolic: float = Field(gt=0, allow_inf_nan=False)
    heart_rate: float | None = Field(default=None, gt=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def systolic_above_diastolic(self) -> "PressureReading":
        if self.systolic <= self.diastolic:
            raise ValueError("systolic must exceed diastolic")
        return self


class WeightReading(BaseReading):
    """Body weight, optionally with composition figures."""

    weight: float = Field(gt=0, allow_inf_nan=False)
    unit: WeightUnit = WeightUnit.KG
    body_fat_pct: float | None = Field(default=None, ge=0, le=100, allow_inf_nan=False)
    muscle_mass: float | None = Field(default=None, gt=0, allow_inf_nan=False)


# Activity log variants
class BaseActivity(BaseReading):
    activity_type: str
    name: str = ""

    @field_validator("activity_type", mode="before")
    @classmethod
    def _enum_to_tag(cls, v: Any) -> Any:
        return v.value if isinstance(v, Enum) else v


class ExerciseEntry(BaseActivity):
    activity_type: Literal["exercise"] = "exercise"
    duration_minutes: float | None = Field(default=None, allow_inf_nan=False)
    calories: float | None = Field(default=None, allow_inf_nan=False)
    exercise_type: Literal["cardio", "strength", "flexibility", "sports"] | None = None
    intensity: Literal["low", "moderate", "high"] | None = None
    heart_rate: float | None = Field(default=None, gt=0, allow_inf_nan=False)


class MealEntry(BaseActivity):
    activity_type: Literal["meal"] = "meal"
    meal_type: Literal["breakfast", "lunch", "dinner", "snack"] | None = None
    carbs: float | None = Field(default=None, allow_inf_nan=False)
    protein: float | None = Field(default=None, allow_inf_nan=False)
    fat: float | None = Field(default=None, allow_inf_nan=False)
    calories: float | None = Field(default=None, allow_inf_nan=False)


class MedicationEntry(BaseActivity):
    activity_type: Literal["medication"] = "medication"
    medication_name: str
    dosage: str
    taken: bool


class SleepEntry(BaseActivity):
    activity_type: Literal["sleep"] = "sleep"
    bedtime: datetime
    wake_time: datetime
    quality: Literal["poor", "fair", "good", "excellent"] | None = None

    @field_validator("bedtime", "wake_time")
    @classmethod
    def _sleep_times_are_aware(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @property
    def hours_slept(self) -> float:
        return (self.wake_time - self.bedtime).total_seconds() / 3600


class OtherEntry(BaseActivity):
    activity_type: Literal["other"] = "other"
    duration_minutes: float | None = Field(default=None, allow_inf_nan=False)


def activity_tag(value: Any) -> str | None:
    """Pull the activity discriminant out of raw input or a built entry."""
    if isinstance(value, dict):
        tag = value.get("activityType", value.get("activity_type"))
    else:
        tag = getattr(value, "activity_type", None)
    if isinstance(tag, Enum):
        return tag.value
    return tag


ActivityEntry = Annotated[
    Union[
        Annotated[ExerciseEntry, Tag("exercise")],
        Annotated[MealEntry, Tag("meal")],
        Annotated[MedicationEntry, Tag("medication")],
        Annotated[SleepEntry, Tag("sleep")],
        Annotated[OtherEntry, Tag("other")],
    ],
    Discriminator(activity_tag),
]

Reading = GlucoseReading | PressureReading | WeightReading | BaseActivity


# Derived values returned to consumers
class ValidationResult(BaseModel):
    """Outcome of an input check. Errors are human-readable, one per violated rule."""

    valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationResult":
        return cls(valid=not errors, errors=errors)


class Classification(BaseModel):
    """Clinical band a reading falls into, with display metadata."""

    model_config = ConfigDict(frozen=True)

    metric: MetricType
    category: str = Field(description="Stable tag, e.g. 'stage1' or 'high'")
    label: str
    color: str = Field(pattern=r"^#[0-9A-F]{6}$")
    severity: int = Field(ge=0, description="0 is the healthiest band")
    score: float | None = Field(default=None, description="Computed figure, e.g. BMI")
    estimated: bool = False
    note: str | None = None


class PressureAverage(BaseModel):
    model_config = ConfigDict(frozen=True)

    systolic: float
    diastolic: float


TrendDirection = Literal["increasing", "decreasing", "stable"]


class Trend(BaseModel):
    """Change between the earliest and latest reading of a window."""

    model_config = ConfigDict(frozen=True)

    direction: TrendDirection
    change: float
    change_percentage: float
    first: float
    last: float


class ActivitySummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_activities: int = 0
    exercise_minutes: float = 0.0
    calories_burned: float = 0.0
    meals_logged: int = 0
    medications_taken: int = 0
    average_sleep_hours: float = 0.0
