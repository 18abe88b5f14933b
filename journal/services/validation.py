"""
Input checks for candidate readings.

Every function here is pure: it never touches storage and never raises on bad
input. Each violated rule contributes one human-readable message, so a form
can show all problems at once. Repositories do not call these; the caller
validates before saving.
"""

import math
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from journal.domain.models import (
    ActivityType,
    MetricType,
    ValidationResult,
    WeightUnit,
    activity_tag,
    ensure_aware,
)

GLUCOSE_RANGE = (20.0, 600.0)  # mg/dL
SYSTOLIC_RANGE = (60.0, 250.0)  # mmHg
DIASTOLIC_RANGE = (40.0, 150.0)  # mmHg
WEIGHT_RANGES: dict[WeightUnit, tuple[float, float]] = {
    WeightUnit.KG: (20.0, 300.0),
    WeightUnit.LBS: (44.0, 660.0),
}

_datetime_adapter = TypeAdapter(datetime)


def _as_number(value: Any) -> float | None:
    """Finite float for numeric input (including numeric strings), else None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, int | float):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def _within(value: float, bounds: tuple[float, float]) -> bool:
    low, high = bounds
    return low <= value <= high


def _fmt(value: float) -> str:
    return f"{value:g}"


def validate_glucose(value: Any) -> ValidationResult:
    """Blood glucose must be a positive number within 20-600 mg/dL."""
    number = _as_number(value)
    if number is None or number <= 0:
        return ValidationResult.from_errors(["Please enter a valid blood sugar value"])
    if not _within(number, GLUCOSE_RANGE):
        low, high = GLUCOSE_RANGE
        return ValidationResult.from_errors(
            [f"Value should be between {_fmt(low)}-{_fmt(high)} mg/dL"]
        )
    return ValidationResult.from_errors([])


def validate_pressure(systolic: Any, diastolic: Any) -> ValidationResult:
    """
    Check systolic and diastolic against their own bounds and each other.

    The ordering rule is reported whenever systolic <= diastolic, even when a
    bound is also violated.
    """
    errors: list[str] = []
    sys_value = _as_number(systolic)
    dia_value = _as_number(diastolic)

    if sys_value is None:
        errors.append("Systolic pressure must be a number")
    elif not _within(sys_value, SYSTOLIC_RANGE):
        errors.append(
            f"Systolic pressure should be between {_fmt(SYSTOLIC_RANGE[0])}-"
            f"{_fmt(SYSTOLIC_RANGE[1])} mmHg"
        )

    if dia_value is None:
        errors.append("Diastolic pressure must be a number")
    elif not _within(dia_value, DIASTOLIC_RANGE):
        errors.append(
            f"Diastolic pressure should be between {_fmt(DIASTOLIC_RANGE[0])}-"
            f"{_fmt(DIASTOLIC_RANGE[1])} mmHg"
        )

    if sys_value is not None and dia_value is not None and sys_value <= dia_value:
        errors.append("Systolic pressure should be higher than diastolic pressure")

    return ValidationResult.from_errors(errors)


def validate_weight(weight: Any, unit: Any = WeightUnit.KG) -> ValidationResult:
    """Weight bounds depend on the unit; non-positive values are always rejected."""
    try:
        weight_unit = WeightUnit(unit)
    except ValueError:
        return ValidationResult.from_errors(["Unit must be kg or lbs"])

    number = _as_number(weight)
    if number is None:
        return ValidationResult.from_errors(["Weight must be a positive number"])

    errors: list[str] = []
    low, high = WEIGHT_RANGES[weight_unit]
    if not _within(number, (low, high)):
        errors.append(f"Weight should be between {_fmt(low)}-{_fmt(high)} {weight_unit.value}")
    if number <= 0:
        errors.append("Weight must be a positive number")
    return ValidationResult.from_errors(errors)


def _field(candidate: Mapping[str, Any], name: str) -> Any:
    """Read a field by snake_case name, falling back to its stored camelCase key."""
    if name in candidate:
        return candidate[name]
    return candidate.get(to_camel(name))


def _parse_instant(value: Any) -> datetime | None:
    try:
        return _datetime_adapter.validate_python(value)
    except ValidationError:
        return None


def _check_non_negative(candidate: Mapping[str, Any], fields: dict[str, str]) -> list[str]:
    errors: list[str] = []
    for name, label in fields.items():
        raw = _field(candidate, name)
        if raw is None:
            continue
        number = _as_number(raw)
        if number is None:
            errors.append(f"{label} must be a number")
        elif number < 0:
            errors.append(f"{label} cannot be negative")
    return errors


def validate_activity(candidate: Mapping[str, Any]) -> ValidationResult:
    """Variant-specific checks for an activity log entry."""
    tag = activity_tag(dict(candidate))
    try:
        activity_type = ActivityType(tag)
    except ValueError:
        allowed = ", ".join(t.value for t in ActivityType)
        return ValidationResult.from_errors([f"Activity type must be one of: {allowed}"])

    errors: list[str] = []
    match activity_type:
        case ActivityType.EXERCISE:
            errors += _check_non_negative(
                candidate, {"duration_minutes": "Duration", "calories": "Calories"}
            )
        case ActivityType.MEAL:
            errors += _check_non_negative(
                candidate,
                {"carbs": "Carbs", "protein": "Protein", "fat": "Fat", "calories": "Calories"},
            )
        case ActivityType.MEDICATION:
            if not str(_field(candidate, "medication_name") or "").strip():
                errors.append("Medication name is required")
            if not str(_field(candidate, "dosage") or "").strip():
                errors.append("Dosage is required")
            if not isinstance(_field(candidate, "taken"), bool):
                errors.append("Please mark the medication as taken or skipped")
        case ActivityType.SLEEP:
            bedtime = _parse_instant(_field(candidate, "bedtime"))
            wake_time = _parse_instant(_field(candidate, "wake_time"))
            if bedtime is None:
                errors.append("Bedtime is required")
            if wake_time is None:
                errors.append("Wake time is required")
            if bedtime is not None and wake_time is not None:
                if ensure_aware(wake_time) <= ensure_aware(bedtime):
                    errors.append("Wake time must be after bedtime")
        case ActivityType.OTHER:
            errors += _check_non_negative(candidate, {"duration_minutes": "Duration"})

    return ValidationResult.from_errors(errors)


def validate_reading(metric: MetricType, candidate: Mapping[str, Any]) -> ValidationResult:
    """Validate a raw candidate (as submitted by a form) for the given metric."""
    match MetricType(metric):
        case MetricType.GLUCOSE:
            if _field(candidate, "value") is None:
                return ValidationResult.from_errors(["Blood sugar value is required"])
            return validate_glucose(_field(candidate, "value"))
        case MetricType.PRESSURE:
            missing = [
                f"{label} pressure is required"
                for name, label in (("systolic", "Systolic"), ("diastolic", "Diastolic"))
                if _field(candidate, name) is None
            ]
            if missing:
                return ValidationResult.from_errors(missing)
            return validate_pressure(_field(candidate, "systolic"), _field(candidate, "diastolic"))
        case MetricType.WEIGHT:
            if _field(candidate, "weight") is None:
                return ValidationResult.from_errors(["Weight is required"])
            unit = _field(candidate, "unit") or WeightUnit.KG
            return validate_weight(_field(candidate, "weight"), unit)
        case MetricType.ACTIVITY:
            return validate_activity(candidate)
