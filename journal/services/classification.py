"""
Clinical classification of readings.

Each metric has an ordered band table evaluated top to bottom; the first band
that matches wins. Results carry the category tag together with its label,
color and severity, so consumers never map categories to colors themselves.
"""

from dataclasses import dataclass

from journal.domain.models import (
    BaseActivity,
    Classification,
    GlucoseReading,
    MealContext,
    MetricType,
    PressureReading,
    Reading,
    WeightReading,
    WeightUnit,
)

LBS_PER_KG = 2.20462
DEFAULT_REFERENCE_HEIGHT_CM = 170.0


@dataclass(frozen=True)
class Band:
    category: str
    label: str
    color: str
    severity: int

    def classify(self, metric: MetricType, **extra: object) -> Classification:
        return Classification(
            metric=metric,
            category=self.category,
            label=self.label,
            color=self.color,
            severity=self.severity,
            **extra,
        )


# Blood pressure, American Heart Association categories
PRESSURE_NORMAL = Band("normal", "Normal", "#4CAF50", 0)
PRESSURE_ELEVATED = Band("elevated", "Elevated", "#FFC107", 1)
PRESSURE_STAGE1 = Band("stage1", "Stage 1 Hypertension", "#FF9800", 2)
PRESSURE_STAGE2 = Band("stage2", "Stage 2 Hypertension", "#F44336", 3)
PRESSURE_CRISIS = Band("crisis", "Hypertensive Crisis", "#D32F2F", 4)

GLUCOSE_LOW = Band("low", "Low", "#2196F3", 2)
GLUCOSE_NORMAL = Band("normal", "Normal", "#4CAF50", 0)
GLUCOSE_HIGH = Band("high", "High", "#F44336", 1)

FASTING_NORMAL_RANGE = (70.0, 100.0)
GENERAL_NORMAL_RANGE = (70.0, 180.0)

BMI_UNDERWEIGHT = Band("underweight", "Underweight", "#2196F3", 1)
BMI_NORMAL = Band("normal", "Normal Weight", "#4CAF50", 0)
BMI_OVERWEIGHT = Band("overweight", "Overweight", "#FF9800", 2)
BMI_OBESE = Band("obese", "Obese", "#F44336", 3)


def classify_pressure(systolic: float, diastolic: float) -> Classification:
    """Crisis, then stage 2, stage 1, elevated; normal otherwise."""
    if systolic >= 180 or diastolic >= 120:
        band = PRESSURE_CRISIS
    elif systolic >= 140 or diastolic >= 90:
        band = PRESSURE_STAGE2
    elif systolic >= 130 or diastolic >= 80:
        band = PRESSURE_STAGE1
    elif systolic >= 120 and diastolic < 80:
        band = PRESSURE_ELEVATED
    else:
        band = PRESSURE_NORMAL
    return band.classify(MetricType.PRESSURE)


def glucose_normal_range(meal_context: MealContext | str | None) -> tuple[float, float]:
    if meal_context is not None and MealContext(meal_context) is MealContext.FASTING:
        return FASTING_NORMAL_RANGE
    return GENERAL_NORMAL_RANGE


def classify_glucose(value: float, meal_context: MealContext | str | None = None) -> Classification:
    """Low/normal/high against the fasting or the general normal band (inclusive)."""
    low, high = glucose_normal_range(meal_context)
    if value < low:
        band = GLUCOSE_LOW
    elif value > high:
        band = GLUCOSE_HIGH
    else:
        band = GLUCOSE_NORMAL
    return band.classify(MetricType.GLUCOSE)


def convert_weight(weight: float, from_unit: WeightUnit | str, to_unit: WeightUnit | str) -> float:
    source, target = WeightUnit(from_unit), WeightUnit(to_unit)
    if source is target:
        return weight
    if source is WeightUnit.KG:
        return weight * LBS_PER_KG
    return weight / LBS_PER_KG


def calculate_bmi(weight_kg: float, height_m: float) -> float:
    if height_m <= 0:
        raise ValueError("height must be positive")
    return weight_kg / (height_m * height_m)


def classify_bmi(
    weight: float,
    unit: WeightUnit | str = WeightUnit.KG,
    height_cm: float | None = None,
    reference_height_cm: float = DEFAULT_REFERENCE_HEIGHT_CM,
) -> Classification:
    """
    BMI band for a body weight.

    Without ``height_cm`` the reference height is substituted; the result is
    then flagged ``estimated`` and its note names the height used.
    """
    estimated = height_cm is None
    height = reference_height_cm if height_cm is None else height_cm
    bmi = calculate_bmi(convert_weight(weight, unit, WeightUnit.KG), height / 100)

    if bmi < 18.5:
        band = BMI_UNDERWEIGHT
    elif bmi < 25:
        band = BMI_NORMAL
    elif bmi < 30:
        band = BMI_OVERWEIGHT
    else:
        band = BMI_OBESE

    note = (
        f"Estimated with a reference height of {height:g} cm; not the user's measured BMI"
        if estimated
        else None
    )
    return band.classify(
        MetricType.WEIGHT, score=round(bmi, 1), estimated=estimated, note=note
    )


def glucose_in_target_range(value: float, meal_context: MealContext | str | None = None) -> bool:
    """Day-to-day management targets, looser than the normal band."""
    context = MealContext(meal_context) if meal_context is not None else None
    if context is MealContext.FASTING:
        return 80 <= value <= 130
    if context is MealContext.AFTER_MEAL:
        return value < 180
    return 80 <= value <= 180


def pressure_in_target_range(systolic: float, diastolic: float) -> bool:
    return systolic < 130 and diastolic < 80


def classify(
    reading: Reading,
    height_cm: float | None = None,
    reference_height_cm: float = DEFAULT_REFERENCE_HEIGHT_CM,
) -> Classification | None:
    """Classify any stored reading; activities have no clinical band."""
    match reading:
        case GlucoseReading():
            return classify_glucose(reading.value, reading.meal_context)
        case PressureReading():
            return classify_pressure(reading.systolic, reading.diastolic)
        case WeightReading():
            return classify_bmi(reading.weight, reading.unit, height_cm, reference_height_cm)
        case BaseActivity():
            return None
    raise TypeError(f"Cannot classify {type(reading).__name__}")
