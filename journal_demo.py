"""
End-to-end walkthrough of the journal engine.

This script exercises:
1. Configuration loading and validation
2. Submitting readings for every metric (valid and rejected)
3. Classification and the dashboard snapshot
4. Activity statistics
5. Recovery from a corrupted collection and a failing store

Run with: uv run python journal_demo.py
"""

import asyncio
from datetime import datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.storage import InMemoryKeyValueStore
from journal.config import (
    StorageConfig,
    configure_logging,
    get_config,
    print_config_summary,
    validate_config,
)
from journal.domain.errors import ReadingRejected, StorageWriteError
from journal.domain.models import MetricType, PressureAverage, local_now
from journal.services.journal import HealthJournal

console = Console()


class FailingStore(InMemoryKeyValueStore):
    """Store whose writes always fail, for exercising the error paths."""

    async def set(self, key: str, value: str) -> None:
        raise OSError("disk full")


def demo_journal() -> HealthJournal:
    config = get_config().model_copy(update={"storage": StorageConfig(backend="memory")})
    return HealthJournal(InMemoryKeyValueStore(), config)


async def seed_week(journal: HealthJournal, now: datetime) -> int:
    """Log a week of readings ending at ``now``; returns how many were saved."""
    saved = 0
    for days_ago in range(6, -1, -1):
        at = (now - timedelta(days=days_ago)).isoformat()
        submissions = [
            (
                MetricType.GLUCOSE,
                {"value": 92 + days_ago, "mealContext": "fasting", "timestamp": at},
            ),
            (
                MetricType.PRESSURE,
                {"systolic": 124 - days_ago, "diastolic": 78, "heartRate": 70, "timestamp": at},
            ),
            (MetricType.WEIGHT, {"weight": 81.0 + days_ago * 0.2, "unit": "kg", "timestamp": at}),
            (
                MetricType.ACTIVITY,
                {
                    "activityType": "exercise",
                    "name": "Morning walk",
                    "durationMinutes": 30,
                    "calories": 140,
                    "exerciseType": "cardio",
                    "timestamp": at,
                },
            ),
        ]
        for metric, candidate in submissions:
            result = await journal.submit(metric, candidate)
            if result.is_ok():
                saved += 1

    bedtime = now - timedelta(hours=8)
    extras = [
        {
            "activityType": "sleep",
            "name": "Night",
            "bedtime": bedtime.isoformat(),
            "wakeTime": now.isoformat(),
            "quality": "good",
            "timestamp": now.isoformat(),
        },
        {
            "activityType": "medication",
            "name": "Evening dose",
            "medicationName": "Metformin",
            "dosage": "500 mg",
            "taken": True,
            "timestamp": now.isoformat(),
        },
        {
            "activityType": "meal",
            "name": "Oatmeal breakfast",
            "mealType": "breakfast",
            "carbs": 45,
            "timestamp": now.isoformat(),
        },
    ]
    for candidate in extras:
        if (await journal.submit(MetricType.ACTIVITY, candidate)).is_ok():
            saved += 1
    return saved


async def demo_configuration() -> bool:
    """Load and show the configuration."""

    console.print(Panel("Configuration", style="blue"))

    try:
        validate_config()
        print_config_summary()
        return True

    except Exception as e:
        console.print(f"Configuration check failed: {e}", style="red")
        return False


async def demo_submissions(journal: HealthJournal, now: datetime) -> bool:
    """Save a week of readings and show that bad input is rejected."""

    console.print(Panel("Submitting Readings", style="blue"))

    saved = await seed_week(journal, now)
    console.print(f"Saved {saved} readings", style="green")

    rejected = await journal.submit(MetricType.PRESSURE, {"systolic": 80, "diastolic": 95})
    if rejected.is_ok():
        console.print("Invalid pressure reading was accepted", style="red")
        return False

    error = rejected.unwrap_err()
    if not isinstance(error, ReadingRejected):
        console.print(f"Unexpected error: {error}", style="red")
        return False
    for message in error.errors:
        console.print(f"  rejected: {message}", style="yellow")
    return saved == 31


async def demo_dashboard(journal: HealthJournal, now: datetime) -> bool:
    """Render the per-metric snapshot."""

    console.print(Panel("Dashboard", style="blue"))

    snapshots = await journal.snapshot(now)

    table = Table(title="Journal Snapshot")
    table.add_column("Metric", style="cyan")
    table.add_column("Category", style="magenta")
    table.add_column("7-day Average", style="green")
    table.add_column("Trend", style="yellow")
    table.add_column("Streak", style="white")
    table.add_column("Today", style="white")

    for snapshot in snapshots:
        classification = snapshot.classification
        category = "-"
        if classification is not None:
            category = classification.label
            if classification.estimated:
                category += " (est.)"

        average = snapshot.average
        if isinstance(average, PressureAverage):
            average_text = f"{average.systolic:.0f}/{average.diastolic:.0f}"
        elif average is not None:
            average_text = f"{average:.1f}"
        else:
            average_text = "-"

        trend_text = "-"
        if snapshot.trend is not None:
            trend_text = f"{snapshot.trend.direction} ({snapshot.trend.change_percentage:+.1f}%)"

        table.add_row(
            snapshot.metric.value,
            category,
            average_text,
            trend_text,
            f"{snapshot.streak} days",
            str(snapshot.today_count),
        )

    console.print(table)
    return all(s.streak == 7 for s in snapshots)


async def demo_activity(journal: HealthJournal, now: datetime) -> bool:
    """Show the weekly activity summary and a search."""

    console.print(Panel("Activity", style="blue"))

    summary = await journal.statistics.activity_summary(days=7, now=now)
    table = Table(title="Last 7 Days")
    table.add_column("Measure", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Activities", str(summary.total_activities))
    table.add_row("Exercise Minutes", f"{summary.exercise_minutes:.0f}")
    table.add_row("Calories Burned", f"{summary.calories_burned:.0f}")
    table.add_row("Meals Logged", str(summary.meals_logged))
    table.add_row("Medications Taken", str(summary.medications_taken))
    table.add_row("Average Sleep", f"{summary.average_sleep_hours:.1f} h")
    console.print(table)

    walks = await journal.activity.search("walk")
    console.print(f"Found {len(walks)} entries matching 'walk'", style="green")
    return summary.exercise_minutes == 210 and len(walks) == 7


async def demo_error_handling() -> bool:
    """Corrupted collections read as empty; failed writes come back as errors."""

    console.print(Panel("Error Handling", style="blue"))

    config = get_config().model_copy(update={"storage": StorageConfig(backend="memory")})

    corrupted = InMemoryKeyValueStore({"blood_sugar_readings": "{not json"})
    journal = HealthJournal(corrupted, config)
    readings = await journal.glucose.get_all()
    read_errors = journal.gateway.drain_read_errors()
    quarantined = "blood_sugar_readings.corrupt" in corrupted.keys()
    console.print(
        f"Corrupted collection read as {len(readings)} readings, "
        f"{len(read_errors)} diagnostic(s), quarantined: {quarantined}",
        style="yellow",
    )

    failing = HealthJournal(FailingStore(), config)
    result = await failing.submit(MetricType.GLUCOSE, {"value": 110})
    write_failed = result.is_err() and isinstance(result.unwrap_err(), StorageWriteError)
    if write_failed:
        console.print(f"Write failure surfaced: {result.unwrap_err()}", style="yellow")

    return not readings and len(read_errors) == 1 and quarantined and write_failed


async def run_demo(now: datetime | None = None) -> list[tuple[str, bool]]:
    """Run every step and return (step name, passed) pairs."""

    console.print(Panel("Health Journal - Walkthrough", style="bold blue"))

    now = now or local_now()
    journal = demo_journal()

    steps = [
        ("Configuration", demo_configuration),
        ("Submissions", lambda: demo_submissions(journal, now)),
        ("Dashboard", lambda: demo_dashboard(journal, now)),
        ("Activity", lambda: demo_activity(journal, now)),
        ("Error Handling", demo_error_handling),
    ]

    results = []

    for step_name, step in steps:
        console.print(f"\n{'=' * 60}")
        try:
            results.append((step_name, await step()))
        except Exception as e:
            console.print(f"{step_name} failed with exception: {e}", style="red")
            results.append((step_name, False))

    console.print(f"\n{'=' * 60}")
    summary_table = Table(title="Walkthrough Summary")
    summary_table.add_column("Step", style="cyan")
    summary_table.add_column("Result", style="white")
    for step_name, passed in results:
        summary_table.add_row(step_name, "PASSED" if passed else "FAILED")
    console.print(summary_table)

    return results


def main() -> None:
    configure_logging(get_config().logging)
    try:
        asyncio.run(run_demo())
    except KeyboardInterrupt:
        console.print("\nStopped by user", style="yellow")


if __name__ == "__main__":
    main()
