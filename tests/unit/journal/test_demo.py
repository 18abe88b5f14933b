"""Smoke test for the walkthrough script."""

import io
from collections.abc import Iterator

import pytest
from rich.console import Console

import journal_demo
from journal.config import get_config
from journal.domain.models import local_now


@pytest.fixture(autouse=True)
def quiet_console(monkeypatch: pytest.MonkeyPatch) -> Iterator[io.StringIO]:
    output = io.StringIO()
    monkeypatch.setattr(journal_demo, "console", Console(file=output))
    monkeypatch.setenv("ENVIRONMENT", "development")
    get_config.cache_clear()
    yield output
    get_config.cache_clear()


async def test_every_step_passes(quiet_console: io.StringIO) -> None:
    noon = local_now().replace(hour=12, minute=0, second=0, microsecond=0)

    results = await journal_demo.run_demo(now=noon)

    assert [name for name, _ in results] == [
        "Configuration",
        "Submissions",
        "Dashboard",
        "Activity",
        "Error Handling",
    ]
    assert all(passed for _, passed in results), quiet_console.getvalue()


def test_main_applies_logging_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    applied = []
    ran = []

    async def fake_run_demo() -> list[tuple[str, bool]]:
        ran.append(True)
        return []

    monkeypatch.setattr(journal_demo, "configure_logging", applied.append)
    monkeypatch.setattr(journal_demo, "run_demo", fake_run_demo)
    monkeypatch.setenv("LOG_LEVEL", "ERROR")

    journal_demo.main()

    assert [c.level for c in applied] == ["ERROR"]
    assert ran == [True]
