"""
Shared pytest fixtures and configuration for metals-spine tests.

This module provides:
- In-memory SQLite store with the curve schema applied
- Settings isolated from the developer's environment and .env file
- Deterministic clocks for run-date and timestamp tests
- A CSV builder for curve snapshots

Usage:
    def test_something(conn, settings, clock, curve_csv):
        text = curve_csv("2024-01-02")
        ...
"""

import logging
import os
import sys
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import structlog

# Ensure metals_spine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from metals_spine.core.adapters import SqliteConnection
from metals_spine.core.settings import Settings, reset_settings
from metals_spine.domains.metals_curve.schema import create_tables
from metals_spine.framework.logging import clear_context

HEADER = "As Of Date,Metal,Tenor Months,Price,10 Yr Real Yld,Dollar Index,Deficit GDP Flag"

# 09:00 in Chicago on 2024-01-02
RUN_INSTANT = datetime(2024, 1, 2, 15, 0, tzinfo=UTC)
RUN_DATE = "2024-01-02"


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark CLI and pipeline tests as integration, everything else as unit."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        markers = {mark.name for mark in item.iter_markers()}
        if markers.intersection({"unit", "integration", "slow"}):
            continue
        if test_path.parts[0] == "cli" or test_path.name == "test_pipelines.py":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Run each test from an empty directory with no METALS_* variables or cached settings."""
    root_handlers = logging.root.handlers[:]
    for key in list(os.environ):
        if key.startswith("METALS_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    reset_settings()
    clear_context()
    yield
    reset_settings()
    clear_context()
    structlog.reset_defaults()
    logging.root.handlers[:] = root_handlers


# =============================================================================
# Store
# =============================================================================


@pytest.fixture
def conn() -> Generator[SqliteConnection, None, None]:
    """In-memory SQLite connection with the curve tables created."""
    connection = SqliteConnection(":memory:")
    create_tables(connection)
    yield connection
    connection.close()


@pytest.fixture
def count_rows():
    """Factory: ``count_rows(conn, "metals_curve_latest")``."""

    def _count(connection, table: str) -> int:
        connection.execute(f"SELECT COUNT(*) AS n FROM {table}")
        return int(connection.fetchone()["n"])

    return _count


# =============================================================================
# Settings and clocks
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, database_url="sqlite:///:memory:")


class SteppingClock:
    """Returns ``start``, then advances one second on every call."""

    def __init__(self, start: datetime = RUN_INSTANT, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = now + self.step
        return now

    def jump_to(self, instant: datetime) -> None:
        self.current = instant


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


# =============================================================================
# CSV builder
# =============================================================================


def build_curve_csv(
    as_of_date: str = RUN_DATE,
    metals: tuple[str, ...] = ("Gold", "Silver"),
    tenors: tuple[int, ...] = (0, 3, 6),
    base_price: float = 2000.0,
    extra_lines: list[str] | None = None,
) -> str:
    lines = [HEADER]
    for m_index, metal in enumerate(metals):
        for tenor in tenors:
            price = base_price + m_index * 100 + tenor
            lines.append(f"{as_of_date},{metal},{tenor},{price:.2f},1.72,101.3,true")
    lines.extend(extra_lines or [])
    return "\n".join(lines) + "\n"


@pytest.fixture
def curve_csv():
    """Factory: ``curve_csv("2024-01-02", metals=("Gold",), tenors=(0, 3))``."""
    return build_curve_csv
