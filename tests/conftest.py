"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings  # noqa: E402
from hypeos.core.models import ReviewItem, StreakData, Task  # noqa: E402

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite and in-memory stores)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """Fixed clock shared by time-dependent tests."""
    return NOW


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None, database_url="sqlite://", log_level="DEBUG")


@pytest.fixture
def no_streak():
    return StreakData(current_streak=0, longest_streak=0)


@pytest.fixture
def sales_task():
    """Provide a sample sales task for testing."""
    return Task(id=1, title="Cold email", category="sales", base_points=100, skill="cold-email")


@pytest.fixture
def make_item():
    """Factory for review items reviewed `days_ago` days before NOW."""

    def _make(
        task_id: int = 1,
        category: str = "sales",
        skill: str = "cold-email",
        days_ago: float = 0,
        **fields,
    ) -> ReviewItem:
        return ReviewItem(
            task_id=task_id,
            category=category,
            skill=skill,
            last_review=NOW - timedelta(days=days_ago),
            created_at=NOW - timedelta(days=days_ago),
            **fields,
        )

    return _make
