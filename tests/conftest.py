"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across unit tests.
"""

import os
from pathlib import Path
from typing import Any, Generator

import pytest
from dotenv import load_dotenv

from prep_engine.models.learning import Topic
from prep_engine.services.learning import InMemoryProgressStore, SessionOrchestrator
from tests.factories import make_topic

# Load .env file from project root BEFORE any fixtures run
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)


# ============================================================================
# Environment Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """
    Set up test environment variables before any tests run.

    Overrides values from .env files so tests run with predictable
    configuration.
    """
    original_env = os.environ.copy()

    test_env = {
        "POSTGRES_HOST": os.environ.get("POSTGRES_HOST", "localhost"),
        "POSTGRES_PORT": os.environ.get("POSTGRES_PORT", "5432"),
        "POSTGRES_USER": os.environ.get("POSTGRES_TEST_USER", "testuser"),
        "POSTGRES_PASSWORD": os.environ.get("POSTGRES_TEST_PASSWORD", "testpass"),
        "POSTGRES_DB": os.environ.get("POSTGRES_TEST_DB", "testdb"),
        "DEBUG": "true",
    }
    os.environ.update(test_env)

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# Sample Configuration Data
# ============================================================================


@pytest.fixture
def sample_yaml_config() -> dict[str, Any]:
    """
    Provide a sample YAML configuration for testing.

    This matches the structure of config/default.yaml.
    """
    return {
        "app": {"name": "Test Prep Engine"},
        "database": {
            "pool_size": 3,
            "max_overflow": 5,
            "pool_timeout": 10,
        },
    }


# ============================================================================
# Session Engine Fixtures
# ============================================================================


@pytest.fixture
def topics() -> list[Topic]:
    """Three topics with three MCQs each, seq 1..3."""
    return [make_topic(seq=seq) for seq in (1, 2, 3)]


@pytest.fixture
def store(topics) -> InMemoryProgressStore:
    """In-memory progress store seeded with the sample topics."""
    return InMemoryProgressStore(topics)


@pytest.fixture
def orchestrator(store) -> SessionOrchestrator:
    """Orchestrator over the seeded in-memory store."""
    return SessionOrchestrator(store)
