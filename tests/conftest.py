import pytest
import structlog

from repositories import reset_repositories


@pytest.fixture(autouse=True)
def reset_state():
    """Reset repositories and logging configuration around each test."""
    reset_repositories()
    yield
    structlog.reset_defaults()
