"""Shared test fixtures."""

from collections.abc import Iterator

import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Undo logging configuration (e.g. from CLI tests) bound to captured streams."""
    yield
    structlog.reset_defaults()
