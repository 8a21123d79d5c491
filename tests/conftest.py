from __future__ import annotations

import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog():
    """CLI commands configure structlog against the runner's streams; undo that."""
    yield
    structlog.reset_defaults()
