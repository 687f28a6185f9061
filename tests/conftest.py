"""Shared pytest fixtures for Marginalia tests."""

from __future__ import annotations

import pytest

from marginalia.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Drop the cached Settings around every test so env changes apply."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
