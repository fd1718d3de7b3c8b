from __future__ import annotations

import pytest

_ENV_KEYS = (
    "TABSNIFF_SAMPLE",
    "TABSNIFF_DELIMITER",
    "TABSNIFF_TIMEOUT",
    "TABSNIFF_PREFER_DMY",
    "TABSNIFF_PROGRESSBAR",
    "TABSNIFF_USER_AGENT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep the caller's TABSNIFF_* settings out of every test."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
