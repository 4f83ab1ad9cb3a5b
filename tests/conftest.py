from __future__ import annotations

import pytest

from biovoice.config import settings as settings_module
from biovoice.core.trace import set_trace_id


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Ignore any config.json at the repository root and reset the cache."""
    monkeypatch.setattr(settings_module.Settings, "json_config_settings_source", staticmethod(lambda: {}))
    settings_module.get_settings.cache_clear()  # type: ignore[attr-defined]
    yield
    settings_module.get_settings.cache_clear()  # type: ignore[attr-defined]
    set_trace_id(None)
