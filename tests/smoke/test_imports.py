"""
maintenance-scheduler: import smoke test

File: tests/smoke/test_imports.py

Purpose
- Every public package imports cleanly and its module-level defaults build.
"""

from __future__ import annotations

import importlib

import pytest

PACKAGES = (
    "maintenance_scheduler",
    "maintenance_scheduler.config",
    "maintenance_scheduler.domain",
    "maintenance_scheduler.observability",
    "maintenance_scheduler.persistence",
    "maintenance_scheduler.planning",
    "maintenance_scheduler.service",
)


@pytest.mark.smoke
@pytest.mark.parametrize("name", PACKAGES)
def test_package_imports(name: str) -> None:
    module = importlib.import_module(name)
    for exported in getattr(module, "__all__", ()):
        assert hasattr(module, exported), f"{name}.{exported}"


@pytest.mark.smoke
def test_default_settings_are_built_at_import() -> None:
    from maintenance_scheduler.planning import DEFAULT_SETTINGS, SchedulingSettings

    assert isinstance(DEFAULT_SETTINGS, SchedulingSettings)
    assert DEFAULT_SETTINGS == SchedulingSettings()
