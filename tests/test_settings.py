"""Tests for engine settings loading."""

from pathlib import Path

import pytest

from firstbites.core.errors import CatalogError
from firstbites.core.settings import DEFAULT_SETTINGS, load_settings, settings_from_dict


def test_defaults() -> None:
    assert load_settings() is DEFAULT_SETTINGS
    assert DEFAULT_SETTINGS.maintenance_warning_days == 5
    assert DEFAULT_SETTINGS.maintenance_overdue_days == 7
    assert DEFAULT_SETTINGS.color_window_days == 7


def test_load_settings_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("maintenance_warning_days: 3\naward_write_attempts: '5'\nmystery: 1\n", encoding="utf-8")
    settings = load_settings(path)
    assert settings.maintenance_warning_days == 3
    assert settings.award_write_attempts == 5
    assert settings.maintenance_overdue_days == 7


def test_invalid_thresholds_raise() -> None:
    with pytest.raises(CatalogError):
        settings_from_dict({"maintenance_warning_days": 9})
    with pytest.raises(CatalogError):
        settings_from_dict({"award_write_attempts": "many"})


def test_non_mapping_settings_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(CatalogError):
        load_settings(path)
