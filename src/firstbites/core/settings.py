"""Engine settings and their YAML loader."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from firstbites.core.errors import CatalogError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineSettings:
    """Fixed thresholds used by the derived-state computations."""

    color_window_days: int = 7
    maintenance_warning_days: int = 5
    maintenance_overdue_days: int = 7
    award_write_attempts: int = 3
    award_retry_backoff_seconds: float = 0.05

    def validate(self) -> None:
        if self.maintenance_warning_days > self.maintenance_overdue_days:
            raise CatalogError(
                "maintenance_warning_days must not exceed maintenance_overdue_days",
                source="settings",
            )
        if self.award_write_attempts < 1:
            raise CatalogError("award_write_attempts must be at least 1", source="settings")
        if self.color_window_days < 0:
            raise CatalogError("color_window_days must not be negative", source="settings")


DEFAULT_SETTINGS = EngineSettings()


def settings_from_dict(data: dict[str, Any]) -> EngineSettings:
    known = {f.name for f in fields(EngineSettings)}
    overrides: dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("Ignoring unknown setting %r", key)
            continue
        try:
            default = getattr(DEFAULT_SETTINGS, key)
            overrides[key] = type(default)(value)
        except (TypeError, ValueError) as exc:
            raise CatalogError(f"Invalid value for setting '{key}': {value!r}", source="settings") from exc
    settings = replace(DEFAULT_SETTINGS, **overrides)
    settings.validate()
    return settings


def load_settings(path: str | Path | None = None) -> EngineSettings:
    """
    Load settings from a YAML mapping.

    Args:
        path: YAML file; None returns the defaults

    Returns:
        Validated EngineSettings

    Raises:
        CatalogError: If the file is not a mapping or a value is invalid
    """
    if path is None:
        return DEFAULT_SETTINGS
    file_path = Path(path)
    with file_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise CatalogError("Settings file must contain a mapping", source=str(file_path))
    return settings_from_dict(data)
