"""
skypass.config — Engine Settings
==================================

Thresholds and search parameters the host hands to the engine.  Each
settings object validates itself on construction, so a bad value is
reported once at setup rather than on every refresh tick.

Loading the configuration file is the host's job; :meth:`TrackerSettings.from_dict`
accepts the already-parsed mapping (e.g. a TOML document)::

    [prediction]
    min_elevation_deg = 10.0
    search_days = 2
    time_step_s = 30

    [radio]
    downlink_mhz = 145.800
    uplink_mhz = 145.990

    [alerts]
    lead_time_min = 15
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field, fields
from typing import Any, Mapping

from .errors import ConfigurationError, PredictionError


def _check_number(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")


def _check_elevation(name: str, value: float) -> None:
    _check_number(name, value)
    if not -90.0 <= value <= 90.0:
        raise ConfigurationError(f"{name} must lie in [-90, 90] deg, got {value}")


@dataclass(frozen=True)
class PredictionSettings:
    """Pass-search parameters.

    Parameters
    ----------
    min_elevation_deg : float — pass threshold; 0 = geometric horizon
    search_days : float — search horizon from the start instant [days]
    time_step_s : float — coarse-scan step [s].  Passes shorter than
        twice this step may be missed.
    max_passes : int or None — cap on passes returned per satellite
    warn_element_age_days : float — log a warning past this element age
    max_element_age_days : float — refuse to predict past this element age
    """
    min_elevation_deg: float = 0.0
    search_days: float = 2.0
    time_step_s: float = 60.0
    max_passes: int | None = None
    warn_element_age_days: float = 30.0
    max_element_age_days: float = 90.0

    def __post_init__(self):
        for name in ("search_days", "time_step_s",
                     "warn_element_age_days", "max_element_age_days"):
            _check_number(name, getattr(self, name))
        if self.max_passes is not None and (
                isinstance(self.max_passes, bool) or not isinstance(self.max_passes, int)):
            raise ConfigurationError(f"max_passes must be an integer, got {self.max_passes!r}")
        _check_elevation("min_elevation_deg", self.min_elevation_deg)
        if not (math.isfinite(self.search_days) and self.search_days > 0):
            raise PredictionError(f"search_days must be positive, got {self.search_days}")
        if not (math.isfinite(self.time_step_s) and self.time_step_s > 0):
            raise PredictionError(f"time_step_s must be positive, got {self.time_step_s}")
        if self.time_step_s > self.search_days * 86400.0:
            raise PredictionError("time_step_s exceeds the search horizon")
        if self.max_passes is not None and self.max_passes < 1:
            raise PredictionError(f"max_passes must be ≥ 1, got {self.max_passes}")
        if self.warn_element_age_days > self.max_element_age_days:
            raise ConfigurationError(
                "warn_element_age_days must not exceed max_element_age_days")


@dataclass(frozen=True)
class RadioSettings:
    """Radio link thresholds.

    Parameters
    ----------
    downlink_mhz, uplink_mhz : float — nominal frequencies [MHz]
    min_elevation_deg : float — communication-window threshold
    reference_range_km : float — range at which signal quality equals
        ``reference_quality``
    reference_quality : float — quality at the reference range, (0, 1)
    """
    downlink_mhz: float = 145.800
    uplink_mhz: float = 145.990
    min_elevation_deg: float = 10.0
    reference_range_km: float = 1000.0
    reference_quality: float = 0.5

    def __post_init__(self):
        _check_elevation("radio min_elevation_deg", self.min_elevation_deg)
        for name in ("downlink_mhz", "uplink_mhz", "reference_range_km"):
            value = getattr(self, name)
            _check_number(name, value)
            if not (math.isfinite(value) and value > 0):
                raise ConfigurationError(f"{name} must be positive, got {value}")
        _check_number("reference_quality", self.reference_quality)
        if not 0.0 < self.reference_quality < 1.0:
            raise ConfigurationError(
                f"reference_quality must lie in (0, 1), got {self.reference_quality}")


@dataclass(frozen=True)
class AlertSettings:
    """Upcoming-pass alerting."""
    enabled: bool = True
    lead_time_min: float = 15.0
    min_max_elevation_deg: float = 10.0

    def __post_init__(self):
        _check_number("lead_time_min", self.lead_time_min)
        if not (math.isfinite(self.lead_time_min) and self.lead_time_min > 0):
            raise ConfigurationError(f"lead_time_min must be positive, got {self.lead_time_min}")
        _check_elevation("min_max_elevation_deg", self.min_max_elevation_deg)


@dataclass(frozen=True)
class TrackerSettings:
    """Everything a :class:`~skypass.tracking.TrackingContext` needs."""
    prediction: PredictionSettings = field(default_factory=PredictionSettings)
    radio: RadioSettings = field(default_factory=RadioSettings)
    alerts: AlertSettings = field(default_factory=AlertSettings)
    refresh_interval_s: float = 300.0

    def __post_init__(self):
        _check_number("refresh_interval_s", self.refresh_interval_s)
        if not (math.isfinite(self.refresh_interval_s) and self.refresh_interval_s > 0):
            raise ConfigurationError(
                f"refresh_interval_s must be positive, got {self.refresh_interval_s}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TrackerSettings:
        """Build from a parsed configuration mapping.

        Unknown keys are rejected so that typos surface at startup.
        """
        sections = {
            "prediction": PredictionSettings,
            "radio": RadioSettings,
            "alerts": AlertSettings,
        }
        unknown = set(data) - set(sections) - {"refresh_interval_s"}
        if unknown:
            raise ConfigurationError(f"unknown configuration sections: {sorted(unknown)}")

        kwargs = {}
        for key, section_cls in sections.items():
            section = data.get(key, {})
            if not isinstance(section, Mapping):
                raise ConfigurationError(
                    f"[{key}] must be a table of settings, got {type(section).__name__}")
            allowed = {f.name for f in fields(section_cls)}
            bad = set(section) - allowed
            if bad:
                raise ConfigurationError(f"unknown keys in [{key}]: {sorted(bad)}")
            kwargs[key] = section_cls(**section)
        if "refresh_interval_s" in data:
            kwargs["refresh_interval_s"] = data["refresh_interval_s"]
        return cls(**kwargs)
