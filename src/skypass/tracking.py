"""
skypass.tracking — Tracking Context
=====================================

Everything a host loop needs between ticks, held in one explicit object
instead of process-wide state: the observer, the tracked element sets,
the propagation model, the settings and the cached pass predictions.

Typical host loop::

    ctx = TrackingContext(observer, elements, settings=settings)
    while running:
        now = Instant.now()
        ctx.refresh_passes(now)            # re-predicts only when due
        for status in ctx.snapshot(now):   # live positions + link state
            render(status)
        for alert in ctx.alerts(now):
            notify(alert)

The context itself is not thread-safe; a host that predicts on a worker
should call :func:`~skypass.passes.predict_all` there and hand the results
to :meth:`TrackingContext.install_predictions` on the loop thread.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from .config import TrackerSettings
from .elements import OrbitalElements
from .errors import ConfigurationError, PropagationError, TransformError
from .frames import (
    Geodetic, LookAngle, inertial_to_earth_fixed, earth_fixed_to_geodetic,
    to_topocentric,
)
from .observer import ObserverLocation
from .passes import CancelToken, Pass, PredictionResult, predict_all
from .propagator import PropagationModel, SGP4Model, propagate
from .radio import CommunicationWindow, evaluate_link
from .timebase import Instant

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════════════
#  Data Structures
# ════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SatelliteStatus:
    """Live state of one satellite, or an explicit *no data* marker."""
    satellite: str
    instant: Instant
    available: bool
    position: Geodetic | None = None
    speed_km_s: float | None = None
    look: LookAngle | None = None
    link: CommunicationWindow | None = None
    error: str = ""

    @property
    def is_visible(self) -> bool:
        return self.look is not None and self.look.elevation_deg > 0.0

    @property
    def label(self) -> str:
        if not self.available:
            return "no data"
        return "visible" if self.is_visible else "below horizon"


@dataclass(frozen=True)
class PassAlert:
    """An upcoming pass worth announcing."""
    satellite: str
    pass_: Pass
    minutes_until: float


# ════════════════════════════════════════════════════════════════════════════
#  Context
# ════════════════════════════════════════════════════════════════════════════

class TrackingContext:
    """Per-host tracking state.

    Parameters
    ----------
    observer : ObserverLocation
    satellites : iterable of OrbitalElements — names must be unique
    model : PropagationModel or None — defaults to :class:`SGP4Model`
    settings : TrackerSettings or None — defaults to ``TrackerSettings()``
    """

    def __init__(self, observer: ObserverLocation,
                 satellites: Iterable[OrbitalElements],
                 model: PropagationModel | None = None,
                 settings: TrackerSettings | None = None):
        self.observer = observer
        self.model = model if model is not None else SGP4Model()
        self.settings = settings if settings is not None else TrackerSettings()
        self.satellites: dict[str, OrbitalElements] = {}
        self._results: dict[str, PredictionResult] = {}
        self._predicted_at: Instant | None = None
        self.update_elements(satellites)

    # ── Configuration changes ──

    def update_elements(self, satellites: Iterable[OrbitalElements]) -> None:
        """Replace the tracked element sets; invalidates cached passes."""
        tracked = {}
        for elements in satellites:
            if elements.name in tracked:
                raise ConfigurationError(f"duplicate satellite name {elements.name!r}")
            tracked[elements.name] = elements
        self.satellites = tracked
        self.invalidate()

    def update_settings(self, settings: TrackerSettings) -> None:
        """Swap settings; invalidates cached passes."""
        self.settings = settings
        self.invalidate()

    def invalidate(self) -> None:
        self._results = {}
        self._predicted_at = None

    # ── Live state ──

    def status(self, name: str, instant: Instant) -> SatelliteStatus:
        """Current position, look angle and link state of one satellite."""
        elements = self.satellites[name]
        try:
            state = propagate(self.model, elements, instant)
            fixed = inertial_to_earth_fixed(state)
            look = to_topocentric(self.observer, fixed.position, fixed.velocity)
            position = earth_fixed_to_geodetic(fixed.position)
        except (PropagationError, TransformError) as ex:
            logger.debug("%s: no data at %s: %s", name, instant, ex)
            return SatelliteStatus(name, instant, available=False, error=str(ex))

        return SatelliteStatus(
            satellite=name,
            instant=instant,
            available=True,
            position=position,
            speed_km_s=state.speed,
            look=look,
            link=evaluate_link(look, self.settings.radio),
        )

    def snapshot(self, instant: Instant) -> list[SatelliteStatus]:
        return [self.status(name, instant) for name in self.satellites]

    # ── Pass predictions ──

    def predict(self, instant: Instant,
                cancel: CancelToken | None = None) -> dict[str, PredictionResult]:
        """Run a prediction for every satellite from ``instant`` (no caching)."""
        return predict_all(self.model, self.satellites.values(), self.observer,
                           instant, self.settings.prediction, cancel)

    def install_predictions(self, results: dict[str, PredictionResult],
                            predicted_at: Instant) -> None:
        """Adopt results computed elsewhere (e.g. on a worker thread)."""
        if any(r.cancelled for r in results.values()):
            logger.info("ignoring cancelled prediction run from %s", predicted_at)
            return
        self._results = dict(results)
        self._predicted_at = predicted_at

    def needs_refresh(self, instant: Instant) -> bool:
        """Whether the cached passes are missing or stale.

        Stale means any of: the refresh interval has elapsed, a cached
        pass has set, or half the search horizon has gone by.  Settings
        and element updates drop the cache outright.
        """
        if self._predicted_at is None:
            return True
        elapsed = instant - self._predicted_at
        horizon = self.settings.prediction.search_days * 86400.0
        if elapsed >= min(self.settings.refresh_interval_s, 0.5 * horizon):
            return True
        return any(p.set_time < instant
                   for r in self._results.values() for p in r.passes)

    def refresh_passes(self, instant: Instant, cancel: CancelToken | None = None,
                       force: bool = False) -> bool:
        """Re-predict if due (or ``force``).  Returns True when the cache changed."""
        if not force and not self.needs_refresh(instant):
            return False
        results = self.predict(instant, cancel)
        if any(r.cancelled for r in results.values()):
            logger.info("prediction run from %s cancelled; keeping previous passes", instant)
            return False
        self.install_predictions(results, instant)
        logger.info("refreshed passes for %d satellites from %s",
                    len(results), instant)
        return True

    def passes(self, name: str) -> list[Pass]:
        result = self._results.get(name)
        return list(result.passes) if result is not None else []

    def diagnostics(self, name: str) -> list[str]:
        result = self._results.get(name)
        return list(result.diagnostics) if result is not None else []

    def next_pass(self, name: str, instant: Instant) -> Pass | None:
        """The pass in progress at ``instant``, else the next one to rise."""
        for p in self.passes(name):
            if p.set_time > instant:
                return p
        return None

    def alerts(self, instant: Instant) -> list[PassAlert]:
        """Upcoming passes within the alert lead time, soonest first."""
        cfg = self.settings.alerts
        if not cfg.enabled:
            return []
        found = []
        for name in self.satellites:
            upcoming = next((p for p in self.passes(name) if p.rise_time > instant), None)
            if upcoming is None or upcoming.max_elevation_deg < cfg.min_max_elevation_deg:
                continue
            minutes = (upcoming.rise_time - instant) / 60.0
            if 0.0 < minutes <= cfg.lead_time_min:
                found.append(PassAlert(name, upcoming, minutes))
        found.sort(key=lambda a: a.minutes_until)
        return found
