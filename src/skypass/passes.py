"""
skypass.passes — Pass Predictor
=================================

Turns the continuous elevation of one satellite above one observer into
discrete rise / culmination / set events.

Pipeline
--------
1. **Coarse scan**: sample elevation every ``time_step_s`` across the
   horizon.  A sample whose propagation fails is *no data*; it never
   creates a transition by itself.
2. **Edge completion**: if the satellite is already above the threshold
   at the first sample (or still above it at the last), the scan is
   extended backward (forward) one step at a time, for at most one
   orbital period, until the missing crossing is bracketed.
3. **Transition detection**: a sign change of ``elevation − threshold``
   between two consecutive valid samples brackets a rise or a set.
   Samples exactly at the threshold count as above it.
4. **Refinement**: bisection inside each bracket to ``ROOT_TOL_S``.
5. **Culmination**: golden-section search around the highest coarse
   sample, to ``MAX_TOL_S``.
6. **Assembly**: reject passes with non-positive duration, a culmination
   not strictly inside (rise, set), or a data gap between rise and set.

Assumption
----------
No pass is shorter than twice the coarse step.  A pass that starts and
ends between two consecutive samples is invisible to the scan; 60 s
steps are safe for anything above ~200 km.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Iterable, Protocol

from .config import PredictionSettings
from .elements import OrbitalElements
from .errors import (
    ConfigurationError, PredictionError, PropagationError, SkypassError,
    StaleElementsError, TransformError,
)
from .frames import LookAngle, look_angle
from .observer import ObserverLocation
from .propagator import PropagationModel, propagate
from .timebase import Instant

logger = logging.getLogger(__name__)

# Bisection stops once the bracket is narrower than this [s].
ROOT_TOL_S = 1e-3
# Golden-section stops once the bracket is narrower than this [s].
MAX_TOL_S = 1e-2
# A satellite is dropped when more than this share of samples has no data.
MAX_FAILED_FRACTION = 0.5

_INV_PHI = (math.sqrt(5.0) - 1.0) / 2.0


# ════════════════════════════════════════════════════════════════════════════
#  Data Structures
# ════════════════════════════════════════════════════════════════════════════

class CancelToken(Protocol):
    """Anything with ``is_set()``, e.g. :class:`threading.Event`."""

    def is_set(self) -> bool:
        ...


@dataclass(frozen=True)
class Pass:
    """One visibility interval of one satellite over one observer."""
    satellite: str
    observer: str
    rise_time: Instant
    rise_azimuth_deg: float
    max_elevation_time: Instant
    max_elevation_deg: float
    max_azimuth_deg: float
    set_time: Instant
    set_azimuth_deg: float
    min_range_km: float     # slant range at culmination

    @property
    def duration_s(self) -> float:
        return self.set_time - self.rise_time

    @property
    def duration_minutes(self) -> float:
        return self.duration_s / 60.0

    def contains(self, instant: Instant) -> bool:
        return self.rise_time <= instant <= self.set_time


@dataclass
class PredictionResult:
    """Passes for one satellite plus what went wrong on the way."""
    satellite: str
    passes: list[Pass] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)
    samples: int = 0
    failed_samples: int = 0
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        """True when the scan ran to completion on mostly valid data."""
        return (not self.cancelled and self.samples > 0
                and self.failed_samples <= MAX_FAILED_FRACTION * self.samples)


@dataclass
class _Sample:
    t: float                 # seconds from the search start
    look: LookAngle | None   # None = no data

    def margin(self, threshold: float) -> float:
        if self.look is None:
            return math.nan
        return self.look.elevation_deg - threshold


class _DroppedPass(Exception):
    """Internal: a candidate pass could not be completed."""


# ════════════════════════════════════════════════════════════════════════════
#  Sampling
# ════════════════════════════════════════════════════════════════════════════

def _make_sampler(model: PropagationModel, elements: OrbitalElements,
                  observer: ObserverLocation,
                  start: Instant) -> Callable[[float], LookAngle | None]:
    def sample(t: float) -> LookAngle | None:
        instant = start.shift(t)
        try:
            return look_angle(observer, propagate(model, elements, instant))
        except (PropagationError, TransformError) as ex:
            logger.debug("%s: no data at %s (%s)", elements.name, instant, ex)
            return None
    return sample


def _bisect_crossing(sample, lo: _Sample, hi: _Sample,
                     threshold: float) -> _Sample:
    """Refine a threshold crossing between two samples of opposite sign.

    Returns the sample on the *above-threshold* side of the final
    bracket, so the reported event always has elevation ≥ threshold.
    """
    rising = lo.margin(threshold) < 0.0
    below, above = (lo, hi) if rising else (hi, lo)
    max_iter = int(math.ceil(math.log2(max(abs(hi.t - lo.t), ROOT_TOL_S) / ROOT_TOL_S))) + 2
    for _ in range(max_iter):
        if abs(above.t - below.t) <= ROOT_TOL_S:
            break
        t_mid = 0.5 * (below.t + above.t)
        mid = _Sample(t_mid, sample(t_mid))
        m = mid.margin(threshold)
        if math.isnan(m):
            raise _DroppedPass(f"no data while refining crossing near t={t_mid:.1f}s")
        if m >= 0.0:
            above = mid
        else:
            below = mid
    else:
        raise PredictionError(
            f"threshold crossing did not converge within {max_iter} iterations")
    return above


def _golden_max(sample, lo: float, hi: float) -> _Sample:
    """Golden-section search for the elevation maximum on [lo, hi]."""
    a, b = lo, hi
    c = b - _INV_PHI * (b - a)
    d = a + _INV_PHI * (b - a)
    fc, fd = sample(c), sample(d)
    while abs(b - a) > MAX_TOL_S:
        if fc is None or fd is None:
            raise _DroppedPass("no data while locating culmination")
        if fc.elevation_deg > fd.elevation_deg:
            b, d, fd = d, c, fc
            c = b - _INV_PHI * (b - a)
            fc = sample(c)
        else:
            a, c, fc = c, d, fd
            d = a + _INV_PHI * (b - a)
            fd = sample(d)
    t = 0.5 * (a + b)
    look = sample(t)
    if look is None:
        raise _DroppedPass("no data at culmination")
    return _Sample(t, look)


# ════════════════════════════════════════════════════════════════════════════
#  Prediction
# ════════════════════════════════════════════════════════════════════════════

def _extend(sample, samples: list[_Sample], step: float, limit: float,
            threshold: float, backward: bool) -> None:
    """Add samples past one end of the scan until the satellite is below threshold."""
    edge = samples[0] if backward else samples[-1]
    t = edge.t
    direction = -1.0 if backward else 1.0
    travelled = 0.0
    while travelled < limit:
        t += direction * step
        travelled += step
        s = _Sample(t, sample(t))
        if backward:
            samples.insert(0, s)
        else:
            samples.append(s)
        if s.margin(threshold) < 0.0:
            return


def predict_passes(
    model: PropagationModel,
    elements: OrbitalElements,
    observer: ObserverLocation,
    start: Instant,
    settings: PredictionSettings,
    cancel: CancelToken | None = None,
) -> PredictionResult:
    """Predict the passes of one satellite over one observer.

    Parameters
    ----------
    model : PropagationModel — orbital model
    elements : OrbitalElements — the satellite
    observer : ObserverLocation — ground location
    start : Instant — search start
    settings : PredictionSettings — threshold, horizon, step
    cancel : object with ``is_set()`` or None — checked between coarse samples

    Returns
    -------
    PredictionResult — passes ordered by rise time.  Passes already in
    progress at ``start`` or still in progress at the horizon end are
    included, completed with their true crossings.

    Raises
    ------
    StaleElementsError
        if the element epoch is further from ``start`` than
        ``settings.max_element_age_days``.
    """
    name = elements.name
    result = PredictionResult(satellite=name)
    threshold = settings.min_elevation_deg
    step = settings.time_step_s
    horizon = settings.search_days * 86400.0

    # ── Element age ──
    age = abs(elements.age_days(start))
    if age > settings.max_element_age_days:
        raise StaleElementsError(
            f"{name}: elements are {age:.0f} days from epoch "
            f"(limit {settings.max_element_age_days:.0f}); refresh the TLE",
            satellite=name,
        )
    if age > settings.warn_element_age_days:
        msg = f"elements are {age:.0f} days from epoch; predictions may be inaccurate"
        logger.warning("%s: %s", name, msg)
        result.diagnostics.append(msg)

    sample = _make_sampler(model, elements, observer, start)

    # ── 1. Coarse scan ──
    n_steps = int(math.ceil(horizon / step))
    samples: list[_Sample] = []
    for k in range(n_steps + 1):
        if cancel is not None and cancel.is_set():
            logger.info("%s: prediction cancelled after %d samples", name, k)
            result.cancelled = True
            result.diagnostics.append("cancelled")
            return result
        t = min(k * step, horizon)
        samples.append(_Sample(t, sample(t)))

    result.samples = len(samples)
    result.failed_samples = sum(1 for s in samples if s.look is None)
    if result.failed_samples > MAX_FAILED_FRACTION * result.samples:
        msg = (f"propagation failed for {result.failed_samples} of "
               f"{result.samples} samples")
        logger.warning("%s: %s", name, msg)
        result.diagnostics.append(msg)
        return result
    if result.failed_samples:
        result.diagnostics.append(
            f"{result.failed_samples} of {result.samples} samples had no data")

    # ── 2. Edge completion ──
    period_s = elements.period_minutes * 60.0
    valid = [s for s in samples if s.look is not None]
    if valid[0].margin(threshold) >= 0.0 and valid[0] is samples[0]:
        _extend(sample, samples, step, period_s, threshold, backward=True)
    if valid[-1].margin(threshold) >= 0.0 and valid[-1] is samples[-1]:
        _extend(sample, samples, step, period_s, threshold, backward=False)

    # ── 3. Transition detection ──
    candidates = []          # (rise_idx, set_idx)
    open_idx = None
    broken = False
    for k in range(len(samples) - 1):
        m0 = samples[k].margin(threshold)
        m1 = samples[k + 1].margin(threshold)
        if math.isnan(m0) or math.isnan(m1):
            if open_idx is not None:
                broken = True
            continue
        if m0 < 0.0 <= m1:
            if open_idx is not None:
                result.diagnostics.append(
                    f"dropped pass near {start.shift(samples[open_idx].t)}: data gap")
            open_idx = k
            broken = False
        elif m0 >= 0.0 > m1:
            if open_idx is None:
                continue
            if broken:
                result.diagnostics.append(
                    f"dropped pass near {start.shift(samples[open_idx].t)}: data gap")
            else:
                candidates.append((open_idx, k))
            open_idx = None
            broken = False

    if open_idx is not None:
        result.diagnostics.append(
            f"pass near {start.shift(samples[open_idx].t)} did not set within one "
            "orbital period of the horizon")
    elif not candidates and all(s.margin(threshold) >= 0.0
                                for s in samples if s.look is not None):
        result.diagnostics.append("satellite stays above the threshold; no rise or set")

    # ── 4-6. Refine and assemble ──
    for rise_idx, set_idx in candidates:
        try:
            p = _assemble(sample, samples, rise_idx, set_idx, step, threshold,
                          name, observer.name, start)
        except _DroppedPass as ex:
            logger.debug("%s: dropped pass: %s", name, ex)
            result.diagnostics.append(f"dropped pass: {ex}")
            continue
        result.passes.append(p)
        if settings.max_passes is not None and len(result.passes) >= settings.max_passes:
            break

    result.passes.sort(key=lambda p: p.rise_time)
    logger.info("%s: %d passes over %s", name, len(result.passes), observer.name)
    return result


def _assemble(sample, samples: list[_Sample], rise_idx: int, set_idx: int,
              step: float, threshold: float, satellite: str,
              observer_name: str, start: Instant) -> Pass:
    rise = _bisect_crossing(sample, samples[rise_idx], samples[rise_idx + 1], threshold)
    set_ = _bisect_crossing(sample, samples[set_idx], samples[set_idx + 1], threshold)

    interior = samples[rise_idx + 1:set_idx + 1]
    peak = max(interior, key=lambda s: s.look.elevation_deg)
    lo = max(peak.t - step, rise.t)
    hi = min(peak.t + step, set_.t)
    culm = _golden_max(sample, lo, hi)
    if culm.look.elevation_deg < peak.look.elevation_deg:
        culm = peak

    if not rise.t < culm.t < set_.t:
        raise _DroppedPass(
            f"culmination at t={culm.t:.2f}s outside ({rise.t:.2f}, {set_.t:.2f})")
    if set_.t - rise.t <= 0.0:
        raise _DroppedPass("non-positive duration")
    if culm.look.elevation_deg < max(rise.look.elevation_deg, set_.look.elevation_deg):
        raise _DroppedPass("culmination below an endpoint")

    return Pass(
        satellite=satellite,
        observer=observer_name,
        rise_time=start.shift(rise.t),
        rise_azimuth_deg=rise.look.azimuth_deg,
        max_elevation_time=start.shift(culm.t),
        max_elevation_deg=culm.look.elevation_deg,
        max_azimuth_deg=culm.look.azimuth_deg,
        set_time=start.shift(set_.t),
        set_azimuth_deg=set_.look.azimuth_deg,
        min_range_km=culm.look.range_km,
    )


def predict_all(
    model: PropagationModel,
    satellites: Iterable[OrbitalElements],
    observer: ObserverLocation,
    start: Instant,
    settings: PredictionSettings,
    cancel: CancelToken | None = None,
) -> dict[str, PredictionResult]:
    """Run :func:`predict_passes` for every satellite, isolating failures.

    A satellite that fails outright gets an empty result carrying the
    error text; the others are unaffected.  Once ``cancel`` is set the
    remaining satellites are reported as cancelled.

    Raises
    ------
    ConfigurationError
        if two satellites share a name.
    """
    satellites = list(satellites)
    names = [elements.name for elements in satellites]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigurationError(f"duplicate satellite names: {duplicates}")

    results = {}
    for elements in satellites:
        if cancel is not None and cancel.is_set():
            results[elements.name] = PredictionResult(
                satellite=elements.name, cancelled=True, diagnostics=["cancelled"])
            continue
        try:
            results[elements.name] = predict_passes(
                model, elements, observer, start, settings, cancel)
        except SkypassError as ex:
            logger.warning("%s: prediction failed: %s", elements.name, ex)
            results[elements.name] = PredictionResult(
                satellite=elements.name, diagnostics=[str(ex)])
    return results
