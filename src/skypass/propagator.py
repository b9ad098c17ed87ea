"""
skypass.propagator — State Vector Propagation
===============================================

The engine never integrates orbits itself.  A *propagation model* is any
object with a ``propagate(elements, instant) -> StateVector`` method that
raises :class:`~skypass.errors.PropagationError` on failure.  Two are
provided:

- :class:`SGP4Model` — the standard SGP4/SDP4 model from the ``sgp4``
  package (WGS-72 constants, output in the TEME inertial frame).
- :class:`KeplerJ2Model` — mean Keplerian elements with Brouwer J2 secular
  rates on RAAN and argument of perigee plus mean-motion drag from the
  TLE's ṅ/2 term.  Not SGP4; ~km accuracy over hours, useful as a cheap
  or synthetic model.

:func:`propagate` is the single entry point the rest of the engine uses:
it runs the model and rejects non-finite output.

Reference
---------
Vallado, D.A. (2013). *Fundamentals of Astrodynamics*, 4th ed., §9.4.
Hoots, F.R. & Roehrich, R.L. (1980). SPACETRACK Report No. 3.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Protocol

import numpy as np
from numpy.typing import NDArray
from sgp4.api import Satrec, WGS72

from .elements import OrbitalElements
from .errors import (
    PropagationError, DegenerateOrbitError, NumericalDivergenceError,
)
from .orbits import keplerian_to_eci, solve_kepler, true_anomaly
from .timebase import Instant
from .utils import MU_EARTH, R_EARTH, J2, DAILY_SECONDS, all_finite

logger = logging.getLogger(__name__)

# sgp4's epoch argument counts days from 1949 December 31 00:00 UT.
_SGP4_EPOCH_JD = 2_433_281.5
_XPDOTP = 1440.0 / (2.0 * np.pi)
_R_EARTH_WGS72 = 6378.135  # [km]

SGP4_ERRORS = {
    1: "mean eccentricity out of range or semi-major axis below 0.95 earth radii",
    2: "mean motion less than zero",
    3: "perturbed eccentricity out of range",
    4: "semi-latus rectum less than zero",
    5: "epoch elements are sub-orbital",
    6: "satellite has decayed",
}


# ════════════════════════════════════════════════════════════════════════════
#  Data Structures
# ════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class StateVector:
    """Inertial position [km] and velocity [km/s] valid at ``instant``."""
    position: NDArray
    velocity: NDArray
    instant: Instant

    def __post_init__(self):
        for name in ("position", "velocity"):
            arr = np.array(getattr(self, name), dtype=np.float64)
            if arr.shape != (3,):
                raise ValueError(f"{name} must have shape (3,), got {arr.shape}")
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    @property
    def radius(self) -> float:
        return float(np.linalg.norm(self.position))

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.velocity))


class PropagationModel(Protocol):
    """Narrow interface to an orbital model."""

    def propagate(self, elements: OrbitalElements,
                  instant: Instant) -> StateVector:
        ...


# ════════════════════════════════════════════════════════════════════════════
#  SGP4
# ════════════════════════════════════════════════════════════════════════════

def _build_satrec(elements: OrbitalElements) -> Satrec:
    """Initialise the sgp4 record for one element set."""
    if elements.line1 and elements.line2:
        return Satrec.twoline2rv(elements.line1, elements.line2, WGS72)

    sat = Satrec()
    sat.sgp4init(
        WGS72, 'i', elements.norad_id,
        elements.epoch.jd - _SGP4_EPOCH_JD,
        elements.bstar,
        elements.ndot / (_XPDOTP * 1440.0),
        elements.nddot / (_XPDOTP * 1440.0 ** 2),
        elements.eccentricity,
        np.deg2rad(elements.arg_perigee_deg),
        np.deg2rad(elements.inclination_deg),
        np.deg2rad(elements.mean_anomaly_deg),
        elements.mean_motion / _XPDOTP,
        np.deg2rad(elements.raan_deg),
    )
    return sat


class SGP4Model:
    """SGP4/SDP4 via the ``sgp4`` package.

    Parameters
    ----------
    min_perigee_km : float — propagated mean perigee altitude below which
        the orbit is reported as degenerate (default 0 km, i.e. inside the
        Earth).

    Each model owns its sgp4 records.  A record holds the mean elements of
    its most recent call, so the call and the read-back of ``am`` / ``em``
    run under the model's lock; one model may be shared between threads.
    """
    name = "sgp4"
    max_records = 512

    def __init__(self, min_perigee_km: float = 0.0):
        self.min_perigee_km = min_perigee_km
        self._records: dict[OrbitalElements, Satrec] = {}
        self._lock = threading.Lock()

    def _record(self, elements: OrbitalElements) -> Satrec:
        sat = self._records.get(elements)
        if sat is None:
            if len(self._records) >= self.max_records:
                self._records.clear()
            sat = self._records[elements] = _build_satrec(elements)
        return sat

    def propagate(self, elements: OrbitalElements,
                  instant: Instant) -> StateVector:
        jd, fr = instant.split()
        with self._lock:
            sat = self._record(elements)
            code, r, v = sat.sgp4(jd, fr)
            # mean elements of this call [earth radii]
            am, em = sat.am, sat.em
        if code != 0:
            raise DegenerateOrbitError(
                f"{elements.name}: {SGP4_ERRORS.get(code, f'sgp4 error {code}')}",
                satellite=elements.name, code=code,
            )

        perigee_km = (am * (1.0 - em) - 1.0) * _R_EARTH_WGS72
        if perigee_km < self.min_perigee_km:
            raise DegenerateOrbitError(
                f"{elements.name}: propagated perigee {perigee_km:.1f} km "
                f"below {self.min_perigee_km:.1f} km",
                satellite=elements.name,
            )
        return StateVector(np.asarray(r), np.asarray(v), instant)


# ════════════════════════════════════════════════════════════════════════════
#  Mean Keplerian + J2
# ════════════════════════════════════════════════════════════════════════════

class KeplerJ2Model:
    """Mean-element Kepler propagation with J2 secular rates and drag.

    Parameters
    ----------
    min_perigee_km : float — perigee altitude threshold for degeneracy
    """
    name = "kepler-j2"

    def __init__(self, min_perigee_km: float = 0.0):
        self.min_perigee_km = min_perigee_km

    def propagate(self, elements: OrbitalElements,
                  instant: Instant) -> StateVector:
        dt = (instant.jd - elements.epoch.jd) * DAILY_SECONDS

        e = elements.eccentricity
        inc = np.deg2rad(elements.inclination_deg)
        n = elements.mean_motion_rad_s
        a = elements.semi_major_axis_km
        p = a * (1.0 - e**2)

        # J2 secular rates: nodal regression, apsidal advance below 63.4°
        cos_i = np.cos(inc)
        sin_i = np.sin(inc)
        k = 1.5 * n * J2 * (R_EARTH / p) ** 2
        raan_dot = -k * cos_i
        argp_dot = k * (2.0 - 2.5 * sin_i**2)

        # TLE carries ṅ/2 in rev/day²
        n_dot = 2.0 * elements.ndot * 2.0 * np.pi / DAILY_SECONDS**2
        n_at_t = n + n_dot * dt
        if n_at_t <= 0.0:
            raise DegenerateOrbitError(
                f"{elements.name}: mean motion decayed to {n_at_t:.3e} rad/s",
                satellite=elements.name,
            )
        a_at_t = (MU_EARTH / n_at_t**2) ** (1.0 / 3.0)

        perigee_km = a_at_t * (1.0 - e) - R_EARTH
        if perigee_km < self.min_perigee_km:
            raise DegenerateOrbitError(
                f"{elements.name}: propagated perigee {perigee_km:.1f} km "
                f"below {self.min_perigee_km:.1f} km",
                satellite=elements.name,
            )

        raan_at_t = np.deg2rad(elements.raan_deg) + raan_dot * dt
        argp_at_t = np.deg2rad(elements.arg_perigee_deg) + argp_dot * dt
        M_at_t = (np.deg2rad(elements.mean_anomaly_deg) + n * dt
                  + 0.5 * n_dot * dt**2) % (2.0 * np.pi)

        nu = true_anomaly(solve_kepler(M_at_t, e), e)
        r, v = keplerian_to_eci(a_at_t, e, inc, raan_at_t, argp_at_t, nu)
        return StateVector(r, v, instant)


# ════════════════════════════════════════════════════════════════════════════
#  Entry Points
# ════════════════════════════════════════════════════════════════════════════

def propagate(model: PropagationModel, elements: OrbitalElements,
              instant: Instant) -> StateVector:
    """Propagate ``elements`` to ``instant`` with ``model``.

    Raises
    ------
    DegenerateOrbitError
        the model detected a non-physical orbit.
    NumericalDivergenceError
        the model returned NaN or infinite values.
    """
    state = model.propagate(elements, instant)
    if not all_finite(state.position, state.velocity):
        raise NumericalDivergenceError(
            f"{elements.name}: non-finite state at {instant}",
            satellite=elements.name,
        )
    return state


def propagate_batch(
    model: PropagationModel,
    satellites: Iterable[OrbitalElements],
    instant: Instant,
) -> tuple[dict[str, StateVector], dict[str, PropagationError]]:
    """Propagate many satellites to one instant, isolating failures.

    Returns
    -------
    states : dict name → StateVector for satellites that propagated
    errors : dict name → PropagationError for those that did not
    """
    states = {}
    errors = {}
    for elements in satellites:
        try:
            states[elements.name] = propagate(model, elements, instant)
        except PropagationError as ex:
            logger.debug("no state for %s at %s: %s", elements.name, instant, ex)
            errors[elements.name] = ex
    return states, errors
