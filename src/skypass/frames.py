"""
skypass.frames — Coordinate Transform Engine
==============================================

Pure conversions along the chain

    ECI (inertial)  →  ECR (Earth-fixed)  →  geodetic
                                         →  topocentric SEZ → look angle

Frame Definitions
-----------------

**ECI (Earth-Centered Inertial)**
  - The propagator's output frame (TEME for SGP4).
  - X toward the (mean) equinox, Z along the pole.

**ECR (Earth-Centered Rotating / ECEF)**
  - X: Greenwich meridian, Z: geographic pole.
  - Rotates with the Earth at ω_⊕ ≈ 7.2921150 × 10⁻⁵ rad/s.
  - Reached from ECI by a single rotation about Z through GMST.  Polar
    motion, precession and nutation are not modelled; the resulting error
    is tens of metres, far below what look angles for radio contact need.
  - Full-state transforms include the transport theorem (ω × r).

**SEZ (South-East-Zenith, topocentric)**
  - Origin at the observer; S toward geographic south, E toward east,
    Z along the ellipsoid normal.

Every function returns a new value; nothing here keeps state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from .errors import TransformError
from .propagator import StateVector
from .timebase import Instant
from .utils import R_EARTH, E2_EARTH, OMEGA_EARTH, rotation_z, wrap_longitude

if TYPE_CHECKING:
    from .observer import ObserverLocation

# Inverse-geodetic convergence: latitude change between iterations [rad]
# (1e-12 rad ≈ 6 µm on the surface).
GEODETIC_TOL = 1e-12
GEODETIC_MAX_ITER = 20
# Geodetic coordinates are undefined near the geocentre.
MIN_GEODETIC_RADIUS_KM = 1.0

_OMEGA = np.array([0.0, 0.0, OMEGA_EARTH])


# ════════════════════════════════════════════════════════════════════════════
#  Value Types
# ════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class EarthFixedState:
    """Earth-fixed position [km] and velocity [km/s] at ``instant``."""
    position: NDArray
    velocity: NDArray
    instant: Instant


@dataclass(frozen=True)
class Geodetic:
    """WGS-84 geodetic coordinates."""
    latitude_deg: float
    longitude_deg: float
    altitude_km: float


@dataclass(frozen=True)
class LookAngle:
    """Observer-relative direction, distance and range-rate.

    azimuth_deg : clockwise from true north, [0, 360)
    elevation_deg : above the local horizontal plane, [-90, 90]
    range_km : slant range
    range_rate_km_s : d(range)/dt; negative while approaching
    """
    azimuth_deg: float
    elevation_deg: float
    range_km: float
    range_rate_km_s: float

    @property
    def approaching(self) -> bool:
        return self.range_rate_km_s < 0.0


# ════════════════════════════════════════════════════════════════════════════
#  ECI ↔ ECR
# ════════════════════════════════════════════════════════════════════════════
#
#  Position :  r_ecr = R_z(θ) · r_eci
#  Velocity :  v_ecr = R_z(θ) · (v_eci − ω×r_eci)
#
#  where θ = GMST and ω = [0, 0, ω_⊕]
# ════════════════════════════════════════════════════════════════════════════

def eci_to_ecr_matrix(instant: Instant) -> NDArray:
    """ECI→ECR 3×3 rotation (z-rotation by GMST)."""
    return rotation_z(instant.gmst)


def ecr_to_eci_matrix(instant: Instant) -> NDArray:
    """ECR→ECI 3×3 rotation matrix (transpose of ECI→ECR)."""
    return eci_to_ecr_matrix(instant).T


def inertial_to_earth_fixed(state: StateVector,
                            instant: Instant | None = None) -> EarthFixedState:
    """Rotate an inertial state into the Earth-fixed frame.

    Applies the transport theorem::

        v_ecr = R · (v_eci − ω × r_eci)

    Parameters
    ----------
    state : StateVector — inertial state
    instant : Instant or None — rotation epoch; defaults to ``state.instant``
    """
    instant = state.instant if instant is None else instant
    R = eci_to_ecr_matrix(instant)
    r = state.position
    v = state.velocity
    return EarthFixedState(
        position=R @ r,
        velocity=R @ (v - np.cross(_OMEGA, r)),
        instant=instant,
    )


def earth_fixed_to_inertial(fixed: EarthFixedState) -> StateVector:
    """Inverse of :func:`inertial_to_earth_fixed`.

    ::

        v_eci = Rᵀ · v_ecr + ω × r_eci
    """
    R_inv = ecr_to_eci_matrix(fixed.instant)
    r_eci = R_inv @ np.asarray(fixed.position, dtype=np.float64)
    v_eci = R_inv @ np.asarray(fixed.velocity, dtype=np.float64) + np.cross(_OMEGA, r_eci)
    return StateVector(r_eci, v_eci, fixed.instant)


# ════════════════════════════════════════════════════════════════════════════
#  ECR ↔ Geodetic
# ════════════════════════════════════════════════════════════════════════════

def ecef_to_lla(r_ecef: NDArray) -> NDArray:
    """ECEF [km] → geodetic latitude [rad], longitude [rad], altitude [km].

    Fixed-point iteration on the ellipsoid normal (Bowring form), started
    from the spherical-Earth latitude and run until the latitude changes
    by less than ``GEODETIC_TOL``.  Altitude uses the form that stays
    well-conditioned at the poles.

    Parameters
    ----------
    r_ecef : (3,) or (N,3) array — Earth-fixed position(s) [km]

    Returns
    -------
    lla : (3,) or (N,3) array — [lat, lon, alt]

    Raises
    ------
    TransformError
        if any point lies within ``MIN_GEODETIC_RADIUS_KM`` of the geocentre
        or the iteration does not converge.
    """
    r = np.asarray(r_ecef, dtype=np.float64)
    single = r.ndim == 1
    if single:
        r = r.reshape(1, 3)

    if np.any(np.linalg.norm(r, axis=1) <= MIN_GEODETIC_RADIUS_KM):
        raise TransformError(
            f"geodetic conversion needs radius > {MIN_GEODETIC_RADIUS_KM} km")

    x, y, z = r[:, 0], r[:, 1], r[:, 2]
    lon = np.arctan2(y, x)
    p = np.sqrt(x**2 + y**2)
    lat = np.arctan2(z, p * (1.0 - E2_EARTH))

    for _ in range(GEODETIC_MAX_ITER):
        sin_lat = np.sin(lat)
        N_phi = R_EARTH / np.sqrt(1.0 - E2_EARTH * sin_lat**2)
        lat_next = np.arctan2(z + E2_EARTH * N_phi * sin_lat, p)
        delta = np.max(np.abs(lat_next - lat))
        lat = lat_next
        if delta < GEODETIC_TOL:
            break
    else:
        raise TransformError(
            f"geodetic latitude did not converge (last step {delta:.3e} rad)")

    sin_lat = np.sin(lat)
    cos_lat = np.cos(lat)
    alt = p * cos_lat + z * sin_lat - R_EARTH * np.sqrt(1.0 - E2_EARTH * sin_lat**2)

    result = np.stack([lat, lon, alt], axis=-1)
    return result[0] if single else result


def lla_to_ecef(lat: float, lon: float, alt: float = 0.0) -> NDArray:
    """Geodetic LLA → ECEF [km].

    Parameters
    ----------
    lat, lon : float — geodetic latitude / longitude [rad]
    alt : float — altitude above WGS-84 ellipsoid [km]
    """
    sin_lat, cos_lat = np.sin(lat), np.cos(lat)
    sin_lon, cos_lon = np.sin(lon), np.cos(lon)
    N = R_EARTH / np.sqrt(1.0 - E2_EARTH * sin_lat**2)
    x = (N + alt) * cos_lat * cos_lon
    y = (N + alt) * cos_lat * sin_lon
    z = (N * (1.0 - E2_EARTH) + alt) * sin_lat
    return np.array([x, y, z])


def earth_fixed_to_geodetic(position: NDArray) -> Geodetic:
    """Earth-fixed position [km] → :class:`Geodetic` (degrees, km)."""
    lat, lon, alt = ecef_to_lla(position)
    return Geodetic(
        latitude_deg=float(np.rad2deg(lat)),
        longitude_deg=wrap_longitude(float(np.rad2deg(lon))),
        altitude_km=float(alt),
    )


def geodetic_to_earth_fixed(geodetic: Geodetic) -> NDArray:
    """:class:`Geodetic` → Earth-fixed position [km]; exact inverse."""
    return lla_to_ecef(np.deg2rad(geodetic.latitude_deg),
                       np.deg2rad(geodetic.longitude_deg),
                       geodetic.altitude_km)


# ════════════════════════════════════════════════════════════════════════════
#  ECR → SEZ (topocentric)
# ════════════════════════════════════════════════════════════════════════════

def sez_matrix(lat: float, lon: float) -> NDArray:
    """ECR→SEZ DCM at geodetic latitude/longitude [rad].

    Rows are the South, East and Zenith unit vectors expressed in ECR.
    """
    sin_lat, cos_lat = np.sin(lat), np.cos(lat)
    sin_lon, cos_lon = np.sin(lon), np.cos(lon)
    return np.array([
        [sin_lat * cos_lon, sin_lat * sin_lon, -cos_lat],
        [-sin_lon, cos_lon, 0.0],
        [cos_lat * cos_lon, cos_lat * sin_lon, sin_lat],
    ])


def to_topocentric(observer: ObserverLocation,
                   target_fixed: NDArray,
                   target_velocity_fixed: NDArray) -> LookAngle:
    """Look angle from ``observer`` to an Earth-fixed target.

    The observer is at rest in the Earth-fixed frame, so the target's
    Earth-fixed velocity is the relative velocity.

    Parameters
    ----------
    observer : ObserverLocation — carries the cached ECR position and SEZ basis
    target_fixed : (3,) — target ECR position [km]
    target_velocity_fixed : (3,) — target ECR velocity [km/s]

    Raises
    ------
    TransformError
        if the target coincides with the observer.
    """
    rho = np.asarray(target_fixed, dtype=np.float64) - observer.ecef
    rho_dot = np.asarray(target_velocity_fixed, dtype=np.float64)
    rng = float(np.linalg.norm(rho))
    if rng < 1e-9:
        raise TransformError("target coincides with observer")

    S, E, Z = observer.sez @ rho
    horizontal = np.hypot(S, E)
    el = np.arctan2(Z, horizontal)
    az = np.arctan2(E, -S) % (2.0 * np.pi) if horizontal > 1e-12 else 0.0

    return LookAngle(
        azimuth_deg=float(np.rad2deg(az)) % 360.0,
        elevation_deg=float(np.rad2deg(el)),
        range_km=rng,
        range_rate_km_s=float(np.dot(rho, rho_dot) / rng),
    )


def look_angle(observer: ObserverLocation, state: StateVector) -> LookAngle:
    """Inertial state → look angle from ``observer``."""
    fixed = inertial_to_earth_fixed(state)
    return to_topocentric(observer, fixed.position, fixed.velocity)


def subsatellite_point(state: StateVector) -> Geodetic:
    """Geodetic point directly beneath the satellite (with its altitude)."""
    return earth_fixed_to_geodetic(inertial_to_earth_fixed(state).position)
