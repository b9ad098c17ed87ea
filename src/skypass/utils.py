"""
skypass.utils — Foundational Utilities
========================================

Physical constants, vector helpers and time utilities shared by every
module.  Distances are kilometres, velocities km/s, angles radians unless
a name says otherwise.  All functions are pure NumPy.
"""

import numpy as np
from numpy.typing import NDArray

# ── Physical Constants ──────────────────────────────────────────────────────
MU_EARTH = 398_600.4418         # Earth gravitational parameter  [km³/s²]
R_EARTH = 6378.137              # WGS-84 semi-major axis          [km]
F_EARTH = 1.0 / 298.257223563   # WGS-84 flattening
E2_EARTH = 2 * F_EARTH - F_EARTH ** 2  # First eccentricity squared
OMEGA_EARTH = 7.2921150e-5      # Earth rotation rate              [rad/s]
J2 = 1.08263e-3                 # J2 zonal harmonic
SPEED_OF_LIGHT = 299_792.458    # [km/s]

DAILY_SECONDS = 86400.0
JD_J2000 = 2_451_545.0
JD_UNIX_EPOCH = 2_440_587.5

# ── Vector Helpers ──────────────────────────────────────────────────────────

def rotation_z(angle: float) -> NDArray:
    """Passive rotation about +Z by ``angle`` [rad].

    Maps vectors expressed in a frame into a frame rotated by ``angle``
    about the shared polar axis (the ECI → Earth-fixed sense).
    """
    c, s = np.cos(angle), np.sin(angle)
    return np.array([
        [ c,  s, 0.0],
        [-s,  c, 0.0],
        [0.0, 0.0, 1.0],
    ])


def all_finite(*arrays: NDArray) -> bool:
    """True when every element of every array is finite."""
    return all(bool(np.all(np.isfinite(a))) for a in arrays)


# ── Time Utilities ──────────────────────────────────────────────────────────

def julian_date(year: int, month: int, day: int,
                hour: float = 0.0, minute: float = 0.0,
                second: float = 0.0) -> float:
    """Compute Julian Date from calendar date (UTC)."""
    if month <= 2:
        year -= 1
        month += 12
    A = int(year / 100)
    B = 2 - A + int(A / 4)
    JD = (int(365.25 * (year + 4716))
          + int(30.6001 * (month + 1))
          + day + B - 1524.5)
    JD += (hour + minute / 60.0 + second / 3600.0) / 24.0
    return JD


def gmst(jd: float) -> float:
    """Greenwich Mean Sidereal Time [rad] from Julian Date.

    Uses the IAU 1982 model (accurate to ~0.1 arcsec for dates near J2000).
    UT1 is taken equal to UTC.
    """
    T = (jd - JD_J2000) / 36_525.0
    # GMST in seconds of time at 0h UT
    theta_sec = 67310.54841 + (876600.0 * 3600.0 + 8640184.812866) * T \
                + 0.093104 * T**2 - 6.2e-6 * T**3
    theta_deg = (theta_sec / 240.0) % 360.0  # convert seconds→degrees
    return np.deg2rad(theta_deg)


def wrap_longitude(angle: float) -> float:
    """Wrap a longitude in degrees into [-180, 180)."""
    return float((angle + 180.0) % 360.0 - 180.0)
