"""
skypass.orbits — Keplerian Orbital Mechanics
==============================================

Two-body helpers used by the lightweight :class:`~skypass.propagator.KeplerJ2Model`:
Kepler equation solver and Keplerian element → inertial state conversion.
All pure NumPy, kilometres and seconds.
"""

import numpy as np
from numpy.typing import NDArray

from .utils import MU_EARTH


# ════════════════════════════════════════════════════════════════════════════
#  Kepler Equation
# ════════════════════════════════════════════════════════════════════════════

def solve_kepler(M: float, e: float, tol: float = 1e-12,
                 max_iter: int = 50) -> float:
    """Solve Kepler's equation  M = E − e sin(E)  via Newton–Raphson.

    Parameters
    ----------
    M : float — mean anomaly [rad]
    e : float — eccentricity (0 ≤ e < 1)
    tol : float — convergence tolerance [rad]

    Returns
    -------
    E : float — eccentric anomaly [rad]
    """
    E = M + 0.85 * e * np.sign(np.sin(M)) if e < 0.8 else np.pi
    for _ in range(max_iter):
        f = E - e * np.sin(E) - M
        fp = 1.0 - e * np.cos(E)
        dE = -f / fp
        E += dE
        if abs(dE) < tol:
            break
    return E


def true_anomaly(E: float, e: float) -> float:
    """True anomaly [rad] from eccentric anomaly."""
    return 2.0 * np.arctan2(
        np.sqrt(1.0 + e) * np.sin(E / 2.0),
        np.sqrt(1.0 - e) * np.cos(E / 2.0),
    )


# ════════════════════════════════════════════════════════════════════════════
#  Keplerian → ECI
# ════════════════════════════════════════════════════════════════════════════

def keplerian_to_eci(
    a: float, e: float, i: float,
    raan: float, argp: float, nu: float,
    mu: float = MU_EARTH,
) -> tuple[NDArray, NDArray]:
    """Convert classical Keplerian elements to an ECI state vector.

    Parameters
    ----------
    a : float — semi-major axis [km]
    e : float — eccentricity
    i : float — inclination [rad]
    raan : float — right ascension of ascending node [rad]
    argp : float — argument of periapsis [rad]
    nu : float — true anomaly [rad]
    mu : float — gravitational parameter [km³/s²]

    Returns
    -------
    r_eci : (3,) ndarray — position [km]
    v_eci : (3,) ndarray — velocity [km/s]
    """
    p = a * (1.0 - e**2)               # semi-latus rectum
    r_mag = p / (1.0 + e * np.cos(nu))

    # Perifocal (PQW) frame
    r_pqw = r_mag * np.array([np.cos(nu), np.sin(nu), 0.0])
    v_pqw = np.sqrt(mu / p) * np.array([-np.sin(nu), e + np.cos(nu), 0.0])

    cos_raan, sin_raan = np.cos(raan), np.sin(raan)
    cos_argp, sin_argp = np.cos(argp), np.sin(argp)
    cos_i, sin_i = np.cos(i), np.sin(i)

    R = np.array([
        [cos_raan * cos_argp - sin_raan * sin_argp * cos_i,
         -cos_raan * sin_argp - sin_raan * cos_argp * cos_i,
         sin_raan * sin_i],
        [sin_raan * cos_argp + cos_raan * sin_argp * cos_i,
         -sin_raan * sin_argp + cos_raan * cos_argp * cos_i,
         -cos_raan * sin_i],
        [sin_argp * sin_i,
         cos_argp * sin_i,
         cos_i],
    ])

    return R @ r_pqw, R @ v_pqw
