"""
skypass.elements — Orbital Element Sets
=========================================

Immutable mean-element description of one satellite at its reference
epoch.  Element sets normally arrive as NORAD Two-Line Element text from
an upstream collaborator; :meth:`OrbitalElements.from_tle` hands the lines
to the ``sgp4`` parser and keeps the original text so the SGP4 model can
rebuild the exact record it was parsed from.

Angles are stored in degrees, mean motion in revolutions per day, the
mean-motion derivatives in the TLE's own units (rev/day², rev/day³).
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from sgp4.api import Satrec, WGS72

from .errors import ConfigurationError
from .timebase import Instant
from .utils import MU_EARTH, R_EARTH, DAILY_SECONDS

# sgp4 stores mean motion in rad/min; TLE text uses rev/day.
_XPDOTP = 1440.0 / (2.0 * np.pi)


@dataclass(frozen=True)
class OrbitalElements:
    """Mean orbital elements plus satellite identity."""
    name: str
    norad_id: int
    epoch: Instant
    inclination_deg: float
    raan_deg: float
    eccentricity: float
    arg_perigee_deg: float
    mean_anomaly_deg: float
    mean_motion: float              # [rev/day]
    bstar: float = 0.0              # [1/earth radii]
    ndot: float = 0.0               # [rev/day²]
    nddot: float = 0.0              # [rev/day³]
    line1: str = ""
    line2: str = ""

    def __post_init__(self):
        if self.mean_motion <= 0.0:
            raise ConfigurationError(
                f"{self.name or self.norad_id}: mean motion must be positive, "
                f"got {self.mean_motion}")
        if not 0.0 <= self.eccentricity < 1.0:
            raise ConfigurationError(
                f"{self.name or self.norad_id}: eccentricity {self.eccentricity} "
                "outside [0, 1)")

    @classmethod
    def from_tle(cls, line1: str, line2: str, name: str = "") -> OrbitalElements:
        """Build from TLE lines using the ``sgp4`` parser.

        Raises
        ------
        ConfigurationError
            if the lines cannot be parsed.
        """
        line1, line2 = line1.rstrip(), line2.rstrip()
        try:
            sat = Satrec.twoline2rv(line1, line2, WGS72)
        except ValueError as ex:
            raise ConfigurationError(f"unparseable TLE for {name!r}: {ex}") from ex
        return cls(
            name=name.strip() or f"{sat.satnum:05d}",
            norad_id=int(sat.satnum),
            epoch=Instant(sat.jdsatepoch + sat.jdsatepochF),
            inclination_deg=float(np.rad2deg(sat.inclo)),
            raan_deg=float(np.rad2deg(sat.nodeo)),
            eccentricity=float(sat.ecco),
            arg_perigee_deg=float(np.rad2deg(sat.argpo)),
            mean_anomaly_deg=float(np.rad2deg(sat.mo)),
            mean_motion=float(sat.no_kozai * _XPDOTP),
            bstar=float(sat.bstar),
            ndot=float(sat.ndot * _XPDOTP * 1440.0),
            nddot=float(sat.nddot * _XPDOTP * 1440.0 ** 2),
            line1=line1,
            line2=line2,
        )

    # ── Derived quantities ──

    @property
    def mean_motion_rad_s(self) -> float:
        return self.mean_motion * 2.0 * np.pi / DAILY_SECONDS

    @property
    def semi_major_axis_km(self) -> float:
        return float((MU_EARTH / self.mean_motion_rad_s**2) ** (1.0 / 3.0))

    @property
    def period_minutes(self) -> float:
        """Full orbit period in minutes"""
        return 1440.0 / self.mean_motion

    @property
    def perigee_km(self) -> float:
        """Perigee altitude above the equatorial radius [km]."""
        return self.semi_major_axis_km * (1.0 - self.eccentricity) - R_EARTH

    @property
    def apogee_km(self) -> float:
        return self.semi_major_axis_km * (1.0 + self.eccentricity) - R_EARTH

    def orbit_type(self) -> str:
        """
        Returns orbit type string: LEO, HEO, MEO or GEO
        """
        if self.period_minutes < 225:
            return "LEO"
        elif self.eccentricity >= 0.3:
            return "HEO"
        elif self.period_minutes < 800:
            return "MEO"
        else:
            return "GEO"

    def age_days(self, instant: Instant) -> float:
        """Signed days from the element epoch to ``instant``."""
        return instant.jd - self.epoch.jd
