"""
skypass.observer — Ground Observer
====================================

A fixed ground location.  Its Earth-fixed position and SEZ basis are a
pure function of the geodetic coordinates, so both are computed once at
construction and reused for every look-angle query.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from .errors import ConfigurationError
from .frames import Geodetic, geodetic_to_earth_fixed, sez_matrix


@dataclass(frozen=True)
class ObserverLocation:
    """Ground observer.

    Parameters
    ----------
    latitude_deg : float — geodetic latitude [deg], -90..90
    longitude_deg : float — longitude [deg], east positive
    altitude_km : float — height above the WGS-84 ellipsoid [km]
    name : str — label
    """
    latitude_deg: float
    longitude_deg: float
    altitude_km: float = 0.0
    name: str = "Observer"

    ecef: NDArray = field(init=False, repr=False, compare=False)
    sez: NDArray = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not -90.0 <= self.latitude_deg <= 90.0:
            raise ConfigurationError(
                f"observer latitude {self.latitude_deg} outside [-90, 90]")
        if not -360.0 <= self.longitude_deg <= 360.0:
            raise ConfigurationError(
                f"observer longitude {self.longitude_deg} outside [-360, 360]")

        ecef = geodetic_to_earth_fixed(self.geodetic)
        ecef.setflags(write=False)
        sez = sez_matrix(np.deg2rad(self.latitude_deg),
                         np.deg2rad(self.longitude_deg))
        sez.setflags(write=False)
        object.__setattr__(self, "ecef", ecef)
        object.__setattr__(self, "sez", sez)

    @classmethod
    def from_meters(cls, latitude_deg: float, longitude_deg: float,
                    altitude_m: float = 0.0,
                    name: str = "Observer") -> ObserverLocation:
        """Construct with altitude in metres (the usual station convention)."""
        return cls(latitude_deg, longitude_deg, altitude_m / 1000.0, name)

    @property
    def geodetic(self) -> Geodetic:
        return Geodetic(self.latitude_deg, self.longitude_deg, self.altitude_km)
