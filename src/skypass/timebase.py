"""
skypass.timebase — Instants in Time
=====================================

An :class:`Instant` is a UTC point in time stored as a Julian Date.  A
float64 JD near the current epoch resolves ~40 µs, well below what the
sub-degree look-angle and sub-second pass-boundary work needs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import numpy as np

from .utils import DAILY_SECONDS, JD_UNIX_EPOCH, julian_date, gmst


@dataclass(frozen=True, order=True)
class Instant:
    """UTC instant as a Julian Date."""
    jd: float

    # ── Constructors ──

    @classmethod
    def from_datetime(cls, dt: datetime) -> Instant:
        """Build from a datetime.  Naive datetimes are taken as UTC."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        dt = dt.astimezone(timezone.utc)
        second = dt.second + dt.microsecond * 1e-6
        return cls(julian_date(dt.year, dt.month, dt.day,
                               dt.hour, dt.minute, second))

    @classmethod
    def from_calendar(cls, year: int, month: int, day: int,
                      hour: int = 0, minute: int = 0,
                      second: float = 0.0) -> Instant:
        return cls(julian_date(year, month, day, hour, minute, second))

    @classmethod
    def now(cls) -> Instant:
        return cls.from_datetime(datetime.now(timezone.utc))

    # ── Conversions ──

    def to_datetime(self) -> datetime:
        """UTC datetime, rounded to the microsecond."""
        seconds = (self.jd - JD_UNIX_EPOCH) * DAILY_SECONDS
        epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
        return epoch + timedelta(microseconds=round(seconds * 1e6))

    def split(self) -> tuple[float, float]:
        """Two-part Julian Date (whole, fraction) as SGP4 expects."""
        whole = float(np.floor(self.jd))
        return whole, self.jd - whole

    @property
    def gmst(self) -> float:
        """Greenwich Mean Sidereal Time [rad]."""
        return gmst(self.jd)

    # ── Arithmetic ──

    def shift(self, seconds: float) -> Instant:
        return Instant(self.jd + seconds / DAILY_SECONDS)

    def __sub__(self, other: Instant) -> float:
        """Signed difference in seconds."""
        return (self.jd - other.jd) * DAILY_SECONDS

    def __str__(self) -> str:
        return self.to_datetime().strftime("%Y-%m-%d %H:%M:%S UTC")
