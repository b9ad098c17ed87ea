"""
skypass.radio — Radio Link Evaluator
======================================

Doppler shift and communication-window checks derived from a look angle.

Doppler Sign Convention
-----------------------
Range-rate ṙ is positive when the satellite recedes.  The non-relativistic
shift of a signal transmitted at f is::

    Δf = −f · ṙ / c

so an approaching satellite (ṙ < 0) is received *above* its nominal
frequency.  Uplink pre-compensation applies the opposite shift, so the
satellite hears the nominal frequency.

Signal Quality
--------------
:func:`signal_quality` is a heuristic softened inverse-square falloff
anchored at a configured (reference range, reference quality) pair and
strictly decreasing from 1 at zero range.  It is a ranking aid, not a link
budget; it makes no claim of calibrated accuracy.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .config import RadioSettings
from .frames import LookAngle
from .utils import SPEED_OF_LIGHT


# ════════════════════════════════════════════════════════════════════════════
#  Data Structures
# ════════════════════════════════════════════════════════════════════════════

class SignalStrength(Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    NO_SIGNAL = "No Signal"


@dataclass(frozen=True)
class DopplerShift:
    """Downlink and uplink frequencies corrected for range-rate [MHz / Hz]."""
    downlink_mhz: float
    downlink_shift_hz: float
    uplink_mhz: float
    uplink_shift_hz: float

    @property
    def downlink_observed_mhz(self) -> float:
        """Frequency to tune the receiver to."""
        return self.downlink_mhz + self.downlink_shift_hz / 1e6

    @property
    def uplink_corrected_mhz(self) -> float:
        """Frequency to transmit on so the satellite hears the nominal one."""
        return self.uplink_mhz + self.uplink_shift_hz / 1e6


@dataclass(frozen=True)
class CommunicationWindow:
    """Link assessment at one instant."""
    is_open: bool
    doppler: DopplerShift
    signal_quality: float
    strength: SignalStrength
    recommended_mode: str | None
    reason: str


# ════════════════════════════════════════════════════════════════════════════
#  Doppler
# ════════════════════════════════════════════════════════════════════════════

def doppler_shift(base_frequency: float, range_rate: float,
                  speed_of_light: float = SPEED_OF_LIGHT) -> float:
    """Received-minus-transmitted frequency, ``−f · ṙ / c``.

    Parameters
    ----------
    base_frequency : float — transmitted frequency (any unit; result uses it)
    range_rate : float — d(range)/dt, negative when approaching
    speed_of_light : float — in the same length/time units as ``range_rate``
        (default km/s)
    """
    return -base_frequency * range_rate / speed_of_light


def doppler_for(look: LookAngle, downlink_mhz: float,
                uplink_mhz: float) -> DopplerShift:
    """Downlink shift and uplink pre-compensation for ``look``."""
    rr = look.range_rate_km_s
    down_hz = doppler_shift(downlink_mhz * 1e6, rr)
    up_hz = -doppler_shift(uplink_mhz * 1e6, rr)
    return DopplerShift(
        downlink_mhz=downlink_mhz,
        downlink_shift_hz=down_hz,
        uplink_mhz=uplink_mhz,
        uplink_shift_hz=up_hz,
    )


# ════════════════════════════════════════════════════════════════════════════
#  Link Geometry
# ════════════════════════════════════════════════════════════════════════════

def communication_window(look: LookAngle, min_elevation: float) -> bool:
    """True iff elevation ≥ ``min_elevation`` [deg] (boundary included)."""
    return look.elevation_deg >= min_elevation


def signal_quality(range_km: float, reference_range_km: float = 1000.0,
                   reference_quality: float = 0.5) -> float:
    """Heuristic quality in (0, 1], strictly decreasing with range.

    Softened inverse square ``r0² / (r0² + range²)``, with ``r0`` chosen so
    that the quality at ``reference_range_km`` is ``reference_quality``.
    Equals 1 only at zero range and falls off as ``range⁻²`` far out.
    """
    if not 0.0 < reference_quality < 1.0:
        raise ValueError(f"reference_quality must lie in (0, 1), got {reference_quality}")
    r0_sq = reference_range_km**2 * reference_quality / (1.0 - reference_quality)
    return r0_sq / (r0_sq + range_km**2)


def classify_strength(elevation_deg: float, range_km: float) -> SignalStrength:
    """Coarse signal-strength bucket from elevation and range."""
    if elevation_deg >= 45.0 and range_km < 2000.0:
        return SignalStrength.EXCELLENT
    elif elevation_deg >= 30.0 and range_km < 2500.0:
        return SignalStrength.GOOD
    elif elevation_deg >= 15.0 and range_km < 3000.0:
        return SignalStrength.FAIR
    elif elevation_deg >= 5.0:
        return SignalStrength.POOR
    return SignalStrength.NO_SIGNAL


def recommended_mode(elevation_deg: float) -> str | None:
    if elevation_deg >= 30.0:
        return "FM/SSB"
    elif elevation_deg >= 15.0:
        return "SSB"
    elif elevation_deg >= 10.0:
        return "SSB (difficult)"
    return None


def evaluate_link(look: LookAngle, settings: RadioSettings) -> CommunicationWindow:
    """Full link assessment: window predicate, Doppler and quality."""
    is_open = communication_window(look, settings.min_elevation_deg)
    el, rng = look.elevation_deg, look.range_km
    if is_open:
        reason = f"El: {el:.1f}°, Range: {rng:.0f} km"
    elif el < 0.0:
        reason = "Satellite below horizon"
    else:
        reason = (f"Elevation too low ({el:.1f}° < "
                  f"{settings.min_elevation_deg:.1f}°) for reliable contact")

    return CommunicationWindow(
        is_open=is_open,
        doppler=doppler_for(look, settings.downlink_mhz, settings.uplink_mhz),
        signal_quality=signal_quality(rng, settings.reference_range_km,
                                      settings.reference_quality),
        strength=classify_strength(el, rng) if el >= 0.0 else SignalStrength.NO_SIGNAL,
        recommended_mode=recommended_mode(el) if is_open else None,
        reason=reason,
    )
