"""
skypass — Orbital Geometry & Pass Prediction Engine
=====================================================

Where is a satellite, where does it appear in an observer's sky, when will
it next rise and set, and can a radio contact be made?  The engine answers
those four questions as pure computations over immutable inputs::

    OrbitalElements ──propagate──▶ StateVector (ECI)
                                      │
                                      ▼
                    Earth-fixed ──▶ geodetic sub-satellite point
                                      │
                    ObserverLocation ─▶ LookAngle (az, el, range, range-rate)
                                      │
              ┌───────────────────────┴───────────────────────┐
              ▼                                               ▼
      Pass Predictor (rise / culmination / set)     Radio Link Evaluator
                                                   (window, Doppler, quality)

Units
-----
Kilometres, kilometres per second and degrees in every public value type;
radians only inside the transforms.  Time is an :class:`Instant` (UTC
Julian Date).

Fetching element sets, loading configuration files and rendering are the
host's job; the engine only ever sees parsed, in-memory values.
"""

from .errors import (
    SkypassError,
    PropagationError, DegenerateOrbitError, NumericalDivergenceError,
    StaleElementsError,
    TransformError,
    PredictionError,
    ConfigurationError,
)

from .timebase import Instant
from .elements import OrbitalElements

from .propagator import (
    StateVector,
    PropagationModel,
    SGP4Model,
    KeplerJ2Model,
    propagate,
    propagate_batch,
)

from .frames import (
    # ── Value types ──
    EarthFixedState, Geodetic, LookAngle,
    # ── ECI ↔ ECR ──
    eci_to_ecr_matrix, ecr_to_eci_matrix,
    inertial_to_earth_fixed, earth_fixed_to_inertial,
    # ── ECR ↔ geodetic ──
    earth_fixed_to_geodetic, geodetic_to_earth_fixed,
    ecef_to_lla, lla_to_ecef,
    # ── Topocentric ──
    sez_matrix, to_topocentric, look_angle, subsatellite_point,
)

from .observer import ObserverLocation

from .passes import (
    Pass,
    PredictionResult,
    predict_passes,
    predict_all,
)

from .radio import (
    SignalStrength,
    DopplerShift,
    CommunicationWindow,
    doppler_shift,
    doppler_for,
    communication_window,
    signal_quality,
    evaluate_link,
)

from .config import (
    PredictionSettings,
    RadioSettings,
    AlertSettings,
    TrackerSettings,
)

from .tracking import SatelliteStatus, PassAlert, TrackingContext

from .utils import (
    julian_date,
    gmst,
    MU_EARTH,
    R_EARTH,
    J2,
    OMEGA_EARTH,
    F_EARTH,
    E2_EARTH,
    SPEED_OF_LIGHT,
)

__version__ = "1.0.0"
__all__ = [
    # ── Constants ──
    "MU_EARTH", "R_EARTH", "J2", "OMEGA_EARTH", "F_EARTH", "E2_EARTH",
    "SPEED_OF_LIGHT",
    # ── Errors ──
    "SkypassError", "PropagationError", "DegenerateOrbitError",
    "NumericalDivergenceError", "StaleElementsError", "TransformError",
    "PredictionError", "ConfigurationError",
    # ── Inputs ──
    "Instant", "OrbitalElements", "ObserverLocation",
    # ── Propagation ──
    "StateVector", "PropagationModel", "SGP4Model", "KeplerJ2Model",
    "propagate", "propagate_batch",
    # ── Coordinate transforms ──
    "EarthFixedState", "Geodetic", "LookAngle",
    "eci_to_ecr_matrix", "ecr_to_eci_matrix",
    "inertial_to_earth_fixed", "earth_fixed_to_inertial",
    "earth_fixed_to_geodetic", "geodetic_to_earth_fixed",
    "ecef_to_lla", "lla_to_ecef",
    "sez_matrix", "to_topocentric", "look_angle", "subsatellite_point",
    # ── Pass prediction ──
    "Pass", "PredictionResult", "predict_passes", "predict_all",
    # ── Radio link ──
    "SignalStrength", "DopplerShift", "CommunicationWindow",
    "doppler_shift", "doppler_for", "communication_window",
    "signal_quality", "evaluate_link",
    # ── Settings / tracking ──
    "PredictionSettings", "RadioSettings", "AlertSettings", "TrackerSettings",
    "SatelliteStatus", "PassAlert", "TrackingContext",
    # ── Time ──
    "julian_date", "gmst",
]
