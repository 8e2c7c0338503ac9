"""Value types flowing through the classifier.

Raw samples come in, transformed samples feed the ring buffers, one
feature vector per analysis tick drives the estimator, and classified
time is recorded as a list of gait segments.

Classes
-------
MotionSample
    One inertial reading in the device frame.
TransformedSample
    A motion sample re-expressed in the subject frame.
GaitFeatureVector
    Per-tick feature summary fed to the estimator.
GaitSegment
    One contiguous interval of classified gait.
LearnedGaitParameters
    Per-subject adapted frequency centres and harmonic means.
AnalyzerSnapshot
    Immutable view of the analyzer state after a tick.
"""

import math
import time
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .constants import KNOWN_LEAD_CONFIDENCE, SPEED_GAIT_THRESHOLDS


def _convert_numpy(obj: Any) -> Any:
    """Recursively convert numpy types to Python types for JSON serialization."""
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {k: _convert_numpy(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_convert_numpy(v) for v in obj]
    return obj


# ── Enums ────────────────────────────────────────────────────────────────


class HMMGaitState(str, Enum):
    """Hidden states, ordered by increasing expected stride frequency."""

    STATIONARY = "stationary"
    WALK = "walk"
    TROT = "trot"
    CANTER = "canter"
    GALLOP = "gallop"

    @property
    def index(self) -> int:
        return list(HMMGaitState).index(self)

    @classmethod
    def from_speed(cls, speed: float) -> "HMMGaitState":
        """Coarse gait guess from ground speed alone (m/s)."""
        for threshold, name in SPEED_GAIT_THRESHOLDS:
            if speed < threshold:
                return cls(name)
        return cls.GALLOP


class CalibrationStatus(str, Enum):
    PENDING = "pending"
    SETTLING = "settling"
    CALIBRATING = "calibrating"
    READY = "ready"

    @property
    def order(self) -> int:
        return list(CalibrationStatus).index(self)


class Lead(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    UNKNOWN = "unknown"


# ── Samples ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MotionSample:
    """One inertial reading in the device frame.

    Attributes
    ----------
    timestamp : float
        Seconds, monotonically increasing within a session.
    acceleration : tuple of float
        User acceleration (gravity removed) along device x, y, z in g.
    rotation_rate : tuple of float
        Angular velocity about device x, y, z in rad/s.
    attitude : tuple of float
        Device orientation as (pitch, roll, yaw) in radians.
    gravity : tuple of float
        Gravity direction in the device frame, in g.
    """

    timestamp: float
    acceleration: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    rotation_rate: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    attitude: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    gravity: Tuple[float, float, float] = (0.0, 0.0, -1.0)

    @property
    def rotation_magnitude(self) -> float:
        x, y, z = self.rotation_rate
        return math.sqrt(x * x + y * y + z * z)

    @property
    def vertical_acceleration(self) -> float:
        """User acceleration along the upward gravity direction."""
        g = np.asarray(self.gravity, dtype=float)
        norm = float(np.linalg.norm(g))
        if norm < 1e-9:
            return float(self.acceleration[2])
        return float(-np.dot(self.acceleration, g) / norm)


@dataclass(frozen=True)
class TransformedSample:
    timestamp: float
    vertical: float
    lateral: float
    forward: float
    yaw_rate: float
    pitch_rate: float
    roll_rate: float


# ── Feature vector ───────────────────────────────────────────────────────


_UNIT_FIELDS = (
    "h2_ratio",
    "h3_ratio",
    "spectral_entropy",
    "xy_coherence",
    "z_yaw_coherence",
    "watch_arm_symmetry",
    "watch_yaw_energy",
    "quality",
)
_NON_NEGATIVE_FIELDS = (
    "stride_frequency",
    "vertical_rms",
    "yaw_rms",
    "gps_speed",
    "gps_accuracy",
)


@dataclass(frozen=True)
class GaitFeatureVector:
    """Summary of one analysis tick.

    Values are sanitised on construction: non-finite inputs become 0,
    ratio, coherence and entropy fields are clipped to [0, 1] and
    frequency, RMS and GPS fields are floored at 0. ``quality`` is 1 for
    a full analysis window and 0 when the buffers were still filling.
    """

    stride_frequency: float = 0.0
    h2_ratio: float = 0.0
    h3_ratio: float = 0.0
    spectral_entropy: float = 0.0
    xy_coherence: float = 0.5
    z_yaw_coherence: float = 0.5
    vertical_rms: float = 0.0
    yaw_rms: float = 0.0
    gps_speed: float = 0.0
    gps_accuracy: float = 100.0
    watch_arm_symmetry: float = 0.0
    watch_yaw_energy: float = 0.0
    quality: float = 1.0

    def __post_init__(self):
        for name in _UNIT_FIELDS + _NON_NEGATIVE_FIELDS:
            value = getattr(self, name)
            try:
                value = float(value)
            except (TypeError, ValueError):
                value = 0.0
            if not math.isfinite(value):
                value = 0.0
            if name in _UNIT_FIELDS:
                value = min(max(value, 0.0), 1.0)
            else:
                value = max(value, 0.0)
            object.__setattr__(self, name, value)

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# ── Segments ─────────────────────────────────────────────────────────────


@dataclass
class GaitSegment:
    """One contiguous interval of classified gait.

    ``end_time`` stays ``None`` while the segment is open. The spectral
    snapshot fields are written when the segment is finalised; lead and
    rhythm are attached by collaborators while it is open.
    """

    gait: HMMGaitState
    start_time: float
    end_time: Optional[float] = None
    distance: float = 0.0
    average_speed: float = 0.0
    lead: Lead = Lead.UNKNOWN
    lead_confidence: float = 0.0
    rhythm_score: float = 0.0
    stride_frequency: float = 0.0
    harmonic_ratio_h2: float = 0.0
    harmonic_ratio_h3: float = 0.0
    spectral_entropy: float = 0.0
    vertical_yaw_coherence: float = 0.0

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def duration(self, now: Optional[float] = None) -> float:
        end = self.end_time
        if end is None:
            end = time.time() if now is None else now
        return max(0.0, end - self.start_time)

    @property
    def is_lead_applicable(self) -> bool:
        return self.gait in (HMMGaitState.CANTER, HMMGaitState.GALLOP)

    @property
    def has_known_lead(self) -> bool:
        return self.lead != Lead.UNKNOWN and self.lead_confidence >= KNOWN_LEAD_CONFIDENCE

    def finalize(self, end_time: float, features: Optional[GaitFeatureVector] = None):
        """Close the segment and record the spectral snapshot."""
        self.end_time = max(end_time, self.start_time)
        span = self.end_time - self.start_time
        self.average_speed = self.distance / span if span > 0 else 0.0
        if features is not None:
            self.record_spectral(features)

    def record_spectral(self, features: GaitFeatureVector) -> None:
        self.stride_frequency = features.stride_frequency
        self.harmonic_ratio_h2 = features.h2_ratio
        self.harmonic_ratio_h3 = features.h3_ratio
        self.spectral_entropy = features.spectral_entropy
        self.vertical_yaw_coherence = features.z_yaw_coherence

    def to_dict(self) -> dict:
        d = {f.name: getattr(self, f.name) for f in fields(self)}
        d["duration"] = self.duration(self.end_time if self.end_time is not None else self.start_time)
        return _convert_numpy(d)


# ── Learned parameters ───────────────────────────────────────────────────


@dataclass(frozen=True)
class LearnedGaitParameters:
    """Slowly adapting per-subject view of the emission model.

    Produced by :func:`equigait.learning.update_learned_parameters` after
    each completed session and persisted by the caller.
    """

    walk_frequency_center: Optional[float] = None
    trot_frequency_center: Optional[float] = None
    canter_frequency_center: Optional[float] = None
    gallop_frequency_center: Optional[float] = None
    trot_h2_mean: Optional[float] = None
    canter_h3_mean: Optional[float] = None
    ride_count: int = 0
    last_updated: Optional[float] = None

    @property
    def blend_weight(self) -> float:
        """Share given to learned values over breed priors.

        Nothing is blended before three rides; the weight then grows by
        0.05 per ride up to an even split.
        """
        if self.ride_count < 3:
            return 0.0
        return min(0.5, 0.05 * self.ride_count)

    def frequency_center(self, gait: str) -> Optional[float]:
        return getattr(self, f"{gait}_frequency_center", None)

    def with_updates(self, **changes) -> "LearnedGaitParameters":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return _convert_numpy({f.name: getattr(self, f.name) for f in fields(self)})

    @classmethod
    def from_dict(cls, d: dict) -> "LearnedGaitParameters":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})


# ── Events and snapshot ──────────────────────────────────────────────────


@dataclass(frozen=True)
class CalibrationCompleted:
    timestamp: float


@dataclass(frozen=True)
class GaitChanged:
    from_state: HMMGaitState
    to_state: HMMGaitState
    timestamp: float
    confidence: float


@dataclass(frozen=True)
class AnalyzerSnapshot:
    """State published after each tick for readers on other threads."""

    timestamp: float = 0.0
    current_gait: HMMGaitState = HMMGaitState.STATIONARY
    confidence: float = 0.0
    calibration_status: CalibrationStatus = CalibrationStatus.PENDING
    features: GaitFeatureVector = field(default_factory=GaitFeatureVector)
    probabilities: Dict[str, float] = field(default_factory=dict)
