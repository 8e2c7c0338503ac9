"""Device-frame to subject-frame projection.

The calibration reference is the inverse of the device attitude at the
calibration sample, so the calibrated frame is the device frame as it
was when the subject stood still. Gravity expressed in that frame should
stay fixed; when attitude integration drifts it wanders, and once its
averaged direction moves past the mount's threshold the reference is
corrected by the shortest rotation that brings it back.

Functions
---------
attitude_rotation
    Build a rotation from a (pitch, roll, yaw) attitude.
angle_between
    Angle in radians between two 3-vectors.
"""

import logging
from typing import Optional, Sequence

import numpy as np
from scipy.spatial.transform import Rotation

from .calibration import get_mount_profile
from .schema import MotionSample, TransformedSample

logger = logging.getLogger(__name__)

_DEFAULT_GRAVITY = np.array([0.0, 0.0, -1.0])


def attitude_rotation(attitude: Sequence[float]) -> Rotation:
    """Device-to-reference rotation for a (pitch, roll, yaw) attitude.

    Yaw about z, then pitch about the new x, then roll about the new y.
    """
    pitch, roll, yaw = attitude
    return Rotation.from_euler("ZXY", [yaw, pitch, roll])


def angle_between(a: np.ndarray, b: np.ndarray) -> float:
    na = np.linalg.norm(a)
    nb = np.linalg.norm(b)
    if na < 1e-12 or nb < 1e-12:
        return 0.0
    cos = float(np.dot(a, b) / (na * nb))
    return float(np.arccos(np.clip(cos, -1.0, 1.0)))


def _shortest_arc(src: np.ndarray, dst: np.ndarray) -> Rotation:
    """Rotation taking direction ``src`` onto direction ``dst``."""
    src = src / np.linalg.norm(src)
    dst = dst / np.linalg.norm(dst)
    axis = np.cross(src, dst)
    sin = np.linalg.norm(axis)
    angle = np.arctan2(sin, float(np.dot(src, dst)))
    if sin < 1e-9:
        if angle < 1e-9:
            return Rotation.identity()
        # Opposite vectors: any axis perpendicular to src works.
        axis = np.cross(src, [1.0, 0.0, 0.0])
        if np.linalg.norm(axis) < 1e-9:
            axis = np.cross(src, [0.0, 1.0, 0.0])
        sin = np.linalg.norm(axis)
    return Rotation.from_rotvec(axis / sin * angle)


def _unit(vec: Sequence[float]) -> Optional[np.ndarray]:
    v = np.asarray(vec, dtype=float)
    norm = np.linalg.norm(v)
    if not np.isfinite(norm) or norm < 1e-9:
        return None
    return v / norm


class FrameTransformer:
    """Project motion samples into the calibrated subject frame.

    Axis mapping after rotation: x is lateral, y is forward, z is
    vertical (positive up); rotation rates map to pitch, roll and yaw
    the same way.

    Parameters
    ----------
    drift_threshold : float
        Gravity drift angle (rad) that triggers a reference correction.
    check_interval : int
        Drift is evaluated every this many transformed samples.
    alpha_initial, alpha : float
        Gravity EMA smoothing before and after the first correction.
    cooldown_initial, cooldown : int
        Minimum samples since the last (re)calibration before a drift
        check may fire, before and after the first correction.
    """

    def __init__(
        self,
        drift_threshold: float = 0.5,
        check_interval: int = 100,
        alpha_initial: float = 0.05,
        alpha: float = 0.01,
        cooldown_initial: int = 500,
        cooldown: int = 3000,
    ):
        if drift_threshold <= 0:
            raise ValueError(f"drift_threshold must be positive, got {drift_threshold}")
        if check_interval < 1:
            raise ValueError(f"check_interval must be >= 1, got {check_interval}")
        self.drift_threshold = drift_threshold
        self.check_interval = check_interval
        self.alpha_initial = alpha_initial
        self.alpha = alpha
        self.cooldown_initial = cooldown_initial
        self.cooldown = cooldown
        self.reset_calibration()

    @classmethod
    def from_mount(cls, mount_position: str, **kwargs) -> "FrameTransformer":
        profile = get_mount_profile(mount_position)
        return cls(drift_threshold=profile["drift_threshold"], **kwargs)

    def reset_calibration(self) -> None:
        self._reference: Optional[Rotation] = None
        self._gravity_reference = _DEFAULT_GRAVITY.copy()
        self._gravity_avg = _DEFAULT_GRAVITY.copy()
        self._since_calibration = 0
        self.recalibration_count = 0
        self.drift_corrected = False

    @property
    def is_calibrated(self) -> bool:
        return self._reference is not None

    @property
    def drift_angle(self) -> float:
        """Current angle between averaged and reference gravity (rad)."""
        return angle_between(self._gravity_avg, self._gravity_reference)

    def calibrate(self, sample: MotionSample) -> None:
        self._reference = attitude_rotation(sample.attitude).inv()
        gravity = _unit(sample.gravity)
        self._gravity_reference = gravity if gravity is not None else _DEFAULT_GRAVITY.copy()
        self._gravity_avg = self._gravity_reference.copy()
        self._since_calibration = 0
        logger.debug(f"Calibrated frame at t={sample.timestamp:.3f}")

    def transform(self, sample: MotionSample) -> TransformedSample:
        """Rotate a sample into the calibrated frame.

        Raises
        ------
        RuntimeError
            If called before :meth:`calibrate`.
        """
        if self._reference is None:
            raise RuntimeError("transform called before calibrate")

        q = self._reference * attitude_rotation(sample.attitude)
        acc = q.apply(np.asarray(sample.acceleration, dtype=float))
        rot = q.apply(np.asarray(sample.rotation_rate, dtype=float))
        self.drift_corrected = self._track_drift(q, sample)

        return TransformedSample(
            timestamp=sample.timestamp,
            vertical=float(acc[2]),
            lateral=float(acc[0]),
            forward=float(acc[1]),
            yaw_rate=float(rot[2]),
            pitch_rate=float(rot[0]),
            roll_rate=float(rot[1]),
        )

    def _track_drift(self, q: Rotation, sample: MotionSample) -> bool:
        gravity = _unit(sample.gravity)
        if gravity is None:
            return False
        self._since_calibration += 1

        alpha = self.alpha if self.recalibration_count else self.alpha_initial
        self._gravity_avg = (1.0 - alpha) * self._gravity_avg + alpha * q.apply(gravity)

        if self._since_calibration % self.check_interval:
            return False
        cooldown = self.cooldown if self.recalibration_count else self.cooldown_initial
        if self._since_calibration < cooldown:
            return False

        angle = self.drift_angle
        if angle <= self.drift_threshold:
            return False

        correction = _shortest_arc(self._gravity_avg, self._gravity_reference)
        self._reference = correction * self._reference
        self._gravity_avg = self._gravity_reference.copy()
        self._since_calibration = 0
        self.recalibration_count += 1
        logger.info(
            f"Gravity drift {np.degrees(angle):.1f} deg exceeded threshold, "
            f"recalibrated (#{self.recalibration_count})"
        )
        return True
