"""Unattended calibration gate.

Counts samples since session start (or an explicit reset) and walks
``pending -> settling -> calibrating -> ready``. Readiness requires the
device to be still both vertically and rotationally, with a forced
deadline so calibration always completes even if it never settles.
"""

import logging
from typing import List, Optional

from .buffers import RingBuffer
from .constants import MOUNT_PROFILES
from .schema import CalibrationStatus, MotionSample

logger = logging.getLogger(__name__)


def get_mount_profile(mount_position: str) -> dict:
    """Return the timing and drift profile for a mount position.

    Raises
    ------
    ValueError
        If the mount position is unknown.
    """
    try:
        return dict(MOUNT_PROFILES[mount_position])
    except KeyError:
        raise ValueError(
            f"Unknown mount position: {mount_position!r}. "
            f"Available: {sorted(MOUNT_PROFILES)}"
        ) from None


class CalibrationStateMachine:
    """Sample-driven calibration state machine.

    Parameters
    ----------
    mount_position : str
        Key of ``MOUNT_PROFILES``.
    vertical_rms_threshold : float
        Vertical stillness threshold in g.
    rotation_rms_threshold : float
        Rotational stillness threshold in rad/s.
    vertical_window, rotation_window : int
        Rolling window lengths for the two RMS trackers.
    min_vertical_samples, min_rotation_samples : int
        Below these counts a tracker does not block readiness.
    mount_profile : dict, optional
        Overrides for ``pending_samples``, ``settle_samples`` and
        ``force_samples``.
    """

    def __init__(
        self,
        mount_position: str = "jodhpur_thigh",
        vertical_rms_threshold: float = 0.2,
        rotation_rms_threshold: float = 0.3,
        vertical_window: int = 20,
        rotation_window: int = 30,
        min_vertical_samples: int = 20,
        min_rotation_samples: int = 10,
        mount_profile: Optional[dict] = None,
    ):
        profile = get_mount_profile(mount_position)
        if mount_profile:
            profile.update(mount_profile)
        self.pending_samples = int(profile["pending_samples"])
        self.settle_samples = int(profile["settle_samples"])
        self.force_samples = int(profile["force_samples"])
        if not 0 < self.pending_samples < self.settle_samples < self.force_samples:
            raise ValueError(
                "Mount timing must satisfy 0 < pending < settle < force, got "
                f"{self.pending_samples}, {self.settle_samples}, {self.force_samples}"
            )
        self.mount_position = mount_position
        self.vertical_rms_threshold = vertical_rms_threshold
        self.rotation_rms_threshold = rotation_rms_threshold
        self.min_vertical_samples = min_vertical_samples
        self.min_rotation_samples = min_rotation_samples
        self._vertical = RingBuffer(vertical_window)
        self._rotation = RingBuffer(rotation_window)
        self.reset()

    def reset(self) -> None:
        self.status = CalibrationStatus.PENDING
        self.sample_count = 0
        self.history: List[CalibrationStatus] = [CalibrationStatus.PENDING]
        self._vertical.clear()
        self._rotation.clear()

    @property
    def is_ready(self) -> bool:
        return self.status == CalibrationStatus.READY

    @property
    def vertical_rms(self) -> float:
        return self._vertical.rms()

    @property
    def rotation_rms(self) -> float:
        return self._rotation.rms()

    def is_still(self) -> bool:
        vertical_still = (
            len(self._vertical) < self.min_vertical_samples
            or self.vertical_rms < self.vertical_rms_threshold
        )
        rotation_still = (
            len(self._rotation) < self.min_rotation_samples
            or self.rotation_rms < self.rotation_rms_threshold
        )
        return vertical_still and rotation_still

    def update(self, sample: MotionSample) -> bool:
        """Advance with one sample.

        Returns
        -------
        bool
            True only for the sample that completes calibration.
        """
        if self.status == CalibrationStatus.READY:
            return False

        self.sample_count += 1
        n = self.sample_count

        if n >= self.force_samples:
            logger.info(
                f"Forcing calibration after {n} samples "
                f"(vertical RMS {self.vertical_rms:.3f}, rotation RMS {self.rotation_rms:.3f})"
            )
            self._advance(CalibrationStatus.READY)
            return True

        if n < self.pending_samples:
            return False

        self._vertical.append(sample.vertical_acceleration)
        self._rotation.append(sample.rotation_magnitude)

        if n < self.settle_samples:
            self._advance(CalibrationStatus.SETTLING)
            return False

        # Stillness only counts once a sample has been seen in calibrating.
        if self.status != CalibrationStatus.CALIBRATING:
            self._advance(CalibrationStatus.CALIBRATING)
            return False

        if self.is_still():
            self._advance(CalibrationStatus.READY)
            return True
        return False

    def _advance(self, status: CalibrationStatus) -> None:
        if status == self.status:
            return
        # Never skip a stage so observers always see the full progression.
        for stage in list(CalibrationStatus)[self.status.order + 1 : status.order + 1]:
            self.history.append(stage)
            logger.debug(f"Calibration {self.status.value} -> {stage.value} at sample {self.sample_count}")
            self.status = stage
