"""Per-tick feature vector assembly.

Combines the spectral and coherence engines over the four subject-frame
buffers with the auxiliary location and companion-device inputs.
"""

import logging
from collections import deque
from typing import Optional, Sequence, Tuple

import numpy as np

from .coherence import CoherenceEngine
from .constants import REFERENCE_WEIGHT_KG
from .schema import GaitFeatureVector
from .spectral import SpectralEngine, SpectralResult, correct_stride_frequency

logger = logging.getLogger(__name__)


def rms(values: Sequence[float]) -> float:
    x = np.asarray(values, dtype=float)
    if x.size == 0:
        return 0.0
    x = np.nan_to_num(x, nan=0.0, posinf=0.0, neginf=0.0)
    return float(np.sqrt(np.mean(x ** 2)))


class FeatureVectorBuilder:
    """Build :class:`GaitFeatureVector` instances from buffered signals.

    Parameters
    ----------
    spectral : SpectralEngine
        Engine applied to the vertical channel.
    coherence : CoherenceEngine
        Engine for forward-lateral and vertical-yaw coherence.
    speed_window : int
        Number of GPS speed readings averaged.
    default_accuracy : float
        Horizontal accuracy (m) assumed before any location update.
    harmonic_correction : bool
        Double a subharmonic dominant peak into the stride frequency.
    weight_kg : float, optional
        Subject weight for RMS normalisation.
    """

    def __init__(
        self,
        spectral: SpectralEngine,
        coherence: CoherenceEngine,
        speed_window: int = 5,
        default_accuracy: float = 100.0,
        harmonic_correction: bool = True,
        weight_kg: Optional[float] = None,
    ):
        self.spectral = spectral
        self.coherence = coherence
        self.default_accuracy = default_accuracy
        self.harmonic_correction = harmonic_correction
        self.weight_kg = weight_kg
        self._speeds = deque(maxlen=max(1, int(speed_window)))
        self.reset_auxiliary()

    # ── Auxiliary inputs ─────────────────────────────────────────────

    def reset_location(self) -> None:
        self._speeds.clear()
        self.gps_accuracy = self.default_accuracy

    def reset_auxiliary(self) -> None:
        """Clear location and companion-device inputs."""
        self.reset_location()
        self.watch_arm_symmetry = 0.0
        self.watch_yaw_energy = 0.0

    def update_location(self, speed: float, horizontal_accuracy: Optional[float] = None) -> None:
        if speed is not None and np.isfinite(speed):
            self._speeds.append(max(0.0, float(speed)))
        if horizontal_accuracy is not None and np.isfinite(horizontal_accuracy) and horizontal_accuracy >= 0:
            self.gps_accuracy = float(horizontal_accuracy)

    def update_companion(self, arm_symmetry: Optional[float] = None, yaw_energy: Optional[float] = None) -> None:
        if arm_symmetry is not None:
            self.watch_arm_symmetry = float(np.clip(arm_symmetry, 0.0, 1.0))
        if yaw_energy is not None:
            self.watch_yaw_energy = float(np.clip(yaw_energy, 0.0, 1.0))

    @property
    def gps_speed(self) -> float:
        if not self._speeds:
            return 0.0
        return float(np.mean(self._speeds))

    # ── Assembly ─────────────────────────────────────────────────────

    def normalize_rms(self, value: float) -> float:
        if not self.weight_kg:
            return value
        return value * REFERENCE_WEIGHT_KG / self.weight_kg

    def build(
        self,
        vertical: Sequence[float],
        lateral: Sequence[float],
        forward: Sequence[float],
        yaw: Sequence[float],
    ) -> Tuple[GaitFeatureVector, SpectralResult]:
        """Features for the current buffer contents.

        With fewer than ``window_size`` vertical samples the spectral and
        coherence fields are neutral and ``quality`` is 0.
        """
        n = self.spectral.window_size
        full = len(vertical) >= n
        if full:
            vertical = np.asarray(vertical, dtype=float)[-n:]
            lateral = np.asarray(lateral, dtype=float)[-n:]
            forward = np.asarray(forward, dtype=float)[-n:]
            yaw = np.asarray(yaw, dtype=float)[-n:]

        result = self.spectral.process_window(vertical) if full else SpectralResult()
        stride = correct_stride_frequency(result) if self.harmonic_correction else result.dominant_frequency

        neutral = self.coherence.neutral_value
        xy_coh = self.coherence.coherence(forward, lateral, stride) if full else neutral
        zyaw_coh = self.coherence.coherence(vertical, yaw, stride) if full else neutral

        fv = GaitFeatureVector(
            stride_frequency=stride,
            h2_ratio=result.h2_ratio,
            h3_ratio=result.h3_ratio,
            spectral_entropy=result.spectral_entropy,
            xy_coherence=xy_coh,
            z_yaw_coherence=zyaw_coh,
            vertical_rms=self.normalize_rms(rms(vertical)),
            yaw_rms=rms(yaw),
            gps_speed=self.gps_speed,
            gps_accuracy=self.gps_accuracy,
            watch_arm_symmetry=self.watch_arm_symmetry,
            watch_yaw_energy=self.watch_yaw_energy,
            quality=1.0 if full else 0.0,
        )
        return fv, result
