"""Welch-averaged magnitude-squared coherence.

A single-segment coherence estimate is identically 1, so spectra are
always averaged over overlapping Hann-tapered segments with
``scipy.signal.csd`` and ``scipy.signal.welch``. Inputs that are too
short, mismatched or silent give the neutral value instead of an error.
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy import signal

logger = logging.getLogger(__name__)


class CoherenceEngine:
    """Cross-spectral coherence between two equal-length series.

    Parameters
    ----------
    segment_length : int
        Samples per Welch segment (default 128).
    overlap : int
        Samples shared by consecutive segments (default 64).
    sample_rate : float
        Sampling rate in Hz.
    neutral_value : float
        Returned whenever coherence cannot be estimated.
    min_power : float
        Floor on ``Pxx * Pyy`` below which the estimate is degenerate.
    """

    def __init__(
        self,
        segment_length: int = 128,
        overlap: int = 64,
        sample_rate: float = 100.0,
        neutral_value: float = 0.5,
        min_power: float = 1e-20,
    ):
        if segment_length < 4:
            raise ValueError(f"segment_length must be >= 4, got {segment_length}")
        if not 0 <= overlap < segment_length:
            raise ValueError(f"overlap must be in [0, segment_length), got {overlap}")
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        self.segment_length = int(segment_length)
        self.overlap = int(overlap)
        self.sample_rate = float(sample_rate)
        self.neutral_value = neutral_value
        self.min_power = min_power
        self.frequencies = np.fft.rfftfreq(self.segment_length, d=1.0 / self.sample_rate)

    @property
    def frequency_resolution(self) -> float:
        return self.sample_rate / self.segment_length

    def _prepare(self, x: Sequence[float], y: Sequence[float]) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        if x.size < self.segment_length or y.size < self.segment_length or x.size != y.size:
            return None
        x = np.nan_to_num(x, nan=0.0, posinf=0.0, neginf=0.0)
        y = np.nan_to_num(y, nan=0.0, posinf=0.0, neginf=0.0)
        return x, y

    def _spectra(self, x: np.ndarray, y: np.ndarray):
        kwargs = dict(
            fs=self.sample_rate,
            window="hann",
            nperseg=self.segment_length,
            noverlap=self.overlap,
            detrend="constant",
        )
        _, pxy = signal.csd(x, y, **kwargs)
        _, pxx = signal.welch(x, **kwargs)
        _, pyy = signal.welch(y, **kwargs)
        return pxy, pxx, pyy

    def _bin(self, frequency: float) -> Optional[int]:
        if not np.isfinite(frequency) or frequency <= 0 or frequency > self.sample_rate / 2.0:
            return None
        k = int(round(frequency / self.frequency_resolution))
        return min(max(k, 1), len(self.frequencies) - 1)

    def coherence(self, x: Sequence[float], y: Sequence[float], frequency: float) -> float:
        """Magnitude-squared coherence of ``x`` and ``y`` at one frequency.

        Parameters
        ----------
        x, y : array-like
            Equal-length signals, at least one segment long.
        frequency : float
            Target frequency in Hz; the nearest Welch bin is used.

        Returns
        -------
        float
            Coherence in [0, 1], or ``neutral_value`` when the inputs are
            short, mismatched, silent at that bin, or the frequency is
            outside (0, Nyquist].
        """
        k = self._bin(frequency)
        pair = self._prepare(x, y)
        if k is None or pair is None:
            return self.neutral_value

        pxy, pxx, pyy = self._spectra(*pair)
        denom = pxx[k] * pyy[k]
        if not np.isfinite(denom) or denom < self.min_power:
            return self.neutral_value
        return float(np.clip(np.abs(pxy[k]) ** 2 / denom, 0.0, 1.0))

    def coherence_spectrum(self, x: Sequence[float], y: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
        """Coherence at every Welch bin.

        Degenerate bins (and the whole spectrum for invalid inputs) read
        ``neutral_value``.
        """
        freqs = self.frequencies.copy()
        pair = self._prepare(x, y)
        if pair is None:
            return freqs, np.full(freqs.shape, self.neutral_value)

        pxy, pxx, pyy = self._spectra(*pair)
        denom = pxx * pyy
        cxy = np.full(freqs.shape, self.neutral_value)
        ok = np.isfinite(denom) & (denom >= self.min_power)
        cxy[ok] = np.clip(np.abs(pxy[ok]) ** 2 / denom[ok], 0.0, 1.0)
        return freqs, cxy

    def average_coherence(
        self,
        x: Sequence[float],
        y: Sequence[float],
        freq_range: Tuple[float, float] = (0.5, 6.0),
    ) -> float:
        """Mean coherence over the bins inside ``freq_range``."""
        freqs, cxy = self.coherence_spectrum(x, y)
        mask = (freqs >= freq_range[0]) & (freqs <= freq_range[1])
        if not mask.any():
            return self.neutral_value
        return float(cxy[mask].mean())

    def cross_spectral_phase(self, x: Sequence[float], y: Sequence[float], frequency: float) -> float:
        """Phase of the cross spectrum at one frequency (radians).

        Positive when ``y`` leads ``x``. Returns 0 when degenerate.
        """
        k = self._bin(frequency)
        pair = self._prepare(x, y)
        if k is None or pair is None:
            return 0.0
        pxy, pxx, pyy = self._spectra(*pair)
        if pxx[k] * pyy[k] < self.min_power:
            return 0.0
        return float(np.angle(pxy[k]))
