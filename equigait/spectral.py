"""Windowed spectral features of the vertical bounce signal.

Each window is mean-removed, Hann-tapered and transformed with a real
FFT. Power is taken as ``|X|^2 / N^2`` and the DC bin is excluded from
every total.

Functions
---------
correct_stride_frequency
    Map a subharmonic peak back to the stride rate.

Classes
-------
SpectralEngine
    Dominant frequency, harmonic ratios and spectral entropy per window.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy import signal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpectralResult:
    """Features of one analysis window. All zeros means neutral."""

    dominant_frequency: float = 0.0
    h2_ratio: float = 0.0
    h3_ratio: float = 0.0
    spectral_entropy: float = 0.0
    fundamental_ratio: float = 0.0
    total_power: float = 0.0

    @property
    def is_neutral(self) -> bool:
        return self.total_power == 0.0


def correct_stride_frequency(result: SpectralResult) -> float:
    """Stride frequency implied by a spectral result.

    When the band-limited peak carries less power than its second
    harmonic, the peak is a subharmonic and the stride rate is twice it.
    """
    f0 = result.dominant_frequency
    if f0 > 0 and result.h2_ratio > result.fundamental_ratio:
        return 2.0 * f0
    return f0


class SpectralEngine:
    """FFT feature extractor for a fixed window.

    Parameters
    ----------
    window_size : int
        Samples per analysis window (default 256).
    sample_rate : float
        Sampling rate in Hz (default 100).
    search_range : tuple of float
        Default band (Hz) for the dominant-frequency search.
    negligible_power : float
        Total power below which a window is treated as silence.
    """

    def __init__(
        self,
        window_size: int = 256,
        sample_rate: float = 100.0,
        search_range: Tuple[float, float] = (0.5, 6.0),
        negligible_power: float = 1e-10,
    ):
        if window_size < 4:
            raise ValueError(f"window_size must be >= 4, got {window_size}")
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        self.window_size = int(window_size)
        self.sample_rate = float(sample_rate)
        self.search_range = tuple(search_range)
        self.negligible_power = negligible_power
        self._taper = signal.get_window("hann", self.window_size)
        self.frequencies = np.fft.rfftfreq(self.window_size, d=1.0 / self.sample_rate)
        self._power = np.zeros_like(self.frequencies)
        self._total = 0.0

    @property
    def frequency_resolution(self) -> float:
        return self.sample_rate / self.window_size

    @property
    def nyquist(self) -> float:
        return self.sample_rate / 2.0

    # ── Spectrum ─────────────────────────────────────────────────────

    def _load(self, samples: Sequence[float]) -> bool:
        """Compute and keep the power spectrum of the latest window.

        Returns False (and clears the spectrum) when the input is too
        short or numerically silent.
        """
        x = np.asarray(samples, dtype=float)
        if x.size < self.window_size:
            self._power = np.zeros_like(self.frequencies)
            self._total = 0.0
            return False

        x = np.nan_to_num(x[-self.window_size:], nan=0.0, posinf=0.0, neginf=0.0)
        x = x - x.mean()
        spectrum = np.fft.rfft(x * self._taper)
        power = np.abs(spectrum) ** 2 / self.window_size ** 2
        total = float(power[1:].sum())
        if not np.isfinite(total) or total < self.negligible_power:
            self._power = np.zeros_like(self.frequencies)
            self._total = 0.0
            return False

        self._power = power
        self._total = total
        return True

    def power_spectrum(self) -> Tuple[np.ndarray, np.ndarray]:
        """Frequencies and power of the last processed window."""
        return self.frequencies.copy(), self._power.copy()

    # ── Features ─────────────────────────────────────────────────────

    def process_window(self, samples: Sequence[float]) -> SpectralResult:
        """Extract features from the ``window_size`` most recent samples.

        Parameters
        ----------
        samples : array-like
            At least ``window_size`` values; older values are ignored.

        Returns
        -------
        SpectralResult
            Neutral (all zeros) when the input is short or silent.
        """
        if not self._load(samples):
            return SpectralResult()

        f0 = self.find_dominant_frequency()
        return SpectralResult(
            dominant_frequency=f0,
            h2_ratio=self.harmonic_ratio(f0, 2),
            h3_ratio=self.harmonic_ratio(f0, 3),
            spectral_entropy=self.spectral_entropy(),
            fundamental_ratio=self.harmonic_ratio(f0, 1),
            total_power=self._total,
        )

    def find_dominant_frequency(self, freq_range: Optional[Tuple[float, float]] = None) -> float:
        """Frequency of maximum power within a band of the last window.

        The peak bin is refined with quadratic interpolation over its
        neighbours. Returns 0 when the band is empty or holds no power.
        """
        if self._total == 0.0:
            return 0.0
        lo, hi = freq_range if freq_range is not None else self.search_range
        band = np.flatnonzero((self.frequencies >= lo) & (self.frequencies <= hi))
        band = band[band >= 1]
        if band.size == 0:
            return 0.0

        k = int(band[np.argmax(self._power[band])])
        peak = self._power[k]
        if peak <= 0.0:
            return 0.0

        delta = 0.0
        if 0 < k < len(self._power) - 1:
            a, b, c = self._power[k - 1], peak, self._power[k + 1]
            denom = a - 2.0 * b + c
            if denom != 0.0:
                delta = float(np.clip(0.5 * (a - c) / denom, -0.5, 0.5))
        return (k + delta) * self.frequency_resolution

    def harmonic_ratio(self, fundamental: float, n: int) -> float:
        """Fraction of total power within one bin of ``n * fundamental``."""
        target = n * fundamental
        if self._total == 0.0 or fundamental <= 0 or target > self.nyquist:
            return 0.0
        k = int(round(target / self.frequency_resolution))
        lo = max(1, k - 1)
        hi = min(len(self._power) - 1, k + 1)
        ratio = float(self._power[lo:hi + 1].sum()) / self._total
        return min(max(ratio, 0.0), 1.0)

    def spectral_entropy(self) -> float:
        """Shannon entropy of the normalised spectrum, scaled to [0, 1]."""
        if self._total == 0.0:
            return 0.0
        p = self._power[1:] / self._total
        n_bins = p.size
        p = p[p > 0]
        if n_bins < 2:
            return 0.0
        h = -float(np.sum(p * np.log(p)))
        return min(max(h / np.log(n_bins), 0.0), 1.0)

    def process_with_overlap(self, samples: Sequence[float], overlap: float = 0.8) -> List[SpectralResult]:
        """Slide the window across a long recording.

        Parameters
        ----------
        samples : array-like
            Signal longer than one window.
        overlap : float
            Fraction of the window shared by consecutive windows, in [0, 1).

        Returns
        -------
        list of SpectralResult
            One result per hop; empty when the signal is shorter than
            one window.
        """
        if not 0.0 <= overlap < 1.0:
            raise ValueError(f"overlap must be in [0, 1), got {overlap}")
        x = np.asarray(samples, dtype=float)
        hop = max(1, int(self.window_size * (1.0 - overlap)))
        results = []
        for start in range(0, x.size - self.window_size + 1, hop):
            results.append(self.process_window(x[start:start + self.window_size]))
        logger.debug(f"Processed {len(results)} windows (hop {hop})")
        return results
