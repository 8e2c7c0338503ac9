"""Per-tick diagnostic records for offline tuning.

Collection is off unless enabled in the analyzer config. Records go to
a :class:`DiagnosticsSink`; the list sink keeps them in memory for
:func:`equigait.export.to_dataframe` and
:func:`equigait.plotting.plot_diagnostics`.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List

from .schema import GaitFeatureVector, HMMGaitState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiagnosticRecord:
    timestamp: float
    features: GaitFeatureVector
    probabilities: Dict[str, float] = field(default_factory=dict)
    state: HMMGaitState = HMMGaitState.STATIONARY
    confidence: float = 0.0

    def to_dict(self) -> dict:
        row = {
            "timestamp": self.timestamp,
            "state": self.state.value,
            "confidence": self.confidence,
        }
        row.update(self.features.to_dict())
        for state, p in self.probabilities.items():
            row[f"p_{state}"] = p
        return row


class DiagnosticsSink(ABC):
    """Receiver of diagnostic records."""

    @abstractmethod
    def record(self, record: DiagnosticRecord) -> None:
        """Accept one record."""


class ListDiagnosticsSink(DiagnosticsSink):
    """Keep every record in memory."""

    def __init__(self):
        self.records: List[DiagnosticRecord] = []

    def record(self, record: DiagnosticRecord) -> None:
        self.records.append(record)

    def clear(self) -> None:
        self.records.clear()

    def __len__(self) -> int:
        return len(self.records)


class LoggingDiagnosticsSink(DiagnosticsSink):
    """Write one DEBUG line per record."""

    def __init__(self, log: logging.Logger = None):
        self.log = log or logger

    def record(self, record: DiagnosticRecord) -> None:
        fv = record.features
        probs = " ".join(f"{s[:2]}={p:.2f}" for s, p in record.probabilities.items())
        self.log.debug(
            f"t={record.timestamp:.2f} {record.state.value} ({record.confidence:.2f}) "
            f"f0={fv.stride_frequency:.2f} h2={fv.h2_ratio:.2f} h3={fv.h3_ratio:.2f} "
            f"H={fv.spectral_entropy:.2f} xy={fv.xy_coherence:.2f} zy={fv.z_yaw_coherence:.2f} "
            f"rms={fv.vertical_rms:.3f} yaw={fv.yaw_rms:.3f} gps={fv.gps_speed:.1f} | {probs}"
        )
