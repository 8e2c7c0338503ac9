"""Tabular export of session results.

Functions
---------
to_dataframe
    Convert segments or diagnostic records to a pandas DataFrame.
"""

import logging
from typing import Iterable, Union

import pandas as pd

from .constants import FEATURE_NAMES, GAIT_STATES
from .diagnostics import DiagnosticRecord
from .schema import GaitSegment

logger = logging.getLogger(__name__)

_SEGMENT_COLUMNS = [
    "gait", "start_time", "end_time", "duration", "distance", "average_speed",
    "lead", "lead_confidence", "rhythm_score", "stride_frequency",
    "harmonic_ratio_h2", "harmonic_ratio_h3", "spectral_entropy",
    "vertical_yaw_coherence",
]

_DIAGNOSTIC_COLUMNS = (
    ["timestamp", "state", "confidence"]
    + list(FEATURE_NAMES)
    + ["gps_speed", "gps_accuracy", "quality"]
    + [f"p_{s}" for s in GAIT_STATES]
)


def to_dataframe(
    items: Iterable[Union[GaitSegment, DiagnosticRecord]],
    what: str = "segments",
) -> pd.DataFrame:
    """Convert session results to a DataFrame.

    Parameters
    ----------
    items : iterable
        ``GaitSegment`` objects for ``what="segments"`` or
        ``DiagnosticRecord`` objects for ``what="diagnostics"``.
    what : str, optional
        ``"segments"`` (one row per segment) or ``"diagnostics"`` (one
        row per analysis tick, features and state probabilities).

    Returns
    -------
    pd.DataFrame

    Raises
    ------
    ValueError
        If *what* is not one of the recognized values.
    """
    valid_whats = ("segments", "diagnostics")
    if what not in valid_whats:
        raise ValueError(f"what must be one of {valid_whats}, got {what!r}")

    rows = [item.to_dict() for item in items]
    columns = _SEGMENT_COLUMNS if what == "segments" else _DIAGNOSTIC_COLUMNS
    if not rows:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(rows)
    ordered = [c for c in columns if c in df.columns]
    df = df[ordered]
    sort_key = "start_time" if what == "segments" else "timestamp"
    df = df.sort_values(sort_key).reset_index(drop=True)
    logger.debug(f"Built {what} DataFrame with {len(df)} rows")
    return df
