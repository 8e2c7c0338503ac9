"""Offline tuning plots with matplotlib.

All functions return ``matplotlib.figure.Figure`` objects for saving or
display.

Functions
---------
plot_diagnostics
    Stacked state probabilities and stride frequency over time.
plot_segments
    Gait timeline of a session.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np
import matplotlib
if matplotlib.get_backend() == "":
    matplotlib.use("Agg")
import matplotlib.pyplot as plt

from .constants import GAIT_STATES
from .diagnostics import DiagnosticRecord
from .schema import GaitSegment

logger = logging.getLogger(__name__)

_GAIT_COLORS = {
    "stationary": "#969696",
    "walk": "#2171b5",
    "trot": "#1a9850",
    "canter": "#fd8d3c",
    "gallop": "#cb181d",
}


def plot_diagnostics(
    records: Sequence[DiagnosticRecord],
    title: Optional[str] = None,
) -> plt.Figure:
    """Plot estimator output per analysis tick.

    Parameters
    ----------
    records : sequence of DiagnosticRecord
        Records collected with diagnostics enabled.
    title : str, optional
        Figure title.

    Returns
    -------
    matplotlib.figure.Figure
    """
    fig, (ax_p, ax_f) = plt.subplots(2, 1, figsize=(12, 6), sharex=True)
    if not records:
        ax_p.text(0.5, 0.5, "No diagnostic records", ha="center", va="center",
                  transform=ax_p.transAxes)
        return fig

    t = np.array([r.timestamp for r in records])
    probs = np.array([[r.probabilities.get(s, 0.0) for s in GAIT_STATES] for r in records])
    ax_p.stackplot(t, probs.T, labels=GAIT_STATES,
                   colors=[_GAIT_COLORS[s] for s in GAIT_STATES], alpha=0.8)
    ax_p.set_ylim(0, 1)
    ax_p.set_ylabel("P(state)")
    ax_p.legend(loc="upper left", fontsize=8, ncol=len(GAIT_STATES))

    f0 = np.array([r.features.stride_frequency for r in records])
    conf = np.array([r.confidence for r in records])
    ax_f.plot(t, f0, color="black", lw=1.2, label="stride frequency")
    ax_f.set_ylabel("Hz")
    ax_c = ax_f.twinx()
    ax_c.plot(t, conf, color="#6baed6", lw=1.0, ls="--", label="confidence")
    ax_c.set_ylim(0, 1)
    ax_c.set_ylabel("confidence")
    ax_f.set_xlabel("Time (s)")

    if title:
        fig.suptitle(title)
    fig.tight_layout()
    return fig


def plot_segments(
    segments: List[GaitSegment],
    title: Optional[str] = None,
) -> plt.Figure:
    """Plot a horizontal gait timeline, one bar per segment."""
    fig, ax = plt.subplots(figsize=(12, 2.5))
    for seg in segments:
        end = seg.end_time if seg.end_time is not None else seg.start_time
        row = GAIT_STATES.index(seg.gait.value)
        ax.barh(row, end - seg.start_time, left=seg.start_time,
                color=_GAIT_COLORS[seg.gait.value], edgecolor="none")
    ax.set_yticks(range(len(GAIT_STATES)))
    ax.set_yticklabels(GAIT_STATES)
    ax.set_xlabel("Time (s)")
    if title:
        ax.set_title(title)
    fig.tight_layout()
    return fig
