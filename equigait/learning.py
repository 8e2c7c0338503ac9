"""Cross-session adaptation of per-subject gait parameters.

After each completed session the stride frequencies observed in long
enough segments are folded into the subject's
:class:`LearnedGaitParameters` with an exponential moving average.
Scheduling and persistence are left to the caller.
"""

import logging
import time
from typing import Iterable, Optional

import numpy as np

from .constants import MOVING_GAITS
from .schema import GaitSegment, LearnedGaitParameters

logger = logging.getLogger(__name__)


def _weighted_mean(segments, attr: str) -> Optional[float]:
    values = np.array([getattr(s, attr) for s in segments], dtype=float)
    durations = np.array([s.duration() for s in segments], dtype=float)
    if values.size == 0 or durations.sum() <= 0:
        return None
    return float(np.average(values, weights=durations))


def _ema(old: Optional[float], new: Optional[float], alpha: float) -> Optional[float]:
    if new is None:
        return old
    if old is None:
        return new
    return (1.0 - alpha) * old + alpha * new


def update_learned_parameters(
    learned: Optional[LearnedGaitParameters],
    segments: Iterable[GaitSegment],
    alpha: float = 0.2,
    min_duration: float = 10.0,
    now: Optional[float] = None,
) -> LearnedGaitParameters:
    """Fold one session's segments into the learned parameters.

    Parameters
    ----------
    learned : LearnedGaitParameters or None
        Current parameters; ``None`` for a subject's first session.
    segments : iterable of GaitSegment
        Segments of the finished session. Open segments, segments
        shorter than ``min_duration`` seconds and segments without a
        stride frequency are ignored.
    alpha : float
        EMA weight of the new session, in (0, 1].
    min_duration : float
        Minimum segment duration in seconds.
    now : float, optional
        Timestamp recorded as ``last_updated`` (default: current time).

    Returns
    -------
    LearnedGaitParameters
        A new object with ``ride_count`` incremented.

    Raises
    ------
    ValueError
        If ``alpha`` is outside (0, 1].
    """
    if not 0.0 < alpha <= 1.0:
        raise ValueError(f"alpha must be in (0, 1], got {alpha}")
    learned = learned or LearnedGaitParameters()

    eligible = [
        s for s in segments
        if not s.is_open and s.duration() >= min_duration and s.stride_frequency > 0
    ]
    changes = {}
    for gait in MOVING_GAITS:
        observed = _weighted_mean([s for s in eligible if s.gait.value == gait], "stride_frequency")
        key = f"{gait}_frequency_center"
        changes[key] = _ema(getattr(learned, key), observed, alpha)

    trot = [s for s in eligible if s.gait.value == "trot"]
    canter = [s for s in eligible if s.gait.value == "canter"]
    changes["trot_h2_mean"] = _ema(learned.trot_h2_mean, _weighted_mean(trot, "harmonic_ratio_h2"), alpha)
    changes["canter_h3_mean"] = _ema(learned.canter_h3_mean, _weighted_mean(canter, "harmonic_ratio_h3"), alpha)

    updated = learned.with_updates(
        ride_count=learned.ride_count + 1,
        last_updated=time.time() if now is None else now,
        **changes,
    )
    logger.info(
        f"Updated learned gait parameters from {len(eligible)} segments "
        f"(ride {updated.ride_count})"
    )
    return updated
