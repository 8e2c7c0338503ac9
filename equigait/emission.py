"""Effective emission model for one subject.

:func:`build_emission_model` merges breed priors, the age factor, rider
overrides and learned parameters into a single frozen
:class:`EmissionModel`. The estimator never mutates it; reconfiguring
builds a new one.

Functions
---------
build_emission_model
    Merge all per-subject inputs into an EmissionModel.
build_transition_matrix
    Row-stochastic matrix with a sticky diagonal.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from .constants import (
    BREED_GROUPS,
    DEFAULT_EMISSION_RANGES,
    DEFAULT_FEATURE_WEIGHTS,
    DEFAULT_SPEED_BOUNDS,
    FEATURE_NAMES,
    GAIT_STATES,
    STATIONARY_FREQUENCY_RANGE,
)
from .profile import EmissionOverrides, breed_group
from .schema import LearnedGaitParameters

logger = logging.getLogger(__name__)

_MIN_STD = 1e-3


def _frozen(arr) -> np.ndarray:
    a = np.array(arr, dtype=float)
    a.setflags(write=False)
    return a


@dataclass(frozen=True, eq=False)
class EmissionModel:
    """Per-state Gaussian feature model plus transition structure.

    Attributes
    ----------
    means, stds : ndarray, shape (n_states, n_features)
        Gaussian parameters in ``GAIT_STATES`` x ``FEATURE_NAMES`` order.
    weights : ndarray, shape (n_features,)
        Per-feature log-likelihood weights.
    speed_bounds : ndarray, shape (n_states, 2)
        Plausible GPS speed interval per state (m/s).
    transition_matrix : ndarray, shape (n_states, n_states)
        Row-stochastic; row is the previous state.
    canter_multiplier : float
        Likelihood multiplier applied to canter.
    """

    means: np.ndarray
    stds: np.ndarray
    weights: np.ndarray
    speed_bounds: np.ndarray
    transition_matrix: np.ndarray
    self_transition: float
    canter_multiplier: float = 1.0
    breed_group: str = "default"
    age_adjustment: float = 1.0
    learned_blend: float = 0.0

    def mean(self, state: str, feature: str) -> float:
        return float(self.means[GAIT_STATES.index(state), FEATURE_NAMES.index(feature)])

    def std(self, state: str, feature: str) -> float:
        return float(self.stds[GAIT_STATES.index(state), FEATURE_NAMES.index(feature)])

    def frequency_range(self, state: str) -> Tuple[float, float]:
        """Stride-frequency range implied by the Gaussian (mean +/- 2 sd)."""
        m = self.mean(state, "stride_frequency")
        s = self.std(state, "stride_frequency")
        return m - 2.0 * s, m + 2.0 * s


def build_transition_matrix(self_transition: float = 0.85, non_adjacent_weight: float = 0.1) -> np.ndarray:
    """Sticky transition matrix over ``GAIT_STATES``.

    The off-diagonal mass ``1 - self_transition`` is shared between the
    other states, with weight 1 for neighbours in gait order and
    ``non_adjacent_weight`` for the rest, so any gait can follow any other.

    Raises
    ------
    ValueError
        If ``self_transition`` is outside (0, 1) or the weight is negative.
    """
    if not 0.0 < self_transition < 1.0:
        raise ValueError(f"self_transition must be in (0, 1), got {self_transition}")
    if non_adjacent_weight < 0:
        raise ValueError(f"non_adjacent_weight must be >= 0, got {non_adjacent_weight}")

    n = len(GAIT_STATES)
    matrix = np.zeros((n, n))
    for i in range(n):
        w = np.array([1.0 if abs(i - j) == 1 else non_adjacent_weight for j in range(n)])
        w[i] = 0.0
        matrix[i] = w / w.sum() * (1.0 - self_transition)
        matrix[i, i] = self_transition
    return matrix


def _range_to_gaussian(lo: float, hi: float) -> Tuple[float, float]:
    return (lo + hi) / 2.0, max((hi - lo) / 4.0, _MIN_STD)


def build_emission_model(
    breed: str = "unknown",
    age_adjustment: float = 1.0,
    overrides: Optional[EmissionOverrides] = None,
    learned: Optional[LearnedGaitParameters] = None,
    feature_weights: Optional[Dict[str, float]] = None,
    self_transition: float = 0.85,
    non_adjacent_weight: float = 0.1,
) -> EmissionModel:
    """Merge per-subject inputs into one immutable emission model.

    Parameters
    ----------
    breed : str
        Breed name or prior group.
    age_adjustment : float
        Factor (>= 1 widens) applied to every moving-gait frequency range
        about its centre.
    overrides : EmissionOverrides, optional
        Custom speed bounds, transition probability, canter multiplier
        and frequency offset.
    learned : LearnedGaitParameters, optional
        Adapted centres blended in by ``learned.blend_weight``.
    feature_weights : dict, optional
        Partial override of ``DEFAULT_FEATURE_WEIGHTS``.
    self_transition : float
        Diagonal of the transition matrix when ``overrides`` sets none.
    non_adjacent_weight : float
        Relative weight of jumps between non-neighbouring gaits.

    Returns
    -------
    EmissionModel

    Raises
    ------
    ValueError
        For an unknown breed or feature name, a non-positive age factor
        or canter multiplier, or negative weights.
    """
    overrides = overrides or EmissionOverrides()
    group = breed_group(breed)
    priors = BREED_GROUPS[group]
    if age_adjustment <= 0:
        raise ValueError(f"age_adjustment must be positive, got {age_adjustment}")
    if overrides.canter_multiplier <= 0:
        raise ValueError(f"canter_multiplier must be positive, got {overrides.canter_multiplier}")

    weights = dict(DEFAULT_FEATURE_WEIGHTS)
    for name, w in (feature_weights or {}).items():
        if name not in weights:
            raise ValueError(f"Unknown feature: {name!r}. Available: {list(FEATURE_NAMES)}")
        if w < 0:
            raise ValueError(f"Feature weight for {name!r} must be >= 0, got {w}")
        weights[name] = float(w)

    n_states, n_features = len(GAIT_STATES), len(FEATURE_NAMES)
    means = np.zeros((n_states, n_features))
    stds = np.zeros((n_states, n_features))
    blend = learned.blend_weight if learned is not None else 0.0

    f_idx = FEATURE_NAMES.index("stride_frequency")
    for i, state in enumerate(GAIT_STATES):
        for feature, (lo, hi) in DEFAULT_EMISSION_RANGES[state].items():
            j = FEATURE_NAMES.index(feature)
            means[i, j], stds[i, j] = _range_to_gaussian(lo, hi)

        if state == "stationary":
            means[i, f_idx], stds[i, f_idx] = _range_to_gaussian(*STATIONARY_FREQUENCY_RANGE)
            continue

        lo, hi = priors[state]
        center, std = _range_to_gaussian(lo, hi)
        std *= age_adjustment
        center += overrides.frequency_offset
        if blend > 0 and learned.frequency_center(state) is not None:
            center = (1.0 - blend) * center + blend * learned.frequency_center(state)
        means[i, f_idx], stds[i, f_idx] = center, std

    if blend > 0:
        for state, feature, value in (
            ("trot", "h2_ratio", learned.trot_h2_mean),
            ("canter", "h3_ratio", learned.canter_h3_mean),
        ):
            if value is not None:
                i, j = GAIT_STATES.index(state), FEATURE_NAMES.index(feature)
                means[i, j] = (1.0 - blend) * means[i, j] + blend * value

    bounds = dict(DEFAULT_SPEED_BOUNDS)
    if overrides.speed_bounds:
        bounds.update(overrides.speed_bounds)
    speed_bounds = [bounds[state] for state in GAIT_STATES]

    p_self = overrides.transition_probability
    if p_self is None:
        p_self = self_transition
    transition = build_transition_matrix(p_self, non_adjacent_weight)

    logger.debug(
        f"Emission model: breed group {group}, age x{age_adjustment:.2f}, "
        f"offset {overrides.frequency_offset:+.2f} Hz, learned blend {blend:.2f}, "
        f"self-transition {p_self:.3f}"
    )
    return EmissionModel(
        means=_frozen(means),
        stds=_frozen(stds),
        weights=_frozen([weights[name] for name in FEATURE_NAMES]),
        speed_bounds=_frozen(speed_bounds),
        transition_matrix=_frozen(transition),
        self_transition=p_self,
        canter_multiplier=overrides.canter_multiplier,
        breed_group=group,
        age_adjustment=age_adjustment,
        learned_blend=blend,
    )
