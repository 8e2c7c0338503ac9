"""Forward-filter gait estimator.

Carries a posterior over the five gait states. Each update propagates
the previous posterior through the transition matrix, multiplies by the
emission likelihood of the new feature vector and renormalises, all in
log space. The posterior is never reset by reconfiguration.
"""

import logging
from typing import Dict, Optional, Union

import numpy as np
from scipy.special import logsumexp

from .constants import FEATURE_NAMES, GAIT_STATES, OPTIONAL_FEATURES
from .emission import EmissionModel, build_emission_model
from .profile import EmissionOverrides, SubjectProfile
from .schema import GaitFeatureVector, HMMGaitState, LearnedGaitParameters

logger = logging.getLogger(__name__)

_HALF_LOG_2PI = 0.5 * np.log(2.0 * np.pi)
_OPTIONAL_IDX = [FEATURE_NAMES.index(name) for name in OPTIONAL_FEATURES]
_CANTER = GAIT_STATES.index("canter")


class GaitHMM:
    """Hidden-Markov gait filter.

    Parameters
    ----------
    feature_weights : dict, optional
        Per-feature emission weights (see ``DEFAULT_FEATURE_WEIGHTS``).
    self_transition : float
        Default probability of staying in the same gait per update.
    non_adjacent_weight : float
        Relative weight of transitions between non-neighbouring gaits.
    speed_penalty : float
        Likelihood factor for states whose speed bounds exclude the GPS
        speed, at full GPS confidence.
    gps_accuracy_good, gps_accuracy_poor : float
        Horizontal accuracies (m) of full and zero GPS confidence.
    """

    def __init__(
        self,
        feature_weights: Optional[Dict[str, float]] = None,
        self_transition: float = 0.85,
        non_adjacent_weight: float = 0.1,
        speed_penalty: float = 0.05,
        gps_accuracy_good: float = 5.0,
        gps_accuracy_poor: float = 50.0,
    ):
        if not 0.0 < speed_penalty <= 1.0:
            raise ValueError(f"speed_penalty must be in (0, 1], got {speed_penalty}")
        if gps_accuracy_poor <= gps_accuracy_good:
            raise ValueError("gps_accuracy_poor must exceed gps_accuracy_good")
        self.speed_penalty = speed_penalty
        self.gps_accuracy_good = gps_accuracy_good
        self.gps_accuracy_poor = gps_accuracy_poor
        self._model_kwargs = dict(
            feature_weights=feature_weights,
            self_transition=self_transition,
            non_adjacent_weight=non_adjacent_weight,
        )
        self._breed = "unknown"
        self._age_adjustment = 1.0
        self._overrides = EmissionOverrides()
        self._learned: Optional[LearnedGaitParameters] = None
        self.model = self._rebuild()
        self.reset()

    def _rebuild(self) -> EmissionModel:
        return build_emission_model(
            breed=self._breed,
            age_adjustment=self._age_adjustment,
            overrides=self._overrides,
            learned=self._learned,
            **self._model_kwargs,
        )

    # ── Configuration ────────────────────────────────────────────────

    def configure(
        self,
        breed: str = "unknown",
        age_adjustment: float = 1.0,
        custom_bounds: Optional[dict] = None,
        transition_probability: Optional[float] = None,
        canter_multiplier: Optional[float] = None,
        frequency_offset: Optional[float] = None,
    ) -> None:
        """Replace emission and transition parameters.

        The current posterior is kept.
        """
        self._breed = breed
        self._age_adjustment = age_adjustment
        self._overrides = EmissionOverrides(
            speed_bounds=custom_bounds,
            transition_probability=transition_probability,
            canter_multiplier=1.0 if canter_multiplier is None else canter_multiplier,
            frequency_offset=0.0 if frequency_offset is None else frequency_offset,
        )
        self.model = self._rebuild()
        logger.info(f"Configured estimator for breed {breed!r} (age x{age_adjustment:.2f})")

    def apply_learned_parameters(self, learned: Optional[LearnedGaitParameters]) -> None:
        """Overlay per-subject adapted centres onto the current model."""
        self._learned = learned
        self.model = self._rebuild()
        if learned is not None:
            logger.info(
                f"Applied learned parameters from {learned.ride_count} rides "
                f"(blend {learned.blend_weight:.2f})"
            )

    def configure_profile(self, profile: SubjectProfile) -> None:
        overrides = profile.emission_overrides()
        self.configure(
            breed=profile.breed,
            age_adjustment=profile.age_adjustment,
            custom_bounds=overrides.speed_bounds,
            transition_probability=overrides.transition_probability,
            canter_multiplier=overrides.canter_multiplier,
            frequency_offset=overrides.frequency_offset,
        )
        self.apply_learned_parameters(profile.learned)

    # ── Filtering ────────────────────────────────────────────────────

    def reset(self) -> None:
        self._probs = np.zeros(len(GAIT_STATES))
        self._probs[0] = 1.0

    def log_likelihoods(self, features: GaitFeatureVector) -> np.ndarray:
        """Weighted log emission likelihood of each state.

        Every term, including the canter multiplier and the GPS speed
        constraint, is scaled by ``features.quality``, so a quality-0
        vector leaves only the transition prior. Companion-device
        features are skipped while they read 0.
        """
        model = self.model
        x = np.array([getattr(features, name) for name in FEATURE_NAMES])
        weights = model.weights.copy()
        for j in _OPTIONAL_IDX:
            if x[j] <= 0.0:
                weights[j] = 0.0

        ll = np.zeros(len(GAIT_STATES))
        q = features.quality
        if q > 0:
            with np.errstate(over="ignore", invalid="ignore"):
                z = (x - model.means) / model.stds
                per_feature = -0.5 * z ** 2 - np.log(model.stds) - _HALF_LOG_2PI
                per_feature = np.where(weights > 0, per_feature * weights, 0.0)
                ll = q * per_feature.sum(axis=1)
            ll[_CANTER] += q * np.log(model.canter_multiplier)

        confidence = (self.gps_accuracy_poor - features.gps_accuracy) / (
            self.gps_accuracy_poor - self.gps_accuracy_good
        )
        confidence = q * float(np.clip(confidence, 0.0, 1.0))
        if confidence > 0:
            lo, hi = model.speed_bounds[:, 0], model.speed_bounds[:, 1]
            outside = (features.gps_speed < lo) | (features.gps_speed > hi)
            ll[outside] += confidence * np.log(self.speed_penalty)

        return np.where(np.isnan(ll), -np.inf, ll)

    def update(self, features: GaitFeatureVector) -> HMMGaitState:
        """One filtering step; returns the new most probable state."""
        prior = self._probs @ self.model.transition_matrix
        with np.errstate(divide="ignore"):
            log_post = np.log(prior) + self.log_likelihoods(features)

        norm = logsumexp(log_post)
        if not np.isfinite(norm):
            logger.warning("Degenerate emission likelihoods, keeping previous distribution")
            return self.current_state

        post = np.exp(log_post - norm)
        total = post.sum()
        if not np.isfinite(total) or total < 1e-10:
            logger.warning("Posterior collapsed, keeping previous distribution")
            return self.current_state
        self._probs = post / total
        return self.current_state

    # ── Queries ──────────────────────────────────────────────────────

    @property
    def current_state(self) -> HMMGaitState:
        return HMMGaitState(GAIT_STATES[int(np.argmax(self._probs))])

    @property
    def state_confidence(self) -> float:
        return float(self._probs.max())

    def probability(self, state: Union[HMMGaitState, str]) -> float:
        return float(self._probs[GAIT_STATES.index(HMMGaitState(state).value)])

    @property
    def probabilities(self) -> Dict[str, float]:
        return {state: float(p) for state, p in zip(GAIT_STATES, self._probs)}

    @property
    def distribution(self) -> np.ndarray:
        return self._probs.copy()
