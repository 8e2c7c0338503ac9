"""Per-subject configuration read at session start.

A :class:`SubjectProfile` carries the breed, age, weight and the
optional rider tuning of one horse. :meth:`SubjectProfile.emission_overrides`
folds the tuning into an :class:`EmissionOverrides` record that
:func:`equigait.emission.build_emission_model` merges with the breed
priors.
"""

import logging
from dataclasses import dataclass, fields
from typing import Dict, Optional, Tuple

from .constants import BREED_GROUPS, BREED_TO_GROUP
from .schema import LearnedGaitParameters

logger = logging.getLogger(__name__)


def age_adjustment_factor(age_years: Optional[float]) -> float:
    """Frequency-range widening factor for a horse's age.

    Young and senior horses move less consistently, so their ranges are
    widened about their centres.
    """
    if age_years is None:
        return 1.0
    if age_years < 4:
        return 1.15
    if age_years < 15:
        return 1.0
    if age_years < 20:
        return 1.05
    return 1.1


def breed_group(breed: str) -> str:
    """Prior group for a breed name.

    Raises
    ------
    ValueError
        If the breed is unknown.
    """
    key = breed.lower().replace(" ", "_").replace("-", "_")
    if key in BREED_GROUPS:
        return key
    try:
        return BREED_TO_GROUP[key]
    except KeyError:
        raise ValueError(
            f"Unknown breed: {breed!r}. Available: {sorted(BREED_TO_GROUP)}"
        ) from None


@dataclass(frozen=True)
class EmissionOverrides:
    """Optional per-subject changes to the breed defaults."""

    speed_bounds: Optional[Dict[str, Tuple[float, float]]] = None
    transition_probability: Optional[float] = None
    canter_multiplier: float = 1.0
    frequency_offset: float = 0.0


@dataclass
class SubjectProfile:
    """Breed, physique and rider tuning of one horse.

    Tuning fields only take effect when ``has_custom_settings`` is set.

    Attributes
    ----------
    breed : str
        Breed name or prior group (see ``BREED_TO_GROUP``).
    age_years, weight_kg : float, optional
        Used for range widening and RMS normalisation.
    frequency_offset : float
        Hz added to every moving-gait frequency range.
    speed_sensitivity : float
        -0.5 to 0.5; positive lowers the speed needed for faster gaits.
    transition_speed : float
        0.3 to 2.0; higher means less sticky gaits.
    canter_sensitivity : float
        0.5 to 1.5 multiplier on the canter likelihood.
    walk_trot_threshold, trot_canter_threshold : float
        m/s shifts of the speed bounds between those gaits.
    """

    breed: str = "unknown"
    age_years: Optional[float] = None
    weight_kg: Optional[float] = None
    frequency_offset: float = 0.0
    speed_sensitivity: float = 0.0
    transition_speed: float = 1.0
    canter_sensitivity: float = 1.0
    walk_trot_threshold: float = 0.0
    trot_canter_threshold: float = 0.0
    has_custom_settings: bool = False
    learned: Optional[LearnedGaitParameters] = None

    def __post_init__(self):
        self.breed_group = breed_group(self.breed)
        if self.weight_kg is not None and self.weight_kg <= 0:
            raise ValueError(f"weight_kg must be positive, got {self.weight_kg}")

    @property
    def age_adjustment(self) -> float:
        return age_adjustment_factor(self.age_years)

    def custom_speed_bounds(self) -> Optional[Dict[str, Tuple[float, float]]]:
        if not self.has_custom_settings:
            return None
        s = self.speed_sensitivity
        wt = self.walk_trot_threshold
        tc = self.trot_canter_threshold
        return {
            "stationary": (0.0, 0.8),
            "walk": (0.2, 2.8 + wt),
            "trot": (1.2 + wt - s, 5.5 + tc),
            "canter": (2.5 + tc - s, 9.0),
            "gallop": (5.0 - s, 25.0),
        }

    @property
    def transition_probability(self) -> Optional[float]:
        if not self.has_custom_settings:
            return None
        p = 0.85 + (1.0 - self.transition_speed) * 0.05
        return max(0.75, min(0.95, p))

    def emission_overrides(self) -> EmissionOverrides:
        if not self.has_custom_settings:
            return EmissionOverrides()
        return EmissionOverrides(
            speed_bounds=self.custom_speed_bounds(),
            transition_probability=self.transition_probability,
            canter_multiplier=self.canter_sensitivity,
            frequency_offset=self.frequency_offset,
        )

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "SubjectProfile":
        """Build a profile from a config ``subject`` section.

        Unknown keys are ignored; ``learned`` may be a nested dict.
        """
        d = dict(d or {})
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in d.items() if k in known and v is not None}
        learned = kwargs.get("learned")
        if isinstance(learned, dict):
            kwargs["learned"] = LearnedGaitParameters.from_dict(learned)
        return cls(**kwargs)
