"""Tests for subject profiles."""

import pytest

from equigait.profile import SubjectProfile, age_adjustment_factor, breed_group
from equigait.schema import LearnedGaitParameters


@pytest.mark.parametrize("age,factor", [
    (None, 1.0), (2, 1.15), (4, 1.0), (10, 1.0), (15, 1.05), (19.5, 1.05), (20, 1.1), (28, 1.1),
])
def test_age_adjustment_factor(age, factor):
    assert age_adjustment_factor(age) == factor


def test_breed_groups():
    assert breed_group("Shetland") == "pony"
    assert breed_group("new-forest") == "small_sport_pony"
    assert breed_group("hanoverian") == "warmblood"
    assert breed_group("unknown") == "default"
    assert breed_group("warmblood") == "warmblood"
    with pytest.raises(ValueError, match="Unknown breed"):
        breed_group("unicorn")


def test_tuning_ignored_without_custom_flag():
    p = SubjectProfile(breed="cob", speed_sensitivity=0.4, canter_sensitivity=1.4)
    assert p.custom_speed_bounds() is None
    assert p.transition_probability is None
    overrides = p.emission_overrides()
    assert overrides.canter_multiplier == 1.0
    assert overrides.speed_bounds is None


def test_custom_speed_bounds():
    p = SubjectProfile(speed_sensitivity=0.2, walk_trot_threshold=0.5,
                       trot_canter_threshold=-0.5, has_custom_settings=True)
    bounds = p.custom_speed_bounds()
    assert bounds["stationary"] == (0.0, 0.8)
    assert bounds["walk"] == pytest.approx((0.2, 3.3))
    assert bounds["trot"] == pytest.approx((1.5, 5.0))
    assert bounds["canter"] == pytest.approx((1.8, 9.0))
    assert bounds["gallop"] == pytest.approx((4.8, 25.0))


@pytest.mark.parametrize("speed,expected", [(1.0, 0.85), (0.3, 0.885), (2.0, 0.80), (-5.0, 0.95), (10.0, 0.75)])
def test_transition_probability_from_speed(speed, expected):
    p = SubjectProfile(transition_speed=speed, has_custom_settings=True)
    assert p.transition_probability == pytest.approx(expected)


def test_non_positive_weight_raises():
    with pytest.raises(ValueError, match="weight_kg"):
        SubjectProfile(weight_kg=0)


def test_from_dict_builds_learned():
    p = SubjectProfile.from_dict({
        "breed": "arabian",
        "age_years": 22,
        "weight_kg": None,
        "learned": {"walk_frequency_center": 1.4, "ride_count": 5},
        "colour": "grey",
    })
    assert p.breed_group == "arabian"
    assert p.age_adjustment == 1.1
    assert p.weight_kg is None
    assert isinstance(p.learned, LearnedGaitParameters)
    assert p.learned.ride_count == 5
