"""Tests for the HMM gait estimator."""

import math

import numpy as np
import pytest

from conftest import make_feature_vector

from equigait.hmm import GaitHMM
from equigait.schema import GaitFeatureVector, HMMGaitState, LearnedGaitParameters


# ── 1. Initial state ────────────────────────────────────────────────

def test_initial_state_is_stationary():
    hmm = GaitHMM()
    assert hmm.current_state == HMMGaitState.STATIONARY
    assert hmm.state_confidence == 1.0
    assert hmm.probability("walk") == 0.0


def test_reset_restores_stationary_prior():
    hmm = GaitHMM()
    for _ in range(5):
        hmm.update(make_feature_vector("trot"))
    hmm.reset()
    assert hmm.current_state == HMMGaitState.STATIONARY
    assert hmm.state_confidence == 1.0


# ── 2. Classification at emission centres ───────────────────────────

@pytest.mark.parametrize("state", ["stationary", "walk", "trot", "canter", "gallop"])
def test_centre_features_classify_to_their_state(state):
    hmm = GaitHMM()
    for _ in range(10):
        hmm.update(make_feature_vector(state))
    assert hmm.current_state == HMMGaitState(state)
    assert hmm.state_confidence > 0.9


# ── 3. Renormalisation ──────────────────────────────────────────────

@pytest.mark.parametrize("features", [
    GaitFeatureVector(),
    GaitFeatureVector(stride_frequency=1e300, vertical_rms=1e300, yaw_rms=1e300),
    GaitFeatureVector(stride_frequency=math.nan, h2_ratio=math.inf),
    GaitFeatureVector(gps_speed=1e6, gps_accuracy=0.0),
    GaitFeatureVector(quality=0.0),
])
def test_distribution_sums_to_one(features):
    hmm = GaitHMM()
    for _ in range(3):
        hmm.update(make_feature_vector("canter"))
        hmm.update(features)
        assert sum(hmm.probabilities.values()) == pytest.approx(1.0)
        assert np.all(np.isfinite(hmm.distribution))


def test_random_features_keep_normalisation():
    rng = np.random.default_rng(42)
    hmm = GaitHMM()
    for _ in range(200):
        fv = GaitFeatureVector(
            stride_frequency=rng.uniform(0, 50),
            h2_ratio=rng.uniform(), h3_ratio=rng.uniform(),
            spectral_entropy=rng.uniform(),
            xy_coherence=rng.uniform(), z_yaw_coherence=rng.uniform(),
            vertical_rms=rng.uniform(0, 5), yaw_rms=rng.uniform(0, 5),
            gps_speed=rng.uniform(0, 30), gps_accuracy=rng.uniform(0, 200),
        )
        hmm.update(fv)
        assert hmm.distribution.sum() == pytest.approx(1.0)


# ── 4. Stickiness ───────────────────────────────────────────────────

def test_weak_evidence_does_not_flip_settled_state():
    hmm = GaitHMM()
    for _ in range(10):
        hmm.update(make_feature_vector("trot"))
    hmm.update(make_feature_vector("walk", quality=0.1))
    assert hmm.current_state == HMMGaitState.TROT


def test_low_information_updates_never_gain_confidence():
    hmm = GaitHMM()
    last = hmm.state_confidence
    for _ in range(100):
        hmm.update(GaitFeatureVector(quality=0.0))
        assert hmm.state_confidence <= last + 1e-12
        last = hmm.state_confidence
    assert hmm.state_confidence < 0.65


# ── 5. Configuration ────────────────────────────────────────────────

def test_configure_keeps_distribution():
    hmm = GaitHMM()
    for _ in range(5):
        hmm.update(make_feature_vector("trot"))
    before = hmm.distribution
    hmm.configure(breed="warmblood", age_adjustment=1.05, transition_probability=0.9)
    np.testing.assert_array_equal(hmm.distribution, before)
    assert hmm.model.breed_group == "warmblood"
    assert hmm.model.self_transition == 0.9


def test_apply_learned_parameters_moves_centre():
    hmm = GaitHMM()
    hmm.apply_learned_parameters(LearnedGaitParameters(walk_frequency_center=1.2, ride_count=10))
    assert hmm.model.mean("walk", "stride_frequency") == pytest.approx(0.5 * 1.6 + 0.5 * 1.2)
    hmm.configure(breed="unknown")
    assert hmm.model.mean("walk", "stride_frequency") == pytest.approx(1.4)


def test_canter_multiplier_scales_canter_likelihood():
    fv = make_feature_vector("trot")
    base = GaitHMM().log_likelihoods(fv)
    hmm = GaitHMM()
    hmm.configure(canter_multiplier=2.0)
    boosted = hmm.log_likelihoods(fv)
    assert boosted[3] - base[3] == pytest.approx(np.log(2.0))
    np.testing.assert_allclose(np.delete(boosted, 3), np.delete(base, 3))


# ── 6. GPS speed constraint ─────────────────────────────────────────

def test_accurate_gps_penalises_out_of_bounds_states():
    hmm = GaitHMM()
    accurate = hmm.log_likelihoods(make_feature_vector("walk", gps_speed=0.0, gps_accuracy=3.0))
    absent = hmm.log_likelihoods(make_feature_vector("walk", gps_speed=0.0, gps_accuracy=100.0))
    diff = accurate - absent
    assert diff[0] == pytest.approx(0.0)
    for i in (1, 2, 3, 4):
        assert diff[i] == pytest.approx(np.log(0.05))


def test_poor_gps_barely_constrains():
    hmm = GaitHMM()
    poor = hmm.log_likelihoods(make_feature_vector("walk", gps_speed=0.0, gps_accuracy=50.0))
    absent = hmm.log_likelihoods(make_feature_vector("walk", gps_speed=0.0, gps_accuracy=100.0))
    np.testing.assert_allclose(poor, absent)


def test_gps_constraint_scaled_by_quality():
    hmm = GaitHMM()
    silent = hmm.log_likelihoods(GaitFeatureVector(quality=0.0, gps_speed=12.0, gps_accuracy=3.0))
    np.testing.assert_array_equal(silent, np.zeros(5))
    half = hmm.log_likelihoods(GaitFeatureVector(quality=0.5, gps_speed=12.0, gps_accuracy=3.0))
    full = hmm.log_likelihoods(GaitFeatureVector(quality=1.0, gps_speed=12.0, gps_accuracy=3.0))
    no_gps = hmm.log_likelihoods(GaitFeatureVector(quality=1.0, gps_speed=12.0))
    assert full[0] - no_gps[0] == pytest.approx(np.log(0.05))
    assert half[4] == pytest.approx(0.5 * full[4])


def test_quality_zero_with_accurate_gps_stays_below_threshold():
    hmm = GaitHMM()
    for _ in range(100):
        hmm.update(GaitFeatureVector(quality=0.0, gps_speed=12.0, gps_accuracy=3.0))
        assert hmm.probability("gallop") < 0.65


def test_companion_features_only_count_when_present():
    hmm = GaitHMM()
    without = hmm.log_likelihoods(make_feature_vector("trot"))
    with_watch = hmm.log_likelihoods(make_feature_vector("trot", watch_arm_symmetry=0.7))
    assert not np.allclose(without, with_watch)
    trot = 2
    assert np.argmax(with_watch) == trot


def test_invalid_parameters_raise():
    with pytest.raises(ValueError, match="speed_penalty"):
        GaitHMM(speed_penalty=0.0)
    with pytest.raises(ValueError, match="gps_accuracy_poor"):
        GaitHMM(gps_accuracy_good=50.0, gps_accuracy_poor=10.0)
