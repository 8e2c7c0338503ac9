"""Tests for value types."""

import math

import pytest

from conftest import make_motion_sample

from equigait.schema import (
    GaitFeatureVector,
    GaitSegment,
    HMMGaitState,
    LearnedGaitParameters,
    Lead,
)


# ── 1. Feature vector sanitisation ──────────────────────────────────

def test_feature_vector_clips_ratios_and_floors_rms():
    fv = GaitFeatureVector(h2_ratio=1.7, spectral_entropy=-0.2, vertical_rms=-1.0,
                           stride_frequency=-3.0, xy_coherence=2.0)
    assert fv.h2_ratio == 1.0
    assert fv.spectral_entropy == 0.0
    assert fv.vertical_rms == 0.0
    assert fv.stride_frequency == 0.0
    assert fv.xy_coherence == 1.0


def test_feature_vector_replaces_non_finite():
    fv = GaitFeatureVector(stride_frequency=math.nan, yaw_rms=math.inf, h3_ratio=-math.inf)
    assert fv.stride_frequency == 0.0
    assert fv.yaw_rms == 0.0
    assert fv.h3_ratio == 0.0


def test_feature_vector_defaults():
    fv = GaitFeatureVector()
    assert fv.xy_coherence == 0.5
    assert fv.gps_accuracy == 100.0
    assert fv.watch_arm_symmetry == 0.0
    assert set(fv.to_dict()) >= {"stride_frequency", "quality", "gps_speed"}


# ── 2. Enums ────────────────────────────────────────────────────────

@pytest.mark.parametrize("speed,expected", [
    (0.0, HMMGaitState.STATIONARY),
    (1.0, HMMGaitState.WALK),
    (2.5, HMMGaitState.TROT),
    (4.0, HMMGaitState.CANTER),
    (9.0, HMMGaitState.GALLOP),
])
def test_gait_from_speed(speed, expected):
    assert HMMGaitState.from_speed(speed) == expected


def test_gait_state_index_order():
    assert [s.index for s in HMMGaitState] == [0, 1, 2, 3, 4]


# ── 3. Motion sample ────────────────────────────────────────────────

def test_vertical_acceleration_follows_gravity():
    s = make_motion_sample(0.0, acceleration=(0.0, 0.4, 0.0), gravity=(0.0, -1.0, 0.0))
    assert s.vertical_acceleration == pytest.approx(0.4)
    s = make_motion_sample(0.0, acceleration=(0.0, 0.0, 0.2), gravity=(0.0, 0.0, 0.0))
    assert s.vertical_acceleration == pytest.approx(0.2)


def test_rotation_magnitude():
    s = make_motion_sample(0.0, rotation_rate=(3.0, 4.0, 0.0))
    assert s.rotation_magnitude == pytest.approx(5.0)


# ── 4. Segments ─────────────────────────────────────────────────────

def test_finalize_sets_average_speed_and_snapshot():
    seg = GaitSegment(gait=HMMGaitState.TROT, start_time=10.0, distance=60.0)
    assert seg.is_open
    seg.finalize(30.0, GaitFeatureVector(stride_frequency=2.1, h2_ratio=0.2,
                                         z_yaw_coherence=0.4))
    assert not seg.is_open
    assert seg.duration() == 20.0
    assert seg.average_speed == pytest.approx(3.0)
    assert seg.stride_frequency == 2.1
    assert seg.harmonic_ratio_h2 == 0.2
    assert seg.vertical_yaw_coherence == 0.4


def test_finalize_never_ends_before_start():
    seg = GaitSegment(gait=HMMGaitState.WALK, start_time=5.0)
    seg.finalize(4.0)
    assert seg.end_time == 5.0
    assert seg.average_speed == 0.0


def test_lead_applicability_and_known_lead():
    canter = GaitSegment(gait=HMMGaitState.CANTER, start_time=0.0,
                         lead=Lead.LEFT, lead_confidence=0.8)
    assert canter.is_lead_applicable
    assert canter.has_known_lead
    canter.lead_confidence = 0.5
    assert not canter.has_known_lead
    assert not GaitSegment(gait=HMMGaitState.TROT, start_time=0.0).is_lead_applicable


def test_segment_to_dict_uses_plain_values():
    seg = GaitSegment(gait=HMMGaitState.GALLOP, start_time=1.0)
    seg.finalize(3.0)
    d = seg.to_dict()
    assert d["gait"] == "gallop"
    assert d["lead"] == "unknown"
    assert d["duration"] == 2.0


# ── 5. Learned parameters ───────────────────────────────────────────

@pytest.mark.parametrize("rides,expected", [(0, 0.0), (2, 0.0), (3, 0.15), (10, 0.5), (40, 0.5)])
def test_blend_weight(rides, expected):
    assert LearnedGaitParameters(ride_count=rides).blend_weight == pytest.approx(expected)


def test_learned_parameters_dict_roundtrip():
    learned = LearnedGaitParameters(trot_frequency_center=2.6, canter_h3_mean=0.3,
                                    ride_count=4, last_updated=1700000000.0)
    restored = LearnedGaitParameters.from_dict(dict(learned.to_dict(), extra="ignored"))
    assert restored == learned
