"""Tests for FrameTransformer projection and drift correction."""

import numpy as np
import pytest

from conftest import make_motion_sample

from equigait.frame import FrameTransformer, angle_between, attitude_rotation


# ── 1. Guarding ─────────────────────────────────────────────────────

def test_transform_before_calibrate_raises():
    ft = FrameTransformer()
    with pytest.raises(RuntimeError, match="before calibrate"):
        ft.transform(make_motion_sample(0.0))


def test_reset_clears_reference():
    ft = FrameTransformer()
    ft.calibrate(make_motion_sample(0.0))
    assert ft.is_calibrated
    ft.reset_calibration()
    assert not ft.is_calibrated


# ── 2. Axis mapping ─────────────────────────────────────────────────

def test_identity_attitude_axis_mapping():
    ft = FrameTransformer()
    ft.calibrate(make_motion_sample(0.0))
    out = ft.transform(make_motion_sample(
        0.01, acceleration=(0.1, 0.2, 0.3), rotation_rate=(0.4, 0.5, 0.6)))
    assert out.lateral == pytest.approx(0.1)
    assert out.forward == pytest.approx(0.2)
    assert out.vertical == pytest.approx(0.3)
    assert out.pitch_rate == pytest.approx(0.4)
    assert out.roll_rate == pytest.approx(0.5)
    assert out.yaw_rate == pytest.approx(0.6)
    assert out.timestamp == 0.01


def test_unchanged_attitude_is_identity():
    ft = FrameTransformer()
    attitude = (0.3, -0.2, 1.0)
    ft.calibrate(make_motion_sample(0.0, attitude=attitude))
    out = ft.transform(make_motion_sample(0.01, acceleration=(0.1, 0.2, 0.3), attitude=attitude))
    assert (out.lateral, out.forward, out.vertical) == pytest.approx((0.1, 0.2, 0.3))


def test_device_yaw_is_compensated():
    ft = FrameTransformer()
    ft.calibrate(make_motion_sample(0.0))
    out = ft.transform(make_motion_sample(
        0.01, acceleration=(1.0, 0.0, 0.0), attitude=(0.0, 0.0, np.pi / 2)))
    assert out.forward == pytest.approx(1.0, abs=1e-9)
    assert out.lateral == pytest.approx(0.0, abs=1e-9)


def test_rotation_preserves_magnitude():
    rng = np.random.default_rng(5)
    ft = FrameTransformer()
    ft.calibrate(make_motion_sample(0.0, attitude=rng.uniform(-1, 1, 3)))
    for i in range(20):
        acc = rng.normal(0, 1, 3)
        out = ft.transform(make_motion_sample(
            i * 0.01, acceleration=acc, attitude=rng.uniform(-1, 1, 3)))
        norm = np.linalg.norm([out.lateral, out.forward, out.vertical])
        assert norm == pytest.approx(np.linalg.norm(acc))


def test_attitude_rotation_identity():
    r = attitude_rotation((0.0, 0.0, 0.0))
    np.testing.assert_allclose(r.apply([1.0, 2.0, 3.0]), [1.0, 2.0, 3.0])


# ── 3. Gravity drift ────────────────────────────────────────────────

def _tilted_gravity(angle):
    return (0.0, -np.sin(angle), -np.cos(angle))


def test_drift_below_threshold_is_ignored():
    ft = FrameTransformer(drift_threshold=0.5)
    ft.calibrate(make_motion_sample(0.0))
    for i in range(2000):
        ft.transform(make_motion_sample(i * 0.01, gravity=_tilted_gravity(0.3)))
    assert ft.recalibration_count == 0


def test_drift_triggers_correction_after_cooldown():
    ft = FrameTransformer(drift_threshold=0.5)
    ft.calibrate(make_motion_sample(0.0))
    g = _tilted_gravity(0.7)
    up = -np.asarray(g)

    for i in range(499):
        ft.transform(make_motion_sample(i * 0.01, gravity=g))
    assert ft.recalibration_count == 0

    ft.transform(make_motion_sample(4.99, gravity=g))
    assert ft.recalibration_count == 1
    assert ft.drift_corrected
    assert ft.drift_angle == pytest.approx(0.0, abs=1e-9)

    out = ft.transform(make_motion_sample(5.0, acceleration=0.5 * up, gravity=g))
    assert out.vertical == pytest.approx(0.5, abs=1e-6)


def test_from_mount_uses_profile_threshold():
    assert FrameTransformer.from_mount("jacket_chest").drift_threshold == 0.35
    assert FrameTransformer.from_mount("jodhpur_thigh").drift_threshold == 0.50
    with pytest.raises(ValueError, match="Unknown mount position"):
        FrameTransformer.from_mount("saddle")


def test_angle_between():
    assert angle_between(np.array([1.0, 0, 0]), np.array([0, 1.0, 0])) == pytest.approx(np.pi / 2)
    assert angle_between(np.zeros(3), np.array([1.0, 0, 0])) == 0.0
