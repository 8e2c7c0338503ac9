"""Shared test fixtures for the equigait test suite.

Provides synthetic motion streams and feature vectors used across all
test modules.
"""

import numpy as np
import pytest

FS = 100.0


def make_motion_sample(t, acceleration=(0.0, 0.0, 0.0), rotation_rate=(0.0, 0.0, 0.0),
                       attitude=(0.0, 0.0, 0.0), gravity=(0.0, 0.0, -1.0)):
    from equigait.schema import MotionSample
    return MotionSample(
        timestamp=float(t),
        acceleration=tuple(float(v) for v in acceleration),
        rotation_rate=tuple(float(v) for v in rotation_rate),
        attitude=tuple(float(v) for v in attitude),
        gravity=tuple(float(v) for v in gravity),
    )


def make_still_samples(n, start=0.0, fs=FS):
    """Device lying still, level, gravity straight down."""
    return [make_motion_sample(start + i / fs) for i in range(n)]


def make_sine_samples(n, freq=2.0, amplitude=0.3, start=0.0, fs=FS):
    """Pure vertical bounce, no lateral, forward or rotational motion."""
    samples = []
    for i in range(n):
        t = start + i / fs
        z = amplitude * np.sin(2 * np.pi * freq * t)
        samples.append(make_motion_sample(t, acceleration=(0.0, 0.0, z)))
    return samples


def make_erratic_samples(n, start=0.0, fs=FS, seed=0):
    """Hand-held device: large random acceleration and rotation."""
    rng = np.random.default_rng(seed)
    samples = []
    for i in range(n):
        samples.append(make_motion_sample(
            start + i / fs,
            acceleration=rng.normal(0.0, 0.8, 3),
            rotation_rate=rng.normal(0.0, 2.0, 3),
            attitude=rng.uniform(-0.5, 0.5, 3),
        ))
    return samples


def make_feature_vector(state="trot", **overrides):
    """Feature vector sitting on a state's default emission centres."""
    from equigait.constants import FEATURE_NAMES, OPTIONAL_FEATURES
    from equigait.emission import build_emission_model
    from equigait.schema import GaitFeatureVector

    model = build_emission_model()
    values = {
        name: model.mean(state, name)
        for name in FEATURE_NAMES
        if name not in OPTIONAL_FEATURES
    }
    values.update(overrides)
    return GaitFeatureVector(**values)


def calibrate(analyzer, start=0.0, fs=FS, max_samples=2000):
    """Feed still samples until calibration is ready; return next timestamp."""
    for i in range(max_samples):
        analyzer.process_motion(make_motion_sample(start + i / fs))
        if analyzer.calibration_status.value == "ready":
            return start + (i + 1) / fs
    raise AssertionError("calibration did not complete")


@pytest.fixture
def analyzer():
    from equigait.analyzer import GaitAnalyzer
    a = GaitAnalyzer()
    a.start_analyzing(start_time=0.0)
    return a
