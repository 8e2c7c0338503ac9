"""Tests for analyzer configuration loading and merging."""

import json

import pytest

from equigait.analyzer import GaitAnalyzer
from equigait.config import DEFAULT_CONFIG, load_config, resolve_config, save_config


# ── 1. Defaults and merging ──────────────────────────────────────────

def test_resolve_defaults():
    cfg = resolve_config()
    assert cfg == DEFAULT_CONFIG
    assert cfg is not DEFAULT_CONFIG


def test_partial_override_merges_deeply():
    cfg = resolve_config({"calibration": {"mount_position": "jacket_chest"}})
    assert cfg["calibration"]["mount_position"] == "jacket_chest"
    assert cfg["calibration"]["vertical_rms_threshold"] == 0.2
    assert cfg["sensor"]["window_size"] == 256


def test_resolve_does_not_mutate_defaults():
    cfg = resolve_config({"estimator": {"feature_weights": {"yaw_rms": 0.0}}})
    cfg["analyzer"]["confidence_threshold"] = 0.9
    assert DEFAULT_CONFIG["estimator"]["feature_weights"]["yaw_rms"] == 0.4
    assert DEFAULT_CONFIG["analyzer"]["confidence_threshold"] == 0.65
    assert cfg["estimator"]["feature_weights"]["stride_frequency"] == 1.0


def test_non_dict_raises():
    with pytest.raises(ValueError, match="dict"):
        resolve_config(["not", "a", "dict"])


# ── 2. Files ─────────────────────────────────────────────────────────

def test_load_partial_json(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"analyzer": {"confidence_threshold": 0.8}}))
    cfg = load_config(path)
    assert cfg["analyzer"]["confidence_threshold"] == 0.8
    assert cfg["spectral"]["update_interval_s"] == 0.167


def test_yaml_round_trip(tmp_path):
    cfg = resolve_config({"subject": {"breed": "connemara", "age_years": 12}})
    out = save_config(cfg, tmp_path / "nested" / "cfg.yaml")
    assert out.endswith("cfg.yaml")
    loaded = load_config(out)
    assert loaded == cfg


def test_json_round_trip(tmp_path):
    cfg = resolve_config({"diagnostics": {"enabled": True}})
    loaded = load_config(save_config(cfg, tmp_path / "cfg.json"))
    assert loaded["diagnostics"]["enabled"] is True


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


# ── 3. Config drives the analyzer ───────────────────────────────────

def test_analyzer_uses_config():
    a = GaitAnalyzer(config={
        "sensor": {"window_size": 128},
        "analyzer": {"confidence_threshold": 0.8},
        "subject": {"breed": "shetland", "age_years": 3},
    })
    assert a.window_size == 128
    assert a.confidence_threshold == 0.8
    assert a.estimator.model.breed_group == "pony"
    assert a.estimator.model.age_adjustment == pytest.approx(1.15)
