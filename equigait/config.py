"""Analyzer configuration management.

Configuration is a nested dict merged against ``DEFAULT_CONFIG``, so a
file or override only needs the keys it changes. JSON and YAML files
are supported.

Functions
---------
resolve_config
    Merge in-memory overrides onto the defaults.
load_config
    Load analyzer config from a JSON or YAML file.
save_config
    Save analyzer config to a JSON or YAML file.

Attributes
----------
DEFAULT_CONFIG : dict
    Default values for every stage of the analyzer.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Optional, Union

from .constants import DEFAULT_FEATURE_WEIGHTS

logger = logging.getLogger(__name__)


DEFAULT_CONFIG = {
    "sensor": {
        "sample_rate": 100.0,
        "window_size": 256,
    },
    "spectral": {
        "search_range": [0.5, 6.0],
        "update_interval_s": 0.167,
        "harmonic_correction": True,
        "negligible_power": 1e-10,
    },
    "coherence": {
        "segment_length": 128,
        "overlap": 64,
        "neutral_value": 0.5,
    },
    "calibration": {
        "mount_position": "jodhpur_thigh",
        "vertical_rms_threshold": 0.2,
        "rotation_rms_threshold": 0.3,
        "vertical_window": 20,
        "rotation_window": 30,
        "min_vertical_samples": 20,
        "min_rotation_samples": 10,
    },
    "drift": {
        "check_interval": 100,
        "alpha_initial": 0.05,
        "alpha": 0.01,
        "cooldown_initial": 500,
        "cooldown": 3000,
    },
    "estimator": {
        "self_transition": 0.85,
        "non_adjacent_weight": 0.1,
        "feature_weights": dict(DEFAULT_FEATURE_WEIGHTS),
        "speed_penalty": 0.05,
        "gps_accuracy_good_m": 5.0,
        "gps_accuracy_poor_m": 50.0,
    },
    "analyzer": {
        "confidence_threshold": 0.65,
    },
    "location": {
        "speed_window": 5,
        "default_accuracy_m": 100.0,
    },
    "diagnostics": {
        "enabled": False,
    },
    "subject": {
        "breed": "unknown",
        "age_years": None,
        "weight_kg": None,
    },
}


def resolve_config(overrides: Optional[dict] = None) -> dict:
    """Return ``DEFAULT_CONFIG`` with ``overrides`` merged in.

    Raises
    ------
    ValueError
        If ``overrides`` is not a dict.
    """
    if overrides is None:
        overrides = {}
    if not isinstance(overrides, dict):
        raise ValueError("Config must be a dict")
    return _deep_merge(copy.deepcopy(DEFAULT_CONFIG), overrides)


def load_config(path: Union[str, Path]) -> dict:
    """Load analyzer config from a JSON or YAML file.

    Parameters
    ----------
    path : str or Path
        Path to config file (``.json`` or ``.yaml``/``.yml``).

    Returns
    -------
    dict
        Configuration merged against ``DEFAULT_CONFIG``.

    Raises
    ------
    FileNotFoundError
        If the config file does not exist.
    ImportError
        If YAML is requested but ``pyyaml`` is not installed.
    ValueError
        If the file content is not a dict.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    if path.suffix.lower() in (".yaml", ".yml"):
        yaml = _require_yaml()
        with open(path) as f:
            cfg = yaml.safe_load(f)
    else:
        with open(path) as f:
            cfg = json.load(f)

    merged = resolve_config(cfg)
    logger.info(f"Loaded config from {path}")
    return merged


def save_config(config: dict, path: Union[str, Path]) -> str:
    """Save analyzer config to a JSON or YAML file.

    Returns
    -------
    str
        Path to the saved file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.suffix.lower() in (".yaml", ".yml"):
        yaml = _require_yaml()
        with open(path, "w") as f:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
    else:
        with open(path, "w") as f:
            json.dump(config, f, indent=2)

    logger.info(f"Saved config to {path}")
    return str(path)


def _require_yaml():
    try:
        import yaml
    except ImportError:
        raise ImportError("PyYAML required for YAML configs: pip install pyyaml") from None
    return yaml


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    result = base.copy()
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result
