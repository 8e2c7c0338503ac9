"""Reference tables for gait classification.

Mount-position timing, breed frequency priors, default emission ranges
and GPS speed bounds. Ranges are ``(low, high)`` tuples; the estimator
turns each into a Gaussian with mean at the centre and standard
deviation of a quarter of the width.
"""

# ── State set ────────────────────────────────────────────────────────────

GAIT_STATES = ("stationary", "walk", "trot", "canter", "gallop")

MOVING_GAITS = ("walk", "trot", "canter", "gallop")

# Order of the feature dimensions used by the emission model.
FEATURE_NAMES = (
    "stride_frequency",
    "h2_ratio",
    "h3_ratio",
    "spectral_entropy",
    "xy_coherence",
    "z_yaw_coherence",
    "vertical_rms",
    "yaw_rms",
    "watch_arm_symmetry",
    "watch_yaw_energy",
)

# Companion-device features only count once a value has been received.
OPTIONAL_FEATURES = ("watch_arm_symmetry", "watch_yaw_energy")

DEFAULT_FEATURE_WEIGHTS = {
    "stride_frequency": 1.0,
    "h2_ratio": 0.6,
    "h3_ratio": 0.6,
    "spectral_entropy": 0.5,
    "xy_coherence": 0.3,
    "z_yaw_coherence": 0.3,
    "vertical_rms": 0.8,
    "yaw_rms": 0.4,
    "watch_arm_symmetry": 0.3,
    "watch_yaw_energy": 0.3,
}

# ── Mount positions ──────────────────────────────────────────────────────
# Sample counts at 100 Hz. A thigh pocket needs longer to settle than a
# chest mount, and tolerates more gravity drift before recalibration.

MOUNT_PROFILES = {
    "jodhpur_thigh": {
        "pending_samples": 50,
        "settle_samples": 100,
        "force_samples": 1000,
        "drift_threshold": 0.50,
    },
    "jacket_chest": {
        "pending_samples": 25,
        "settle_samples": 50,
        "force_samples": 500,
        "drift_threshold": 0.35,
    },
}

# ── Breed frequency priors (Hz) ──────────────────────────────────────────

_DEFAULT_PRIOR = {
    "walk": (1.0, 2.2),
    "trot": (2.0, 3.8),
    "canter": (1.8, 3.0),
    "gallop": (3.0, 6.0),
}

BREED_GROUPS = {
    "default": _DEFAULT_PRIOR,
    "pony": {
        "walk": (1.3, 2.5),
        "trot": (2.8, 4.5),
        "canter": (2.2, 3.5),
        "gallop": (3.5, 6.5),
    },
    "small_sport_pony": {
        "walk": (1.2, 2.4),
        "trot": (2.4, 4.2),
        "canter": (2.0, 3.3),
        "gallop": (3.2, 6.0),
    },
    "large_native": {
        "walk": (1.1, 2.3),
        "trot": (2.2, 4.0),
        "canter": (1.9, 3.2),
        "gallop": (3.1, 5.8),
    },
    "warmblood": {
        "walk": (0.9, 2.0),
        "trot": (1.8, 3.5),
        "canter": (1.6, 2.8),
        "gallop": (2.8, 5.5),
    },
    "sport_horse": {
        "walk": (0.95, 2.1),
        "trot": (1.9, 3.6),
        "canter": (1.7, 2.9),
        "gallop": (2.9, 5.8),
    },
    "stock": {
        "walk": (1.0, 2.2),
        "trot": (2.0, 3.8),
        "canter": (1.8, 3.0),
        "gallop": (3.0, 6.2),
    },
    "heavy": {
        "walk": (0.9, 2.0),
        "trot": (1.8, 3.2),
        "canter": (1.5, 2.7),
        "gallop": (2.6, 5.0),
    },
    "arabian": {
        "walk": (1.1, 2.3),
        "trot": (2.2, 4.0),
        "canter": (1.9, 3.2),
        "gallop": (3.1, 6.0),
    },
    "iberian": {
        "walk": (1.0, 2.2),
        "trot": (2.0, 3.6),
        "canter": (1.7, 2.9),
        "gallop": (2.8, 5.5),
    },
}

BREED_TO_GROUP = {
    "unknown": "default",
    "thoroughbred": "default",
    "shetland": "pony",
    "welsh_a": "pony",
    "dartmoor": "pony",
    "exmoor": "pony",
    "welsh_b": "small_sport_pony",
    "welsh_c": "small_sport_pony",
    "new_forest": "small_sport_pony",
    "connemara": "small_sport_pony",
    "welsh_d": "large_native",
    "highland": "large_native",
    "fell": "large_native",
    "dales": "large_native",
    "warmblood": "warmblood",
    "hanoverian": "warmblood",
    "dutch_warmblood": "warmblood",
    "trakehner": "warmblood",
    "holsteiner": "warmblood",
    "oldenburg": "warmblood",
    "irish_sport_horse": "sport_horse",
    "quarter_horse": "stock",
    "cob": "heavy",
    "irish_draught": "heavy",
    "friesian": "heavy",
    "arabian": "arabian",
    "andalusian": "iberian",
    "lusitano": "iberian",
}

# ── Default emission ranges ──────────────────────────────────────────────
# Harmonic ratios are fractions of total spectral power, so a clean
# single-tone bounce reads close to zero on both.

STATIONARY_FREQUENCY_RANGE = (0.0, 0.8)

DEFAULT_EMISSION_RANGES = {
    "stationary": {
        "h2_ratio": (0.0, 0.2),
        "h3_ratio": (0.0, 0.2),
        "spectral_entropy": (0.0, 1.0),
        "xy_coherence": (0.2, 0.8),
        "z_yaw_coherence": (0.2, 0.8),
        "vertical_rms": (0.0, 0.06),
        "yaw_rms": (0.0, 0.12),
        "watch_arm_symmetry": (0.0, 0.4),
        "watch_yaw_energy": (0.0, 0.2),
    },
    "walk": {
        "h2_ratio": (0.1, 0.4),
        "h3_ratio": (0.05, 0.25),
        "spectral_entropy": (0.3, 0.6),
        "xy_coherence": (0.2, 0.5),
        "z_yaw_coherence": (0.2, 0.5),
        "vertical_rms": (0.05, 0.15),
        "yaw_rms": (0.1, 0.3),
        "watch_arm_symmetry": (0.3, 0.7),
        "watch_yaw_energy": (0.1, 0.4),
    },
    "trot": {
        "h2_ratio": (0.0, 0.3),
        "h3_ratio": (0.0, 0.2),
        "spectral_entropy": (0.1, 0.5),
        "xy_coherence": (0.6, 1.0),
        "z_yaw_coherence": (0.1, 0.5),
        "vertical_rms": (0.15, 0.35),
        "yaw_rms": (0.15, 0.45),
        "watch_arm_symmetry": (0.5, 0.9),
        "watch_yaw_energy": (0.2, 0.5),
    },
    "canter": {
        "h2_ratio": (0.05, 0.25),
        "h3_ratio": (0.15, 0.45),
        "spectral_entropy": (0.35, 0.65),
        "xy_coherence": (0.2, 0.5),
        "z_yaw_coherence": (0.6, 0.9),
        "vertical_rms": (0.25, 0.45),
        "yaw_rms": (0.4, 0.8),
        "watch_arm_symmetry": (0.2, 0.6),
        "watch_yaw_energy": (0.4, 0.8),
    },
    "gallop": {
        "h2_ratio": (0.05, 0.25),
        "h3_ratio": (0.05, 0.25),
        "spectral_entropy": (0.55, 0.85),
        "xy_coherence": (0.1, 0.4),
        "z_yaw_coherence": (0.7, 1.0),
        "vertical_rms": (0.35, 0.6),
        "yaw_rms": (0.6, 1.2),
        "watch_arm_symmetry": (0.2, 0.6),
        "watch_yaw_energy": (0.5, 0.9),
    },
}

# ── GPS speed bounds (m/s) ───────────────────────────────────────────────

DEFAULT_SPEED_BOUNDS = {
    "stationary": (0.0, 0.5),
    "walk": (0.3, 2.5),
    "trot": (1.5, 5.0),
    "canter": (3.0, 8.0),
    "gallop": (6.0, 20.0),
}

# Thresholds of the coarse speed-only classification.
SPEED_GAIT_THRESHOLDS = (
    (0.4, "stationary"),
    (1.7, "walk"),
    (3.5, "trot"),
    (5.5, "canter"),
)

# Minimum lead confidence for a segment's lead to count as known.
KNOWN_LEAD_CONFIDENCE = 0.7

# Weight-normalised RMS is scaled to a 500 kg reference horse.
REFERENCE_WEIGHT_KG = 500.0
