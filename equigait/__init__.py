"""equigait -- Real-time equine gait classification from inertial sensors.

Quick start::

    from equigait import GaitAnalyzer, MotionSample
    analyzer = GaitAnalyzer()
    analyzer.start_analyzing(start_time=0.0)
    for sample in samples:              # MotionSample stream at ~100 Hz
        events = analyzer.process_motion(sample)
    print(analyzer.current_gait, analyzer.confidence)
    segments = analyzer.stop_analyzing()

Subject configuration::

    from equigait import SubjectProfile, load_config
    config = load_config("ride.yaml")
    profile = SubjectProfile(breed="connemara", age_years=17, weight_kg=420)
    analyzer = GaitAnalyzer(config=config, profile=profile)

Spectral primitives::

    from equigait import SpectralEngine, CoherenceEngine
    result = SpectralEngine(window_size=256, sample_rate=100).process_window(vertical)
    coh = CoherenceEngine().coherence(forward, lateral, result.dominant_frequency)

Cross-session learning::

    from equigait import update_learned_parameters
    learned = update_learned_parameters(profile.learned, segments)

Offline tuning::

    from equigait import to_dataframe, plot_diagnostics
    analyzer = GaitAnalyzer(config={"diagnostics": {"enabled": True}})
    ...
    df = to_dataframe(analyzer.diagnostics_sink.records, what="diagnostics")
    fig = plot_diagnostics(analyzer.diagnostics_sink.records)
"""

__version__ = "0.1.0"

from .schema import (
    AnalyzerSnapshot,
    CalibrationCompleted,
    CalibrationStatus,
    GaitChanged,
    GaitFeatureVector,
    GaitSegment,
    HMMGaitState,
    LearnedGaitParameters,
    Lead,
    MotionSample,
    TransformedSample,
)
from .buffers import RingBuffer
from .calibration import CalibrationStateMachine, get_mount_profile
from .frame import FrameTransformer, attitude_rotation
from .spectral import SpectralEngine, SpectralResult, correct_stride_frequency
from .coherence import CoherenceEngine
from .features import FeatureVectorBuilder, rms
from .profile import EmissionOverrides, SubjectProfile, age_adjustment_factor, breed_group
from .emission import EmissionModel, build_emission_model, build_transition_matrix
from .hmm import GaitHMM
from .learning import update_learned_parameters
from .diagnostics import (
    DiagnosticRecord,
    DiagnosticsSink,
    ListDiagnosticsSink,
    LoggingDiagnosticsSink,
)
from .analyzer import GaitAnalyzer
from .export import to_dataframe
from .plotting import plot_diagnostics, plot_segments
from .config import DEFAULT_CONFIG, load_config, resolve_config, save_config

__all__ = [
    # Data model
    "MotionSample",
    "TransformedSample",
    "GaitFeatureVector",
    "GaitSegment",
    "HMMGaitState",
    "CalibrationStatus",
    "Lead",
    "LearnedGaitParameters",
    "AnalyzerSnapshot",
    "CalibrationCompleted",
    "GaitChanged",
    # Signal processing
    "RingBuffer",
    "SpectralEngine",
    "SpectralResult",
    "correct_stride_frequency",
    "CoherenceEngine",
    "FeatureVectorBuilder",
    "rms",
    # Calibration
    "CalibrationStateMachine",
    "FrameTransformer",
    "attitude_rotation",
    "get_mount_profile",
    # Estimation
    "SubjectProfile",
    "EmissionOverrides",
    "EmissionModel",
    "build_emission_model",
    "build_transition_matrix",
    "age_adjustment_factor",
    "breed_group",
    "GaitHMM",
    "update_learned_parameters",
    # Orchestration
    "GaitAnalyzer",
    # Diagnostics
    "DiagnosticRecord",
    "DiagnosticsSink",
    "ListDiagnosticsSink",
    "LoggingDiagnosticsSink",
    "to_dataframe",
    "plot_diagnostics",
    "plot_segments",
    # Config
    "DEFAULT_CONFIG",
    "load_config",
    "save_config",
    "resolve_config",
    # Meta
    "__version__",
]
