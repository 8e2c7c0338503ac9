"""Session orchestrator for real-time gait classification.

One :class:`GaitAnalyzer` per session owns the ring buffers, the
calibration gate, the frame transformer and the estimator. Samples are
pushed in by the caller; each processing call returns the events it
produced and also hands them to registered listeners.

Pipeline per sample::

    MotionSample -> calibration gate -> FrameTransformer -> ring buffers
        -> (every update_interval_s) FeatureVectorBuilder -> GaitHMM
        -> commit rule -> GaitSegment lifecycle

The analysis clock is the sample timestamp, so replaying a recording
gives the same result as live processing.

Example::

    from equigait import GaitAnalyzer, SubjectProfile
    analyzer = GaitAnalyzer(profile=SubjectProfile(breed="warmblood"))
    analyzer.start_analyzing(start_time=0.0)
    for sample in samples:
        for event in analyzer.process_motion(sample):
            print(event)
    segments = analyzer.stop_analyzing()
"""

import logging
import time
from typing import Callable, List, Optional, Union

from .buffers import RingBuffer
from .calibration import CalibrationStateMachine
from .coherence import CoherenceEngine
from .config import resolve_config
from .diagnostics import DiagnosticRecord, DiagnosticsSink, ListDiagnosticsSink
from .features import FeatureVectorBuilder
from .frame import FrameTransformer
from .hmm import GaitHMM
from .profile import SubjectProfile
from .schema import (
    AnalyzerSnapshot,
    CalibrationCompleted,
    CalibrationStatus,
    GaitChanged,
    GaitFeatureVector,
    GaitSegment,
    HMMGaitState,
    Lead,
    MotionSample,
)
from .spectral import SpectralEngine, SpectralResult

logger = logging.getLogger(__name__)

Event = Union[CalibrationCompleted, GaitChanged]
Listener = Callable[[Event], None]


class GaitAnalyzer:
    """Per-session gait classifier.

    Parameters
    ----------
    config : dict, optional
        Partial configuration merged against ``DEFAULT_CONFIG``.
    profile : SubjectProfile, optional
        Subject profile; defaults to one built from ``config["subject"]``.
    diagnostics_sink : DiagnosticsSink, optional
        Receiver of per-tick records when ``diagnostics.enabled`` is set.
        A :class:`ListDiagnosticsSink` is created if none is given.
    """

    def __init__(
        self,
        config: Optional[dict] = None,
        profile: Optional[SubjectProfile] = None,
        diagnostics_sink: Optional[DiagnosticsSink] = None,
    ):
        self.config = cfg = resolve_config(config)
        sensor = cfg["sensor"]
        spectral = cfg["spectral"]
        coherence = cfg["coherence"]
        calibration = cfg["calibration"]
        estimator = cfg["estimator"]

        self.window_size = int(sensor["window_size"])
        self.update_interval = float(spectral["update_interval_s"])
        self.confidence_threshold = float(cfg["analyzer"]["confidence_threshold"])

        self.spectral = SpectralEngine(
            window_size=self.window_size,
            sample_rate=sensor["sample_rate"],
            search_range=tuple(spectral["search_range"]),
            negligible_power=spectral["negligible_power"],
        )
        self.coherence = CoherenceEngine(
            segment_length=coherence["segment_length"],
            overlap=coherence["overlap"],
            sample_rate=sensor["sample_rate"],
            neutral_value=coherence["neutral_value"],
        )
        self.features = FeatureVectorBuilder(
            self.spectral,
            self.coherence,
            speed_window=cfg["location"]["speed_window"],
            default_accuracy=cfg["location"]["default_accuracy_m"],
            harmonic_correction=spectral["harmonic_correction"],
        )
        self.calibration = CalibrationStateMachine(
            mount_position=calibration["mount_position"],
            vertical_rms_threshold=calibration["vertical_rms_threshold"],
            rotation_rms_threshold=calibration["rotation_rms_threshold"],
            vertical_window=calibration["vertical_window"],
            rotation_window=calibration["rotation_window"],
            min_vertical_samples=calibration["min_vertical_samples"],
            min_rotation_samples=calibration["min_rotation_samples"],
            mount_profile=calibration.get("mount_profile"),
        )
        self.transformer = FrameTransformer.from_mount(calibration["mount_position"], **cfg["drift"])
        self.estimator = GaitHMM(
            feature_weights=estimator["feature_weights"],
            self_transition=estimator["self_transition"],
            non_adjacent_weight=estimator["non_adjacent_weight"],
            speed_penalty=estimator["speed_penalty"],
            gps_accuracy_good=estimator["gps_accuracy_good_m"],
            gps_accuracy_poor=estimator["gps_accuracy_poor_m"],
        )

        self._vertical = RingBuffer(self.window_size)
        self._lateral = RingBuffer(self.window_size)
        self._forward = RingBuffer(self.window_size)
        self._yaw = RingBuffer(self.window_size)

        self.diagnostics_enabled = bool(cfg["diagnostics"]["enabled"])
        if diagnostics_sink is None and self.diagnostics_enabled:
            diagnostics_sink = ListDiagnosticsSink()
        self.diagnostics_sink = diagnostics_sink

        self._listeners: List[Listener] = []
        self._is_analyzing = False
        self.segments: List[GaitSegment] = []
        self.configure(profile or SubjectProfile.from_dict(cfg["subject"]))
        self._reset_session(0.0)

    # ── Configuration and listeners ──────────────────────────────────

    def configure(self, profile: SubjectProfile) -> None:
        """Apply a subject profile without resetting the posterior."""
        self.profile = profile
        self.features.weight_kg = profile.weight_kg
        self.estimator.configure_profile(profile)

    def add_listener(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _dispatch(self, events: List[Event]) -> List[Event]:
        for event in events:
            for listener in list(self._listeners):
                listener(event)
        return events

    # ── Session lifecycle ────────────────────────────────────────────

    def _reset_session(self, start_time: float) -> None:
        self._clear_buffers()
        self.calibration.reset()
        self.transformer.reset_calibration()
        self.estimator.reset()
        self.features.reset_location()
        self._current_gait = HMMGaitState.STATIONARY
        self._confidence = 0.0
        self._last_features = GaitFeatureVector(quality=0.0)
        self._last_spectral = SpectralResult()
        self._last_tick: Optional[float] = None
        self._last_timestamp: Optional[float] = None
        self._calibration_announced = False
        self._session_start = start_time
        self.segments = [GaitSegment(gait=HMMGaitState.STATIONARY, start_time=start_time)]
        self._snapshot = AnalyzerSnapshot(timestamp=start_time)

    def _clear_buffers(self) -> None:
        for buf in (self._vertical, self._lateral, self._forward, self._yaw):
            buf.clear()

    def start_analyzing(self, start_time: Optional[float] = None) -> None:
        """Begin a new session.

        Ignored while a session is running; call :meth:`stop_analyzing`
        first. Companion-device values received earlier are kept.
        """
        if self._is_analyzing:
            logger.warning("start_analyzing called while a session is running, ignoring")
            return
        if start_time is None:
            start_time = time.time()
        self._reset_session(start_time)
        self._is_analyzing = True
        self._publish(start_time)
        logger.info(
            f"Started gait analysis at t={start_time:.3f} "
            f"(mount {self.calibration.mount_position}, breed {self.profile.breed})"
        )

    def stop_analyzing(self, end_time: Optional[float] = None) -> List[GaitSegment]:
        """Stop accepting input and finalise the open segment.

        Parameters
        ----------
        end_time : float, optional
            Session end; defaults to the last sample timestamp.

        Returns
        -------
        list of GaitSegment
            All segments of the session.
        """
        if not self._is_analyzing:
            return list(self.segments)
        self._is_analyzing = False
        if end_time is None:
            end_time = self._last_timestamp if self._last_timestamp is not None else self._session_start
        segment = self.current_segment
        segment.finalize(max(end_time, segment.start_time), self._last_features)
        self._publish(end_time)
        logger.info(f"Stopped gait analysis with {len(self.segments)} segments")
        return list(self.segments)

    def reset(self) -> None:
        """Stop any running session and clear all streaming state.

        Unlike :meth:`start_analyzing`, this also drops companion-device
        values and collected diagnostic records. Finished segments stay
        readable in :attr:`segments`.
        """
        self.stop_analyzing()
        segments = self.segments
        self._reset_session(self._session_start)
        self.segments = segments
        self.features.reset_auxiliary()
        if isinstance(self.diagnostics_sink, ListDiagnosticsSink):
            self.diagnostics_sink.clear()
        logger.info("Analyzer reset")

    def reset_calibration(self) -> None:
        """Drop the calibration reference and buffered samples.

        Calibration restarts from ``pending``; the estimator posterior
        and the open segment are kept.
        """
        self.calibration.reset()
        self.transformer.reset_calibration()
        self._clear_buffers()
        self._last_tick = None
        logger.info("Calibration reset")

    # ── Inputs ───────────────────────────────────────────────────────

    def process_motion(self, sample: MotionSample) -> List[Event]:
        """Consume one motion sample.

        Returns
        -------
        list
            Events produced by this sample (possibly empty).
        """
        if not self._is_analyzing:
            logger.debug("Ignoring motion sample while not analyzing")
            return []
        self._last_timestamp = sample.timestamp
        events: List[Event] = []

        if not self.calibration.is_ready:
            if not self.calibration.update(sample):
                return events
            self.transformer.calibrate(sample)
            if not self._calibration_announced:
                self._calibration_announced = True
                events.append(CalibrationCompleted(timestamp=sample.timestamp))
                logger.info(f"Calibration complete after {self.calibration.sample_count} samples")
            self._publish(sample.timestamp)

        t = self.transformer.transform(sample)
        self._vertical.append(t.vertical)
        self._lateral.append(t.lateral)
        self._forward.append(t.forward)
        self._yaw.append(t.yaw_rate)

        if self._last_tick is None or sample.timestamp - self._last_tick >= self.update_interval:
            self._last_tick = sample.timestamp
            events.extend(self._analyze(sample.timestamp))
        return self._dispatch(events)

    def process_location(
        self,
        speed: float,
        distance: float = 0.0,
        horizontal_accuracy: Optional[float] = None,
    ) -> None:
        """Record a location fix (speed m/s, distance delta m, accuracy m)."""
        if not self._is_analyzing:
            return
        self.features.update_location(speed, horizontal_accuracy)
        if distance and distance > 0:
            self.current_segment.distance += float(distance)

    def update_companion_data(
        self,
        arm_symmetry: Optional[float] = None,
        yaw_energy: Optional[float] = None,
    ) -> None:
        self.features.update_companion(arm_symmetry, yaw_energy)

    def update_lead(self, lead: Union[Lead, str], confidence: float) -> None:
        """Attach lead to the open segment if it is a canter or gallop."""
        segment = self.current_segment
        if not self._is_analyzing or not segment.is_lead_applicable:
            return
        segment.lead = Lead(lead)
        segment.lead_confidence = float(min(max(confidence, 0.0), 1.0))

    def update_rhythm(self, score: float) -> None:
        if self._is_analyzing:
            self.current_segment.rhythm_score = float(score)

    def inject_features(self, features: GaitFeatureVector, timestamp: Optional[float] = None) -> List[Event]:
        """Run the estimator and commit rule on a ready-made feature vector.

        Motion buffers and calibration are bypassed.
        """
        if not self._is_analyzing:
            return []
        if timestamp is None:
            timestamp = self._last_timestamp if self._last_timestamp is not None else self._session_start
        self._last_timestamp = timestamp
        return self._dispatch(self._classify(features, timestamp))

    # ── Analysis ─────────────────────────────────────────────────────

    def _analyze(self, timestamp: float) -> List[Event]:
        fv, spectral = self.features.build(
            self._vertical.to_array(),
            self._lateral.to_array(),
            self._forward.to_array(),
            self._yaw.to_array(),
        )
        self._last_spectral = spectral
        return self._classify(fv, timestamp)

    def _classify(self, fv: GaitFeatureVector, timestamp: float) -> List[Event]:
        state = self.estimator.update(fv)
        confidence = self.estimator.state_confidence
        self._last_features = fv
        self._confidence = confidence

        events: List[Event] = []
        if state != self._current_gait and confidence > self.confidence_threshold:
            events.append(self._commit(state, timestamp, confidence, fv))

        if self.diagnostics_enabled and self.diagnostics_sink is not None:
            self.diagnostics_sink.record(DiagnosticRecord(
                timestamp=timestamp,
                features=fv,
                probabilities=self.estimator.probabilities,
                state=state,
                confidence=confidence,
            ))
        self._publish(timestamp)
        return events

    def _commit(
        self,
        state: HMMGaitState,
        timestamp: float,
        confidence: float,
        snapshot: GaitFeatureVector,
    ) -> GaitChanged:
        old = self._current_gait
        segment = self.current_segment
        at = max(timestamp, segment.start_time)
        segment.finalize(at, snapshot)
        opened = GaitSegment(gait=state, start_time=at)
        opened.record_spectral(snapshot)
        self.segments.append(opened)
        self._current_gait = state
        logger.info(f"Gait {old.value} -> {state.value} at t={at:.2f} (confidence {confidence:.2f})")
        return GaitChanged(from_state=old, to_state=state, timestamp=at, confidence=confidence)

    def _publish(self, timestamp: float) -> None:
        # Replaced wholesale so readers on other threads see a consistent view.
        self._snapshot = AnalyzerSnapshot(
            timestamp=timestamp,
            current_gait=self._current_gait,
            confidence=self._confidence,
            calibration_status=self.calibration.status,
            features=self._last_features,
            probabilities=self.estimator.probabilities,
        )

    # ── Outputs ──────────────────────────────────────────────────────

    @property
    def is_analyzing(self) -> bool:
        return self._is_analyzing

    @property
    def calibration_status(self) -> CalibrationStatus:
        return self.calibration.status

    @property
    def current_gait(self) -> HMMGaitState:
        return self._current_gait

    @property
    def confidence(self) -> float:
        return self._confidence

    @property
    def current_segment(self) -> GaitSegment:
        return self.segments[-1]

    @property
    def last_features(self) -> GaitFeatureVector:
        return self._last_features

    @property
    def last_spectral(self) -> SpectralResult:
        return self._last_spectral

    @property
    def snapshot(self) -> AnalyzerSnapshot:
        return self._snapshot

    @property
    def recalibration_count(self) -> int:
        return self.transformer.recalibration_count

    @property
    def buffer_lengths(self) -> dict:
        return {
            "vertical": len(self._vertical),
            "lateral": len(self._lateral),
            "forward": len(self._forward),
            "yaw": len(self._yaw),
        }
