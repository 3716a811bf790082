"""Session recorder: owns the recording lifecycle and the live session state.

Every event source (the session clock, the audio device and the recognizer)
posts messages onto one inbox queue. A single dispatcher thread applies them
in order, so the session is only ever mutated by one writer. Each session
gets a new generation number and messages tagged with an older generation
are dropped, which keeps late callbacks away from a stopped session.
"""

import copy
import logging
import queue
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import Callable, List, Optional

from pubsub import pub

from ..analysis.feedback import coaching_tips, format_duration, rate_session
from ..analysis.metrics_engine import LinguisticMetricsEngine, MetricsEngine
from ..audio.level_meter import AudioLevelMeter
from ..config import SpeechCoachConfig
from ..errors import SessionStateError, SpeechCoachError, StorageWriteFailure
from ..models.events import Notification, TranscriptUpdate
from ..models.metrics import SpeechMetrics
from ..models.session import (
    LEVEL_SAMPLE_COUNT,
    RecordingSession,
    RecordingState,
    SessionRecord,
    SourceType,
)
from ..storage.history_store import HistoryStore
from ..transcription.base import AbstractTranscriptSource
from ..transcription.google_streaming import GoogleStreamingTranscriptSource

logger = logging.getLogger(__name__)

NOTIFICATION_TOPIC = "coach.notification"


@dataclass(frozen=True)
class _Tick:
    pass


@dataclass(frozen=True)
class _Transcript:
    update: TranscriptUpdate


@dataclass(frozen=True)
class _SourceError:
    error: SpeechCoachError


def notify(level: str, title: str, message: str = "", topic: str = NOTIFICATION_TOPIC) -> None:
    """Publish a user-visible notification."""
    pub.sendMessage(topic, notification=Notification(level=level, title=title, message=message))


def build_session_record(history_store: HistoryStore,
                         title: str,
                         elapsed_seconds: int,
                         segments: List[str],
                         metrics: SpeechMetrics,
                         source_type: SourceType) -> SessionRecord:
    """Freeze a finished session into its persisted form."""
    return SessionRecord(
        id=history_store.next_id(),
        title=title,
        created_at=datetime.now(),
        duration_label=format_duration(elapsed_seconds),
        source_type=source_type,
        transcript_text=" ".join(segments),
        rating=rate_session(metrics.word_count, metrics.filler_count),
        metrics=metrics,
        feedback=tuple(coaching_tips(metrics)),
    )


class SessionRecorder:
    """Runs one recording session at a time: Idle -> Recording -> Stopped."""

    def __init__(self,
                 history_store: HistoryStore,
                 meter_factory: Callable[..., AudioLevelMeter],
                 source_factory: Callable[[], AbstractTranscriptSource],
                 metrics_engine: Optional[MetricsEngine] = None,
                 tick_interval: Optional[float] = 1.0,
                 default_title: str = "Practice Session",
                 notification_topic: str = NOTIFICATION_TOPIC):
        """Initialize the recorder.

        Args:
            history_store: Where finished sessions are persisted
            meter_factory: Builds a level meter; called with ``error_callback``
            source_factory: Builds a transcript source for each session
            metrics_engine: Engine applied to finalized segments
            tick_interval: Seconds between clock ticks; None disables the
                internal clock so ticks must come from ``tick()``
            default_title: Title prefix used when start() gets none
            notification_topic: Pub/sub topic for user-visible notifications
        """
        self.history_store = history_store
        self.meter_factory = meter_factory
        self.source_factory = source_factory
        self.metrics_engine = metrics_engine or LinguisticMetricsEngine()
        self.tick_interval = tick_interval
        self.default_title = default_title
        self.notification_topic = notification_topic

        self.session = RecordingSession()
        self.unsaved_records: List[SessionRecord] = []
        self.last_record: Optional[SessionRecord] = None

        self._lock = threading.RLock()
        self._starting = False
        self._generation = 0
        self._inbox: Optional[queue.Queue] = None
        self._meter: Optional[AudioLevelMeter] = None
        self._source: Optional[AbstractTranscriptSource] = None
        self._dispatcher: Optional[threading.Thread] = None
        self._clock: Optional[threading.Thread] = None
        self._clock_stop = threading.Event()
        self._finalized = threading.Event()
        self._finalized.set()

    @classmethod
    def from_config(cls, config: SpeechCoachConfig, history_store: HistoryStore,
                    metrics_engine: Optional[MetricsEngine] = None) -> "SessionRecorder":
        """Build a recorder wired to the microphone and Google streaming recognition."""
        sample_rate = config.get('audio.sample_rate', 16000)

        meter_factory = partial(
            AudioLevelMeter,
            gain=config.get('level_meter.gain', 400.0),
            jitter=config.get('level_meter.jitter', 15),
            sample_rate=sample_rate,
            chunk_size=config.get('audio.chunk_size', 1024),
            channels=config.get('audio.channels', 1),
            device_index=config.get('audio.device_index'),
        )
        source_factory = partial(
            GoogleStreamingTranscriptSource,
            credentials_path=config.get('recognition.credentials_path'),
            sample_rate=sample_rate,
            language=config.get('recognition.language', 'en-US'),
            use_enhanced=config.get('recognition.use_enhanced_model', True),
            enable_automatic_punctuation=config.get('recognition.enable_automatic_punctuation', True),
        )
        return cls(
            history_store=history_store,
            meter_factory=meter_factory,
            source_factory=source_factory,
            metrics_engine=metrics_engine,
            tick_interval=config.get('session.tick_interval_seconds', 1.0),
            default_title=config.get('session.default_title', 'Practice Session'),
        )

    @property
    def state(self) -> RecordingState:
        return self.session.state

    def snapshot(self) -> RecordingSession:
        """Copy of the current session, safe to read from any thread."""
        with self._lock:
            return copy.deepcopy(self.session)

    def start(self, title: Optional[str] = None) -> RecordingSession:
        """Acquire the recognizer and the audio device and begin recording.

        Raises:
            SessionStateError: a session is already recording
            CapabilityUnavailable, PermissionDenied: setup failed; the
                recorder stays Idle and nothing is left acquired
        """
        with self._lock:
            if self.session.state is RecordingState.RECORDING or self._starting:
                raise SessionStateError("A session is already recording")
            self._starting = True
            self._generation += 1
            generation = self._generation
            self._inbox = queue.Queue()

        try:
            source, meter = self._acquire(generation)
        except Exception as e:
            with self._lock:
                self._starting = False
                self._inbox = None
                self.session = RecordingSession()
            logger.error(f"Could not start recording: {e}")
            self._notify("error", "Recording could not start", str(e))
            raise

        now = datetime.now()
        with self._lock:
            self._source = source
            self._meter = meter
            self.last_record = None
            self._finalized.clear()
            self.metrics_engine.reset()
            self.session = RecordingSession(
                state=RecordingState.RECORDING,
                title=title or f"{self.default_title} {now:%Y-%m-%d %H:%M}",
                started_at=now,
            )
            try:
                self._dispatcher = threading.Thread(target=self._dispatch_loop,
                                                    args=(self._inbox, generation), daemon=True)
                self._dispatcher.name = "SessionDispatcherThread"
                self._dispatcher.start()

                self._clock_stop = threading.Event()
                if self.tick_interval:
                    self._clock = threading.Thread(target=self._run_clock,
                                                   args=(generation, self._clock_stop), daemon=True)
                    self._clock.name = "SessionClockThread"
                    self._clock.start()
            finally:
                self._starting = False

        logger.info(f"Recording started: {self.session.title}")
        self._notify("info", "Recording started", "Speak clearly into your microphone.")
        return self.snapshot()

    def _acquire(self, generation: int):
        """Start the transcript source, then the level meter; undo on failure."""
        source = self.source_factory()
        source.start(on_update=partial(self._post_update, generation),
                     on_error=partial(self._post_error, generation))

        meter = None
        try:
            meter = self.meter_factory(error_callback=partial(self._post_error, generation))
            pub.subscribe(source.on_audio_chunk, meter.audio_topic)
            meter.start()
        except Exception:
            if meter is not None and pub.isSubscribed(source.on_audio_chunk, meter.audio_topic):
                pub.unsubscribe(source.on_audio_chunk, meter.audio_topic)
            source.stop()
            raise
        return source, meter

    def stop(self) -> Optional[SessionRecord]:
        """Stop the active session and persist its record.

        Idempotent: calling it when nothing is recording returns None. If
        another thread is already stopping the session (a forced stop after
        the device was lost), this waits for it so ``last_record`` is set on
        return.

        Returns:
            The saved (or unsaved, on storage failure) record, or None when the
            session had no finalized speech
        """
        return self._stop(wait=True)

    def _stop(self, wait: bool) -> Optional[SessionRecord]:
        with self._lock:
            recording = self.session.state is RecordingState.RECORDING
            if recording:
                self.session.state = RecordingState.STOPPED
        if not recording:
            # the dispatcher never waits: the stopping thread may be joining it
            if wait:
                self._finalized.wait(timeout=5.0)
            return None

        with self._lock:
            self.session.interim_segment = None
            session = copy.deepcopy(self.session)
            meter, source = self._meter, self._source
            dispatcher, clock, inbox = self._dispatcher, self._clock, self._inbox
            self._meter = self._source = None
            self._dispatcher = self._clock = None
            self._inbox = None
            self._clock_stop.set()

        self._release(meter, source, clock)
        if inbox is not None:
            inbox.put(None)
        if dispatcher is not None and dispatcher is not threading.current_thread():
            dispatcher.join(timeout=2.0)

        logger.info(f"Recording stopped after {session.elapsed_seconds}s "
                    f"with {len(session.transcript_segments)} segments")
        try:
            record = self._finalize(session)
            self.last_record = record
        finally:
            self._finalized.set()
        self._notify("info", "Recording stopped",
                     "Your recording has been analyzed." if record else "No speech was captured.")
        return record

    def _release(self, meter, source, clock) -> None:
        try:
            if clock is not None and clock is not threading.current_thread():
                clock.join(timeout=2.0)
        finally:
            try:
                if source is not None:
                    if meter is not None and pub.isSubscribed(source.on_audio_chunk, meter.audio_topic):
                        pub.unsubscribe(source.on_audio_chunk, meter.audio_topic)
                    source.stop()
            finally:
                if meter is not None:
                    meter.stop()

    def _finalize(self, session: RecordingSession) -> Optional[SessionRecord]:
        if not session.transcript_segments or session.elapsed_seconds <= 0:
            logger.info("Session produced no finalized transcript; nothing to save")
            return None

        record = build_session_record(
            self.history_store,
            title=session.title,
            elapsed_seconds=session.elapsed_seconds,
            segments=session.transcript_segments,
            metrics=session.metrics,
            source_type=SourceType.REAL_TIME,
        )
        self._persist(record)
        return record

    def _persist(self, record: SessionRecord) -> bool:
        try:
            self.history_store.append(record)
        except StorageWriteFailure as e:
            logger.error(f"Keeping record {record.id} in memory: {e}")
            self.unsaved_records.append(record)
            self._notify("error", "Session could not be saved", str(e))
            return False
        return True

    def retry_unsaved(self) -> int:
        """Try again to persist records whose write failed. Returns how many were saved."""
        pending, self.unsaved_records = self.unsaved_records, []
        saved = 0
        for record in pending:
            if self._persist(record):
                saved += 1
        return saved

    def tick(self) -> None:
        """Advance the session clock by one second."""
        with self._lock:
            generation = self._generation
        self._post(generation, _Tick())

    def wait_idle(self) -> None:
        """Block until every message posted so far has been applied."""
        with self._lock:
            inbox = self._inbox
        if inbox is not None:
            inbox.join()

    def _run_clock(self, generation: int, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.tick_interval):
            self._post(generation, _Tick())

    def _post_update(self, generation: int, update: TranscriptUpdate) -> None:
        self._post(generation, _Transcript(update))

    def _post_error(self, generation: int, error: SpeechCoachError) -> None:
        self._post(generation, _SourceError(error))

    def _post(self, generation: int, message) -> None:
        with self._lock:
            if generation != self._generation or self._inbox is None:
                return
            if self.session.state is RecordingState.STOPPED and not self._starting:
                return
            inbox = self._inbox
        inbox.put(message)

    def _dispatch_loop(self, inbox: queue.Queue, generation: int) -> None:
        while True:
            message = inbox.get()
            try:
                if message is None:
                    return
                self._apply(generation, message)
            except Exception as e:
                logger.error(f"Unhandled error applying {type(message).__name__}: {e}", exc_info=True)
            finally:
                inbox.task_done()

    def _apply(self, generation: int, message) -> None:
        with self._lock:
            if generation != self._generation or self.session.state is not RecordingState.RECORDING:
                return
            if isinstance(message, _Tick):
                self._apply_tick()
                return
            if isinstance(message, _Transcript):
                self._apply_transcript(message.update)
                return

        if isinstance(message, _SourceError):
            error = message.error
            logger.warning(f"{type(error).__name__} while recording: {error}")
            self._notify("warning", type(error).__name__, str(error))
            if not error.recoverable:
                logger.error("Unrecoverable capture failure, stopping session")
                self._stop(wait=False)

    def _apply_tick(self) -> None:
        self.session.elapsed_seconds += 1
        if self._meter is not None:
            self.session.level_samples = deque(self._meter.sample(), maxlen=LEVEL_SAMPLE_COUNT)

    def _apply_transcript(self, update: TranscriptUpdate) -> None:
        for segment in update.final_segments:
            text = segment.text.strip()
            if not text:
                continue
            self.session.transcript_segments.append(text)
            self.session.metrics = self.metrics_engine.update(
                text,
                segment.confidence,
                self.session.elapsed_seconds,
                self.session.metrics.word_count,
            )
            logger.info(f"Segment: '{text}' -> {self.session.metrics.pace_wpm} wpm, "
                        f"{self.session.metrics.filler_count} fillers")
        self.session.interim_segment = update.interim_text or None

    def _notify(self, level: str, title: str, message: str = "") -> None:
        notify(level, title, message, topic=self.notification_topic)
