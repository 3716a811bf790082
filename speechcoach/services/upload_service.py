"""Offline analysis of pre-recorded audio files."""

import logging
import wave
from functools import partial
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from ..analysis.metrics_engine import LinguisticMetricsEngine, MetricsEngine
from ..config import SpeechCoachConfig
from ..errors import CapabilityUnavailable, StorageWriteFailure, TransientRecognitionError
from ..models.metrics import SpeechMetrics
from ..models.session import SessionRecord, SourceType
from ..storage.history_store import HistoryStore
from ..transcription.base import AbstractTranscriptionBackend
from ..transcription.google_backend import GoogleSpeechBackend
from .session_recorder import build_session_record, notify

logger = logging.getLogger(__name__)


def read_wav(path: str):
    """Read a 16-bit PCM WAV file as mono samples.

    Returns:
        (int16 numpy array, sample rate)
    """
    try:
        with wave.open(path, 'rb') as wf:
            channels = wf.getnchannels()
            sample_width = wf.getsampwidth()
            sample_rate = wf.getframerate()
            frames = wf.readframes(wf.getnframes())
    except (OSError, EOFError, wave.Error) as e:
        raise CapabilityUnavailable(f"Cannot read audio file {path}: {e}") from e

    if sample_width != 2:
        raise CapabilityUnavailable(f"Unsupported sample width {sample_width * 8} bits in {path}; expected 16-bit PCM")

    samples = np.frombuffer(frames, dtype=np.int16)
    if channels > 1:
        samples = samples.reshape(-1, channels).mean(axis=1).astype(np.int16)
    return samples, sample_rate


class UploadAnalyzer:
    """Transcribes an uploaded recording window by window and records the result."""

    def __init__(self,
                 history_store: HistoryStore,
                 backend_factory: Callable[..., AbstractTranscriptionBackend],
                 metrics_engine: Optional[MetricsEngine] = None,
                 window_seconds: float = 10.0,
                 default_title: str = "Uploaded Speech"):
        self.history_store = history_store
        self.backend_factory = backend_factory
        self.metrics_engine = metrics_engine or LinguisticMetricsEngine()
        self.window_seconds = window_seconds
        self.default_title = default_title

    @classmethod
    def from_config(cls, config: SpeechCoachConfig, history_store: HistoryStore) -> "UploadAnalyzer":
        backend_factory = partial(
            GoogleSpeechBackend,
            credentials_path=config.get('recognition.credentials_path'),
            language=config.get('recognition.language', 'en-US'),
            use_enhanced=config.get('recognition.use_enhanced_model', True),
            enable_automatic_punctuation=config.get('recognition.enable_automatic_punctuation', True),
        )
        return cls(history_store, backend_factory,
                   window_seconds=config.get('recognition.upload_window_seconds', 10.0))

    def analyze_file(self, path: str, title: Optional[str] = None) -> Optional[SessionRecord]:
        """Analyze a WAV file and append an Uploaded session record.

        Returns:
            The record, or None when no speech was recognized

        Raises:
            CapabilityUnavailable: the file cannot be read or recognition is unavailable
        """
        samples, sample_rate = read_wav(path)
        total_seconds = len(samples) / sample_rate if sample_rate else 0
        logger.info(f"Analyzing {path}: {total_seconds:.1f}s at {sample_rate}Hz")

        backend = self.backend_factory(sample_rate=sample_rate)
        backend.initialize()
        self.metrics_engine.reset()

        window = max(1, int(self.window_seconds * sample_rate))
        segments = []
        metrics = SpeechMetrics()
        try:
            for index, offset in enumerate(range(0, len(samples), window)):
                chunk = samples[offset:offset + window]
                end_seconds = (offset + len(chunk)) / sample_rate
                try:
                    result = backend.transcribe_chunk(f"upload.{index}", chunk.tobytes())
                except TransientRecognitionError as e:
                    logger.warning(f"Skipping window {index}: {e}")
                    notify("warning", "Part of the recording could not be recognized", str(e))
                    continue
                if not result.has_speech:
                    continue
                text = result.text.strip()
                segments.append(text)
                metrics = self.metrics_engine.update(text, result.confidence,
                                                     round(end_seconds), metrics.word_count)
        finally:
            backend.cleanup()

        elapsed = round(total_seconds)
        if not segments or elapsed <= 0:
            logger.info(f"No speech recognized in {path}")
            return None

        record = build_session_record(
            self.history_store,
            title=title or f"{self.default_title}: {Path(path).stem}",
            elapsed_seconds=elapsed,
            segments=segments,
            metrics=metrics,
            source_type=SourceType.UPLOADED,
        )
        try:
            self.history_store.append(record)
        except StorageWriteFailure as e:
            notify("error", "Session could not be saved", str(e))
            raise
        notify("info", "Upload analyzed", f"{record.title}: {record.rating.value}")
        return record
