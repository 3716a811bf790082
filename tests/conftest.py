"""Pytest configuration and fixtures for SpeechCoach tests."""

import pytest
import random
import tempfile
import time
import uuid
import wave
import logging
from functools import partial
from pathlib import Path
from unittest.mock import Mock, patch
import numpy as np

from speechcoach.audio.level_meter import AudioLevelMeter
from speechcoach.models.events import AudioEvent, TranscriptSegment, TranscriptUpdate
from speechcoach.storage.history_store import HistoryStore
from speechcoach.services.session_recorder import SessionRecorder
from speechcoach.transcription.base import AbstractTranscriptSource


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def wait_until(condition, timeout: float = 3.0, interval: float = 0.01) -> bool:
    """Poll condition until it is true or the timeout expires."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(interval)
    return condition()


class FakeCapture:
    """Stands in for AudioCapture; audio is pushed by the test."""

    def __init__(self, callback, error_callback=None, fail_with=None, **kwargs):
        self.callback = callback
        self.error_callback = error_callback
        self.fail_with = fail_with
        self.is_recording = False
        self.sequence = 0

    def start_recording(self):
        if self.fail_with is not None:
            raise self.fail_with
        self.is_recording = True

    def stop_recording(self):
        self.is_recording = False

    def push(self, audio_data: bytes):
        self.sequence += 1
        self.callback(AudioEvent(
            chunk_id=f"chunk_{self.sequence}",
            audio_data=audio_data,
            timestamp=time.time(),
            sequence_number=self.sequence,
        ))

    def lose_device(self, error):
        self.error_callback(error)


class FakeTranscriptSource(AbstractTranscriptSource):
    """Transcript source driven directly by the test."""

    def __init__(self, fail_with=None):
        super().__init__()
        self.fail_with = fail_with
        self.on_update = None
        self.on_error = None
        self.started = False
        self.stopped = False
        self.audio_events = []

    def start(self, on_update, on_error):
        if self.fail_with is not None:
            raise self.fail_with
        self.on_update = on_update
        self.on_error = on_error
        self.started = True

    def stop(self):
        self.stopped = True
        self.on_update = None
        self.on_error = None

    def on_audio_chunk(self, event):
        self.audio_events.append(event)

    def emit(self, *finals, interim=None):
        """Deliver finals given as (text, confidence) pairs plus an optional interim."""
        if self.on_update is None:
            return
        segments = tuple(TranscriptSegment(text=text, confidence=confidence) for text, confidence in finals)
        self.on_update(TranscriptUpdate(final_segments=segments, interim_text=interim))

    def fail(self, error):
        if self.on_error is not None:
            self.on_error(error)


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def history_store(temp_data_dir):
    return HistoryStore(temp_data_dir)


@pytest.fixture
def audio_topic():
    """Unique pub/sub topic per test so listeners never leak between tests."""
    return f"test_audio_{uuid.uuid4().hex}"


@pytest.fixture
def sources():
    """Every transcript source created by the recorder under test."""
    return []


@pytest.fixture
def captures():
    """Every fake capture created by the recorder under test."""
    return []


@pytest.fixture
def make_recorder(history_store, audio_topic, sources, captures):
    """Build a recorder with fake devices; ticks are driven by the test."""
    def factory(source_error=None, capture_error=None, **kwargs):
        def source_factory():
            source = FakeTranscriptSource(fail_with=source_error)
            sources.append(source)
            return source

        def capture_factory(**capture_kwargs):
            capture = FakeCapture(fail_with=capture_error, **capture_kwargs)
            captures.append(capture)
            return capture

        meter_factory = partial(AudioLevelMeter,
                                audio_topic=audio_topic,
                                capture_factory=capture_factory,
                                rng=random.Random(7))
        kwargs.setdefault("tick_interval", None)
        return SessionRecorder(history_store=history_store,
                               meter_factory=meter_factory,
                               source_factory=source_factory,
                               **kwargs)
    return factory


@pytest.fixture
def notifications():
    """Collect notifications published while the test runs."""
    from pubsub import pub
    from speechcoach.services.session_recorder import NOTIFICATION_TOPIC

    received = []

    def listener(notification):
        received.append(notification)

    pub.subscribe(listener, NOTIFICATION_TOPIC)
    yield received
    pub.unsubscribe(listener, NOTIFICATION_TOPIC)


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    sample_rate = 16000
    duration = 1024 / sample_rate
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        def read(*args, **kwargs):
            time.sleep(0.005)
            return b'\x00' * 2048  # Silent audio

        mock_stream.read.side_effect = read
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_sample_size.return_value = 2

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def sample_audio_file(temp_data_dir, sample_audio_chunk):
    """Create a ~25 second mono WAV file."""
    file_path = Path(temp_data_dir) / "test_audio.wav"

    with wave.open(str(file_path), 'wb') as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(16000)
        for _ in range(400):  # 400 * 1024 samples ~= 25.6 seconds
            wf.writeframes(sample_audio_chunk)

    return str(file_path)
