"""Decorative audio level meter.

The meter keeps the frequency-domain magnitude of the most recent audio chunk
and, once per session tick, appends a value derived from the average
magnitude plus bounded random jitter to an 8-slot ring buffer. The result
only drives a visual indicator. It is an approximation, not a measurement,
and nothing in the metrics path reads it.
"""

import logging
import random
import threading
from collections import deque
from typing import Callable, List, Optional

import numpy as np
from pubsub import pub

from ..errors import SpeechCoachError
from ..models.events import AudioEvent
from ..models.session import INITIAL_LEVEL_SAMPLES, LEVEL_SAMPLE_COUNT
from .capture import AudioCapture

logger = logging.getLogger(__name__)


def spectrum_level(audio_data: bytes, gain: float = 400.0) -> float:
    """Average rfft magnitude of a 16-bit PCM chunk, scaled into [0, 100]."""
    samples = np.frombuffer(audio_data, dtype=np.int16)
    if samples.size == 0:
        return 0.0
    normalized = samples.astype(np.float32) / 32768.0
    magnitudes = np.abs(np.fft.rfft(normalized)) / samples.size
    return float(min(100.0, magnitudes.mean() * gain))


class AudioLevelMeter:
    """Owns the live input device and reduces it to 8 intensity values per tick."""

    def __init__(self,
                 audio_topic: str = "audio.frame",
                 capture_factory: Callable[..., AudioCapture] = AudioCapture,
                 error_callback: Optional[Callable[[SpeechCoachError], None]] = None,
                 gain: float = 400.0,
                 jitter: int = 15,
                 rng: Optional[random.Random] = None,
                 **capture_kwargs):
        self.audio_topic = audio_topic
        self.capture_factory = capture_factory
        self.error_callback = error_callback
        self.gain = gain
        self.jitter = jitter
        self.rng = rng or random.Random()
        self.capture_kwargs = capture_kwargs

        self.capture: Optional[AudioCapture] = None
        self.levels = deque(INITIAL_LEVEL_SAMPLES, maxlen=LEVEL_SAMPLE_COUNT)
        self.current_level = 0.0
        self.lock = threading.Lock()
        self.is_running = False

    def start(self) -> None:
        """Open the input device and start tracking its level.

        Raises:
            PermissionDenied, CapabilityUnavailable: the device could not be opened
        """
        if self.is_running:
            return

        with self.lock:
            self.levels = deque(INITIAL_LEVEL_SAMPLES, maxlen=LEVEL_SAMPLE_COUNT)
            self.current_level = 0.0

        pub.subscribe(self.on_audio_chunk, self.audio_topic)
        self.capture = self.capture_factory(
            callback=self.publish,
            error_callback=self.error_callback,
            **self.capture_kwargs,
        )
        try:
            self.capture.start_recording()
        except Exception:
            pub.unsubscribe(self.on_audio_chunk, self.audio_topic)
            self.capture = None
            raise
        self.is_running = True
        logger.info(f"Level meter started on topic {self.audio_topic}")

    def stop(self) -> None:
        """Release the input device. Safe to call more than once."""
        if not self.is_running:
            return
        self.is_running = False
        if self.capture is not None:
            self.capture.stop_recording()
            self.capture = None
        if pub.isSubscribed(self.on_audio_chunk, self.audio_topic):
            pub.unsubscribe(self.on_audio_chunk, self.audio_topic)
        logger.info("Level meter stopped")

    def publish(self, event: AudioEvent) -> None:
        """Fan a captured chunk out to every listener on the audio topic, the meter included."""
        pub.sendMessage(self.audio_topic, event=event)

    def on_audio_chunk(self, event: AudioEvent) -> None:
        level = spectrum_level(event.audio_data, self.gain)
        with self.lock:
            self.current_level = level

    def sample(self) -> List[int]:
        """Append one jittered value to the ring buffer and return all 8 values."""
        with self.lock:
            base = self.current_level
            value = round(base + self.rng.randint(-self.jitter, self.jitter))
            self.levels.append(max(0, min(100, value)))
            return list(self.levels)
