"""Audio capture module with continuous recording and per-chunk callbacks."""

import errno
import pyaudio
import time
import logging
from threading import Thread, Event
from typing import Optional, Callable

from ..errors import CapabilityUnavailable, DeviceLost, PermissionDenied, SpeechCoachError
from ..models.events import AudioEvent


logger = logging.getLogger(__name__)


def _classify_open_error(error: Exception) -> SpeechCoachError:
    """Map a PortAudio open failure onto the setup error taxonomy."""
    message = str(error)
    code = getattr(error, "errno", None)
    if code in (errno.EACCES, errno.EPERM) or "permission" in message.lower():
        return PermissionDenied(f"Microphone access denied: {message}")
    return CapabilityUnavailable(f"No usable audio input device: {message}")


class AudioCapture:
    """Continuous audio capture that hands every chunk to a callback.

    The stream is opened synchronously in ``start_recording`` so that device
    problems surface to the caller; reading happens on a background thread.
    """

    def __init__(
        self,
        callback: Callable[[AudioEvent], None],
        error_callback: Optional[Callable[[SpeechCoachError], None]] = None,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        device_index: Optional[int] = None,
        format: int = pyaudio.paInt16,
    ):
        """Initialize audio capture with specified parameters.

        Args:
            callback: Receives every captured AudioEvent
            error_callback: Receives DeviceLost if the stream dies mid-recording
            sample_rate: Audio sample rate (16kHz for speech recognition)
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels (1 for mono)
            device_index: PyAudio input device index, None for the default device
            format: Audio format (16-bit signed int)
        """
        self.audio_event_callback = callback
        self.error_callback = error_callback
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.device_index = device_index
        self.format = format

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False

        # Statistics tracking
        self.total_chunks = 0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

    def start_recording(self) -> None:
        """Open the input stream and start reading in a background thread.

        Raises:
            PermissionDenied: Access to the microphone was refused
            CapabilityUnavailable: No input device could be opened
        """
        if self.is_recording:
            logger.warning("Recording already in progress")
            return

        logger.info("Starting audio recording")
        self.stop_event.clear()
        self.total_chunks = 0

        self.stream = self.__open_audio_stream()

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.is_recording = True
        self.recording_thread.start()

    def stop_recording(self) -> None:
        """Stop recording and clean up resources."""
        if not self.is_recording:
            logger.debug("No recording in progress")
            return

        logger.info("Stopping audio recording")
        self.stop_event.set()

        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")

        self.is_recording = False
        logger.info(f"Recording stopped. Total chunks: {self.total_chunks}")

    def __open_audio_stream(self):
        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            stream = self.pyaudio_instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.device_index,
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except (OSError, ValueError) as e:
            self.__release()
            logger.error(f"Could not open audio input: {e}")
            raise _classify_open_error(e) from e
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk")
        return stream

    def __read_audio_chunk(self) -> bytes:
        audio_chunk = self.stream.read(self.chunk_size, exception_on_overflow=False)
        self.total_chunks += 1
        return audio_chunk

    def __publish_audio_event(self, audio_chunk: bytes) -> None:
        audio_event = AudioEvent(
            chunk_id=f"chunk_{self.total_chunks}",
            audio_data=audio_chunk,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            sample_rate=self.sample_rate,
            channels=self.channels,
            final=self.stop_event.is_set()
        )
        self.audio_event_callback(audio_event)

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        try:
            while not self.stop_event.is_set():
                audio_chunk = self.__read_audio_chunk()
                self.__publish_audio_event(audio_chunk)
        except OSError as e:
            if not self.stop_event.is_set():
                logger.error(f"Audio input stream ended unexpectedly: {e}")
                if self.error_callback:
                    self.error_callback(DeviceLost(f"Audio input lost: {e}"))
        finally:
            self.__release()

    def __release(self) -> None:
        if self.stream is not None:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except OSError as e:
                logger.debug(f"Error closing audio stream: {e}")
            self.stream = None
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
