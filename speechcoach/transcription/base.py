"""Abstract base classes for transcript sources and transcription backends."""

from abc import ABC, abstractmethod
from typing import Callable
import logging

from ..errors import SpeechCoachError
from ..models.events import AudioEvent, TranscriptUpdate
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[TranscriptUpdate], None]
ErrorCallback = Callable[[SpeechCoachError], None]


class AbstractTranscriptSource(ABC):
    """Live, append-only stream of recognized speech.

    Implementations deliver one ``TranscriptUpdate`` per recognizer event
    batch. After ``stop()`` returns no further update may be delivered.
    """

    def __init__(self, language: str = "en-US"):
        self.language = language

    @abstractmethod
    def start(self, on_update: UpdateCallback, on_error: ErrorCallback) -> None:
        """Begin continuous, interim-enabled recognition.

        Raises:
            CapabilityUnavailable: recognition is not available on this system
        """

    @abstractmethod
    def stop(self) -> None:
        """Halt recognition and all further emissions. Must be idempotent."""

    def on_audio_chunk(self, event: AudioEvent) -> None:
        """Feed captured audio. Sources with their own input may ignore it."""


class AbstractTranscriptionBackend(ABC):
    """Abstract base class for one-shot transcription backends."""

    def __init__(self, language: str = "en-US"):
        """Initialize backend with language preference."""
        self.language = language

    @abstractmethod
    def transcribe_chunk(self, chunk_id: str, audio_chunk: bytes) -> TranscriptionResult:
        """Transcribe an audio chunk and return result.

        Args:
            chunk_id: Identifier used for logging and on the result
            audio_chunk: Raw 16-bit PCM audio data

        Returns:
            TranscriptionResult with transcription and metadata
        """

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize backend resources and verify configuration.

        Returns:
            True if initialization successful, False otherwise
        """

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up backend resources."""
