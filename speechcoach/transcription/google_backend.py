"""Google Speech-to-Text synchronous backend, used for uploaded recordings."""

import time
import logging
from datetime import datetime
from typing import Optional

from .base import AbstractTranscriptionBackend
from ..errors import CapabilityUnavailable, TransientRecognitionError
from ..models.transcription import NO_SPEECH_DETECTED, TranscriptionResult

from google.auth import exceptions as auth_exceptions
from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


class GoogleSpeechBackend(AbstractTranscriptionBackend):
    """Google Speech-to-Text API backend for transcription."""

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 sample_rate: int = 16000,
                 language: str = "en-US",
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 request_timeout: float = 30.0):
        """Initialize Google Speech backend.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            sample_rate: Sample rate of the audio that will be submitted
            language: Language code (e.g., 'en-US', 'es-ES')
            use_enhanced: Whether to use enhanced model (costs more but better quality)
            enable_automatic_punctuation: Enable automatic punctuation
            request_timeout: Per-request deadline in seconds
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        if not self.credentials_path:
            raise CapabilityUnavailable("Google credentials path is required - cannot recognize speech without credentials")
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.request_timeout = request_timeout
        self.client = None
        self.project_id = None
        self.service_name = "Google Speech-to-Text"
        self.config = speech.RecognitionConfig(
                encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
                sample_rate_hertz=sample_rate,
                language_code=self.language,
                use_enhanced=self.use_enhanced,
                enable_automatic_punctuation=self.enable_automatic_punctuation,
                enable_word_confidence=True,
            )

    def initialize(self) -> bool:
        """Initialize Google Speech client and verify credentials."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        try:
            credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        except (OSError, ValueError, auth_exceptions.GoogleAuthError) as e:
            raise CapabilityUnavailable(f"Could not load Google credentials: {e}") from e

        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        logger.info(f"Using Google Cloud project: {self.project_id}")
        return True

    def transcribe_chunk(self, chunk_id: str, audio_chunk: bytes) -> TranscriptionResult:
        """Transcribe audio chunk using Google Speech-to-Text."""
        if self.client is None:
            self.initialize()
        start_time = time.time()

        logger.debug(f"Chunk ID: {chunk_id}; Audio chunk size: {len(audio_chunk)} bytes; Language: {self.language}")

        audio = speech.RecognitionAudio(content=audio_chunk)
        try:
            response = self.client.recognize(config=self.config, audio=audio, timeout=self.request_timeout)
        except gax_exceptions.DeadlineExceeded as e:
            logger.error("Google STT recognize deadline exceeded for chunk %s", chunk_id)
            raise TransientRecognitionError(f"Google Speech recognize timeout (chunk={chunk_id}): {e}") from e
        except gax_exceptions.ServiceUnavailable as e:
            logger.error("Google STT service unavailable for chunk %s", chunk_id)
            raise TransientRecognitionError(f"Google Speech service unavailable (chunk={chunk_id}): {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            logger.error("Google STT API call error for chunk %s: %s", chunk_id, e)
            raise TransientRecognitionError(f"Google Speech API error (chunk={chunk_id}): {e}") from e
        processing_time = time.time() - start_time

        if not response.results:
            logger.debug("--- NO SPEECH DETECTED ---")
            return TranscriptionResult(
                text=NO_SPEECH_DETECTED,
                confidence=0.0,
                processing_time=processing_time,
                timestamp=datetime.now(),
                service=self.service_name,
                language=self.language,
                chunk_id=chunk_id,
            )

        # Synchronous responses split long audio into consecutive results
        texts = []
        confidences = []
        for recognition_result in response.results:
            if not recognition_result.alternatives:
                continue
            alternative = recognition_result.alternatives[0]
            texts.append(alternative.transcript.strip())
            confidences.append(alternative.confidence)

        text = " ".join(t for t in texts if t)
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        logger.debug(f"TRANSCRIPTION SUCCESS: '{text}' "
                     f"(confidence: {confidence:.2f}, processing_time: {processing_time:.3f}s)")
        return TranscriptionResult(
            text=text or NO_SPEECH_DETECTED,
            confidence=confidence,
            processing_time=processing_time,
            timestamp=datetime.now(),
            service=self.service_name,
            language=self.language,
            chunk_id=chunk_id,
        )

    def cleanup(self) -> None:
        """Clean up Google Speech client resources."""
        self.client = None
