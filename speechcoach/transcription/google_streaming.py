"""Live transcript source backed by Google streaming recognition."""

import logging
import queue
import threading
from typing import Iterator, Optional

from google.auth import exceptions as auth_exceptions
from google.api_core import exceptions as gax_exceptions
from google.cloud import speech
from google.oauth2 import service_account

from .base import AbstractTranscriptSource, ErrorCallback, UpdateCallback
from ..errors import CapabilityUnavailable, SpeechCoachError, TransientRecognitionError
from ..models.events import AudioEvent, TranscriptSegment, TranscriptUpdate

logger = logging.getLogger(__name__)


def response_to_update(response) -> Optional[TranscriptUpdate]:
    """Convert one StreamingRecognizeResponse into a TranscriptUpdate.

    Final results keep recognizer order; all non-final results of the batch
    are joined into the single interim text.
    """
    finals = []
    interim_parts = []
    for result in response.results:
        if not result.alternatives:
            continue
        alternative = result.alternatives[0]
        if result.is_final:
            finals.append(TranscriptSegment(text=alternative.transcript.strip(),
                                            confidence=float(alternative.confidence)))
        else:
            interim_parts.append(alternative.transcript)

    interim = "".join(interim_parts).strip() or None
    if not finals and interim is None:
        return None
    return TranscriptUpdate(final_segments=tuple(finals), interim_text=interim)


class GoogleStreamingTranscriptSource(AbstractTranscriptSource):
    """Continuous, interim-enabled recognition over audio fed from the capture topic."""

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 sample_rate: int = 16000,
                 language: str = "en-US",
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 client=None):
        """Initialize the streaming source.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            sample_rate: Sample rate of the audio that will be fed in
            language: Recognition locale
            use_enhanced: Whether to use the enhanced model
            enable_automatic_punctuation: Enable automatic punctuation
            client: Pre-built SpeechClient, mainly for tests
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        self.client = client
        self.streaming_config = speech.StreamingRecognitionConfig(
            config=speech.RecognitionConfig(
                encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
                sample_rate_hertz=sample_rate,
                language_code=language,
                use_enhanced=use_enhanced,
                enable_automatic_punctuation=enable_automatic_punctuation,
            ),
            interim_results=True,
        )

        self.audio_queue: "queue.Queue[Optional[bytes]]" = queue.Queue()
        self.stop_event = threading.Event()
        self.emit_lock = threading.Lock()
        self.worker: Optional[threading.Thread] = None
        self.on_update: Optional[UpdateCallback] = None
        self.on_error: Optional[ErrorCallback] = None

    def initialize(self) -> None:
        """Create the speech client.

        Raises:
            CapabilityUnavailable: no credentials or the client could not be created
        """
        if self.client is not None:
            return
        if not self.credentials_path:
            raise CapabilityUnavailable("Speech recognition is not configured: no Google credentials path")
        try:
            credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
            self.client = speech.SpeechClient(credentials=credentials)
        except (OSError, ValueError, auth_exceptions.GoogleAuthError) as e:
            raise CapabilityUnavailable(f"Speech recognition unavailable: {e}") from e
        logger.info(f"Google streaming recognition ready (project: {credentials.project_id})")

    def start(self, on_update: UpdateCallback, on_error: ErrorCallback) -> None:
        self.initialize()
        self.on_update = on_update
        self.on_error = on_error
        self.audio_queue = queue.Queue()
        self.stop_event.clear()

        self.worker = threading.Thread(target=self._run, daemon=True)
        self.worker.name = "StreamingRecognitionThread"
        self.worker.start()
        logger.info(f"Streaming recognition started ({self.language})")

    def stop(self) -> None:
        with self.emit_lock:
            if self.stop_event.is_set():
                return
            self.stop_event.set()
            self.on_update = None
            self.on_error = None
        self.audio_queue.put(None)

        if self.worker and self.worker.is_alive() and self.worker is not threading.current_thread():
            self.worker.join(timeout=2.0)
            if self.worker.is_alive():
                logger.warning("Streaming recognition thread did not stop cleanly")
        logger.info("Streaming recognition stopped")

    def on_audio_chunk(self, event: AudioEvent) -> None:
        if not self.stop_event.is_set():
            self.audio_queue.put(event.audio_data)

    def _requests(self) -> Iterator[speech.StreamingRecognizeRequest]:
        while not self.stop_event.is_set():
            chunk = self.audio_queue.get()
            if chunk is None:
                return
            data = [chunk]
            # Coalesce whatever else is already buffered into one request
            while True:
                try:
                    chunk = self.audio_queue.get_nowait()
                except queue.Empty:
                    break
                if chunk is None:
                    yield speech.StreamingRecognizeRequest(audio_content=b"".join(data))
                    return
                data.append(chunk)
            yield speech.StreamingRecognizeRequest(audio_content=b"".join(data))

    def _run(self) -> None:
        """Keep a recognition stream open until stopped, reopening after errors or server timeouts."""
        while not self.stop_event.is_set():
            try:
                responses = self.client.streaming_recognize(self.streaming_config, self._requests())
                for response in responses:
                    if self.stop_event.is_set():
                        break
                    update = response_to_update(response)
                    if update is not None:
                        self._emit(update)
            except (gax_exceptions.GoogleAPICallError, auth_exceptions.TransportError) as e:
                if self.stop_event.is_set():
                    break
                logger.warning(f"Recognition error, reopening stream: {e}")
                self._report(TransientRecognitionError(f"Speech recognition error: {e}"))
                self.stop_event.wait(0.5)
            except auth_exceptions.GoogleAuthError as e:
                logger.error(f"Recognition credentials rejected: {e}")
                self._report(CapabilityUnavailable(f"Speech recognition credentials failed: {e}"))
                return
            except Exception as e:
                logger.error(f"Recognition stream failed: {e}", exc_info=True)
                self._report(CapabilityUnavailable(f"Speech recognition stopped unexpectedly: {e}"))
                return

    def _emit(self, update: TranscriptUpdate) -> None:
        with self.emit_lock:
            if self.stop_event.is_set() or self.on_update is None:
                return
            self.on_update(update)

    def _report(self, error: SpeechCoachError) -> None:
        with self.emit_lock:
            if self.stop_event.is_set() or self.on_error is None:
                return
            self.on_error(error)
