"""Services layer for SpeechCoach application logic."""

from .session_recorder import SessionRecorder, build_session_record, notify
from .upload_service import UploadAnalyzer

__all__ = [
    "SessionRecorder",
    "UploadAnalyzer",
    "build_session_record",
    "notify",
]
