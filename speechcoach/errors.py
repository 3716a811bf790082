"""Error taxonomy for SpeechCoach.

Setup errors (``CapabilityUnavailable``, ``PermissionDenied``) keep a session
Idle. ``TransientRecognitionError`` is reported and recording continues.
``DeviceLost``, or a capability lost mid-session, forces the active session
to stop. ``StorageWriteFailure`` leaves the finished record in memory so it
can be retried.
"""


class SpeechCoachError(Exception):
    """Base class for all SpeechCoach errors."""

    recoverable = True


class CapabilityUnavailable(SpeechCoachError):
    """No microphone or speech recognition support is available."""

    recoverable = False


class PermissionDenied(SpeechCoachError):
    """Access to the audio device was refused."""

    recoverable = False


class TransientRecognitionError(SpeechCoachError):
    """A single utterance could not be recognized."""


class DeviceLost(SpeechCoachError):
    """The audio input stream ended while recording."""

    recoverable = False


class StorageWriteFailure(SpeechCoachError):
    """A session record could not be persisted."""


class SessionStateError(SpeechCoachError):
    """An operation is not valid in the recorder's current state."""
