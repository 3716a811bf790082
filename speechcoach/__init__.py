"""SpeechCoach - live speech capture with coaching metrics."""

__version__ = "0.1.0"
