"""Audio capture and level metering module."""

from .capture import AudioCapture
from .level_meter import AudioLevelMeter

__all__ = [
    'AudioCapture',
    'AudioLevelMeter',
]
