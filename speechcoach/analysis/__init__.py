"""Speech analysis: metrics engines and coaching feedback."""

from .feedback import clarity_label, coaching_tips, format_duration, pace_label, rate_session
from .metrics_engine import FILLER_VOCABULARY, LinguisticMetricsEngine, MetricsEngine
from .simulated import SimulatedMetricsEngine

__all__ = [
    "clarity_label",
    "coaching_tips",
    "format_duration",
    "pace_label",
    "rate_session",
    "FILLER_VOCABULARY",
    "LinguisticMetricsEngine",
    "MetricsEngine",
    "SimulatedMetricsEngine",
]
