"""
Domain layer - Kiosk session logic.

Contains:
- Transaction lifecycle state machine
- Device command overlay reconciliation
- Gateway/connectivity diagnostics
- Audio feedback cues
- QR payload resolution
"""

from .transaction_lifecycle import (
    TransactionLifecycle,
    TransactionPhase,
)
from .device_command_reconciler import (
    DeviceCommandReconciler,
    command_display_text,
)
from .diagnostics import (
    DiagnosticsAggregator,
    HealthTrack,
)
from .audio_feedback import (
    AudioEventThrottle,
    AudioFeedback,
    FrontendToneEngine,
    Tone,
    frontend_engine_factory,
)
from .graphic_payload import resolve_graphic_payload


__all__ = [
    # Lifecycle
    "TransactionLifecycle",
    "TransactionPhase",
    # Device Commands
    "DeviceCommandReconciler",
    "command_display_text",
    # Diagnostics
    "DiagnosticsAggregator",
    "HealthTrack",
    # Audio
    "AudioEventThrottle",
    "AudioFeedback",
    "FrontendToneEngine",
    "Tone",
    "frontend_engine_factory",
    # QR
    "resolve_graphic_payload",
]
