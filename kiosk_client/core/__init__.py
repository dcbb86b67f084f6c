"""
Core module - Foundation layer with no external dependencies.

Contains:
- Exceptions
- Interfaces (Protocols)
- Value Objects
"""

from .exceptions import (
    KioskClientError,
    BackendError,
    BackendTransportError,
    PaymentCreationError,
    PaymentStatusError,
    ActuationError,
    DeviceStatusError,
    ConnectivityProbeError,
    AudioUnavailableError,
    ConfigurationError,
)
from .interfaces import (
    AsyncCallback,
    Clock,
    KioskBackend,
    Scheduler,
    TimerHandle,
    ToneEngine,
)
from .value_objects import (
    TransactionStatus,
    HealthStatus,
    DiagnosticsSample,
    DeviceCommandObservation,
    TransactionSession,
    GraphicPayload,
    InlineMarkup,
    EncodedImage,
    ExternalUrl,
    Unresolved,
)


__all__ = [
    # Exceptions
    "KioskClientError",
    "BackendError",
    "BackendTransportError",
    "PaymentCreationError",
    "PaymentStatusError",
    "ActuationError",
    "DeviceStatusError",
    "ConnectivityProbeError",
    "AudioUnavailableError",
    "ConfigurationError",
    # Interfaces
    "AsyncCallback",
    "Clock",
    "KioskBackend",
    "Scheduler",
    "TimerHandle",
    "ToneEngine",
    # Value Objects
    "TransactionStatus",
    "HealthStatus",
    "DiagnosticsSample",
    "DeviceCommandObservation",
    "TransactionSession",
    "GraphicPayload",
    "InlineMarkup",
    "EncodedImage",
    "ExternalUrl",
    "Unresolved",
]
