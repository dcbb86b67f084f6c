"""
Custom exceptions for the kiosk client.

Provides a hierarchy of typed exceptions for better error handling
and more informative error messages.
"""

from typing import Any, Optional


class KioskClientError(Exception):
    """Base exception for all kiosk client errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            code: Optional error code for programmatic handling.
            details: Optional additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for command responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Backend Errors
# =============================================================================


class BackendError(KioskClientError):
    """Base exception for errors talking to the kiosk backend."""

    pass


class BackendTransportError(BackendError):
    """
    A backend call did not complete at the transport level.

    Raised for network errors, timeouts and non-2xx responses. A 2xx
    response with an unparseable body is never a transport error.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code
        if status_code is not None:
            self.details["status_code"] = status_code

    @property
    def reached_backend(self) -> bool:
        """Whether the backend produced a response at all."""
        return self.status_code is not None


class PaymentCreationError(BackendTransportError):
    """Payment session could not be created."""

    pass


class PaymentStatusError(BackendTransportError):
    """Payment status poll failed."""

    pass


class ActuationError(BackendTransportError):
    """Post-payment dispense confirmation failed."""

    pass


class DeviceStatusError(BackendTransportError):
    """Device command status poll failed."""

    pass


class ConnectivityProbeError(BackendError):
    """Reachability probe failed or timed out."""

    pass


# =============================================================================
# Local Errors
# =============================================================================


class AudioUnavailableError(KioskClientError):
    """Audio engine could not be created."""

    pass


class ConfigurationError(KioskClientError):
    """Invalid configuration value."""

    pass
