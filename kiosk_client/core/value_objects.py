"""
Value Objects for the kiosk client.

Immutable objects that represent values in the domain, plus the single
mutable TransactionSession record owned by the lifecycle.
"""

from __future__ import annotations

import base64
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Union


# =============================================================================
# Enums
# =============================================================================


class TransactionStatus(str, Enum):
    """Business status of a payment as reported by the backend."""

    WAITING = "waiting"
    SUCCESS = "success"
    FAILURE = "failure"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Any) -> "TransactionStatus":
        """Parse a raw status value case-insensitively; anything else is UNKNOWN."""
        if not isinstance(raw, str):
            return cls.UNKNOWN
        try:
            status = cls(raw.strip().lower())
        except ValueError:
            return cls.UNKNOWN
        return status


class HealthStatus(str, Enum):
    """Three-valued status of a diagnostics track."""

    PENDING = "pending"
    OK = "ok"
    BAD = "bad"


# =============================================================================
# Diagnostics
# =============================================================================


def clamp_latency(latency_ms: Optional[float]) -> Optional[int]:
    """Clamp latency to a non-negative, rounded integer."""
    if latency_ms is None:
        return None
    return max(0, round(latency_ms))


@dataclass(frozen=True)
class DiagnosticsSample:
    """
    One health observation.

    Attributes:
        ok: Whether the attempt succeeded at the transport level.
        latency_ms: Round-trip latency, if measured.
        at: Wall-clock instant of the attempt.
    """

    ok: bool
    latency_ms: Optional[int]
    at: datetime

    @classmethod
    def create(
        cls,
        ok: bool,
        latency_ms: Optional[float],
        at: datetime,
    ) -> "DiagnosticsSample":
        """Create a sample with the latency clamped and rounded."""
        return cls(ok=ok, latency_ms=clamp_latency(latency_ms), at=at)


# =============================================================================
# Device Commands
# =============================================================================


@dataclass(frozen=True)
class DeviceCommandObservation:
    """
    Device command reported by the backend at a point in time.

    Attributes:
        command: Executing command name, or None when idle.
        message: Free text attached to the command, if any.
        observed_at: Monotonic time of the observation in milliseconds.
    """

    command: Optional[str]
    message: Optional[str]
    observed_at: float

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        observed_at: float,
    ) -> "DeviceCommandObservation":
        """Build an observation from a `/api/device/status` response body."""
        executing = payload.get("executing_command")
        if not isinstance(executing, Mapping):
            return cls(command=None, message=None, observed_at=observed_at)

        command = executing.get("command")
        if not isinstance(command, str) or not command.strip():
            return cls(command=None, message=None, observed_at=observed_at)

        message = executing.get("message")
        return cls(
            command=command.strip().lower(),
            message=message if isinstance(message, str) and message else None,
            observed_at=observed_at,
        )

    @property
    def is_idle(self) -> bool:
        """Whether no command is executing."""
        return self.command is None


# =============================================================================
# Graphic Payload
# =============================================================================


@dataclass(frozen=True)
class InlineMarkup:
    """Markup (SVG) rendered directly."""

    markup: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "inline_markup", "markup": self.markup}


@dataclass(frozen=True)
class EncodedImage:
    """
    Base64 encoded image embedded as a data URI.

    Attributes:
        data: Base64 text of the image bytes.
        mime: Image MIME type.
    """

    data: str
    mime: str = "image/png"

    @property
    def src(self) -> str:
        return f"data:{self.mime};base64,{self.data}"

    def to_bytes(self) -> bytes:
        """Decode the image bytes."""
        return base64.b64decode(self.data)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "encoded_image", "mime": self.mime, "src": self.src}


@dataclass(frozen=True)
class ExternalUrl:
    """Image fetched by the frontend from a URL (data: URIs included)."""

    url: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "external_url", "src": self.url}


@dataclass(frozen=True)
class Unresolved:
    """No renderable payload was found."""

    reason: str = "No QR code found in the response."

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "unresolved", "text": self.reason}


GraphicPayload = Union[InlineMarkup, EncodedImage, ExternalUrl, Unresolved]


# =============================================================================
# Transaction Session
# =============================================================================


def parse_instant(raw: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime.

    Returns None for anything that is not a parseable string.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        return None


def _parse_minutes(raw: Any) -> Optional[float]:
    """Parse a finite minute count; NaN and infinities are rejected."""
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        return None
    try:
        minutes = float(raw)
    except (ValueError, OverflowError):
        return None
    return minutes if math.isfinite(minutes) else None


@dataclass
class TransactionSession:
    """
    One payment attempt from creation to terminal outcome.

    Attributes:
        id: Backend payment id, None if the backend did not return one.
        amount_cents: Amount in minor currency units, fixed at start.
        created_status: Raw creation response.
        expires_at: Absolute expiry instant, if known.
        status: Last business status derived from polling.
    """

    id: Optional[str]
    amount_cents: int
    created_status: dict[str, Any] = field(default_factory=dict)
    expires_at: Optional[datetime] = None
    status: TransactionStatus = TransactionStatus.WAITING

    @classmethod
    def from_creation_response(
        cls,
        data: Mapping[str, Any],
        amount_cents: int,
        now: datetime,
    ) -> "TransactionSession":
        """
        Build a session from a `POST /api/payment` response.

        The expiry prefers an explicit `expires_at` timestamp and falls
        back to `now + valid_for_minutes`.
        """
        raw_id = data.get("id")
        session_id = str(raw_id) if raw_id not in (None, "") else None

        expires_at = parse_instant(data.get("expires_at"))
        if expires_at is None:
            minutes = _parse_minutes(data.get("valid_for_minutes"))
            if minutes:
                try:
                    expires_at = now + timedelta(minutes=max(0.0, minutes))
                except OverflowError:
                    # beyond datetime range: treat as never expiring
                    expires_at = None

        return cls(
            id=session_id,
            amount_cents=amount_cents,
            created_status=dict(data),
            expires_at=expires_at,
        )

    def remaining(self, now: datetime) -> Optional[timedelta]:
        """Time left until expiry, None if the session never expires."""
        if self.expires_at is None:
            return None
        return self.expires_at - now

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "amount_cents": self.amount_cents,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "status": self.status.value,
        }
