"""
Application settings.

Provides typed configuration sections with environment variable overrides.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Callable, Mapping, Optional, TypeVar

from kiosk_client.configs import WS_URL
from kiosk_client.core.exceptions import ConfigurationError


T = TypeVar("T")


# =============================================================================
# Configuration Classes
# =============================================================================


@dataclass(frozen=True)
class BackendSettings:
    """Kiosk backend connection settings."""

    base_url: str = "http://localhost:8000"
    request_timeout_s: float = 15.0


@dataclass(frozen=True)
class PaymentSettings:
    """Payment session settings."""

    amount_cents: int = 2000
    currency: str = "CHF"
    redirect_url: str = "https://example.com/payments/123/complete"
    success_overlay_ms: int = 10000
    actuation_fallback_ms: int = 4000


@dataclass(frozen=True)
class LifecycleTimings:
    """Transaction lifecycle delays in milliseconds."""

    waiting_poll_ms: int = 2000
    unknown_poll_ms: int = 3000
    transport_retry_ms: int = 3000
    failure_restart_ms: int = 1200
    create_retry_ms: int = 3000
    expiry_tick_ms: int = 1000
    cancel_settle_ms: int = 300


@dataclass(frozen=True)
class DeviceSettings:
    """Device command polling settings."""

    poll_ms: int = 500
    failure_poll_ms: int = 1000
    overlay_hold_ms: int = 1000


@dataclass(frozen=True)
class ConnectivitySettings:
    """General internet reachability probe settings."""

    probe_url: str = "https://www.gstatic.com/generate_204"
    interval_ms: int = 10000
    timeout_ms: int = 5000


@dataclass(frozen=True)
class AudioSettings:
    """Feedback tone settings."""

    enabled: bool = True
    rate_limit_ms: int = 250


@dataclass(frozen=True)
class RedisSettings:
    """Redis connection settings."""

    host: str = "localhost"
    port: int = 6379
    decode_responses: bool = True


@dataclass(frozen=True)
class CommandSettings:
    """Frontend/operator command channel settings."""

    command_channel: str = "kiosk_client_commands"

    @property
    def response_channel(self) -> str:
        """Get response channel name."""
        return f"{self.command_channel}_response"


@dataclass(frozen=True)
class ServiceSettings:
    """External service endpoints."""

    websocket_url: str = WS_URL
    ws_open_timeout_s: float = 3.0
    ws_reconnect_delay_s: float = 2.0


# =============================================================================
# Main Settings
# =============================================================================


@dataclass
class Settings:
    """
    Main application settings.

    Aggregates all configuration sections.
    """

    backend: BackendSettings = field(default_factory=BackendSettings)
    payment: PaymentSettings = field(default_factory=PaymentSettings)
    timings: LifecycleTimings = field(default_factory=LifecycleTimings)
    device: DeviceSettings = field(default_factory=DeviceSettings)
    connectivity: ConnectivitySettings = field(default_factory=ConnectivitySettings)
    audio: AudioSettings = field(default_factory=AudioSettings)
    redis: RedisSettings = field(default_factory=RedisSettings)
    commands: CommandSettings = field(default_factory=CommandSettings)
    services: ServiceSettings = field(default_factory=ServiceSettings)


# =============================================================================
# Environment Overrides
# =============================================================================


def _read(
    environ: Mapping[str, str],
    name: str,
    convert: Callable[[str], T],
) -> Optional[T]:
    raw = environ.get(name)
    if raw is None or raw == "":
        return None
    try:
        return convert(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}",
            details={"variable": name},
        ) from e


def _positive_int(raw: str) -> Optional[int]:
    value = int(raw)
    if value < 0:
        raise ValueError("must not be negative")
    # zero means "use the default"
    return value or None


def _flag(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError("not a boolean")


def _overrides(section: T, environ: Mapping[str, str], mapping: dict[str, tuple[str, Callable]]) -> T:
    changes = {}
    for attr, (name, convert) in mapping.items():
        value = _read(environ, name, convert)
        if value is not None:
            changes[attr] = value
    return replace(section, **changes) if changes else section


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from defaults and `KIOSK_*` environment variables.

    Zero or missing values keep the defaults.

    Args:
        environ: Environment mapping (default: os.environ).

    Returns:
        Settings instance.

    Raises:
        ConfigurationError: If a variable holds an invalid value.
    """
    env = os.environ if environ is None else environ
    base = Settings()
    return Settings(
        backend=_overrides(base.backend, env, {
            "base_url": ("KIOSK_BACKEND_URL", str),
        }),
        payment=_overrides(base.payment, env, {
            "amount_cents": ("KIOSK_DEFAULT_AMOUNT_CENTS", _positive_int),
            "currency": ("KIOSK_CURRENCY", str),
            "success_overlay_ms": ("KIOSK_SUCCESS_OVERLAY_MILLIS", _positive_int),
        }),
        connectivity=_overrides(base.connectivity, env, {
            "probe_url": ("KIOSK_PROBE_URL", str),
        }),
        audio=_overrides(base.audio, env, {
            "enabled": ("KIOSK_AUDIO_ENABLED", _flag),
        }),
        redis=_overrides(base.redis, env, {
            "host": ("KIOSK_REDIS_HOST", str),
            "port": ("KIOSK_REDIS_PORT", _positive_int),
        }),
        services=_overrides(base.services, env, {
            "websocket_url": ("KIOSK_FRONTEND_WS_URL", str),
        }),
    )


# =============================================================================
# Settings Singleton
# =============================================================================


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns:
        Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
