"""
Audio feedback - rate-limited feedback tones.

The tone engine is created lazily on the first user interaction, since the
kiosk browser refuses to play audio before one. Every cue is throttled per
event key; a missing or failing engine makes cues silent, never an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from kiosk_client.configs import TONE_CUES, TONE_GAIN
from kiosk_client.core.exceptions import AudioUnavailableError
from kiosk_client.core.interfaces import Clock, ToneEngine
from kiosk_client.event_system import EventPublisher, EventType
from kiosk_client.infrastructure.settings import AudioSettings
from kiosk_client.loggers import logger


# =============================================================================
# Tones
# =============================================================================


@dataclass(frozen=True)
class Tone:
    """
    One oscillator note.

    Attributes:
        frequency_hz: Start frequency.
        end_frequency_hz: Frequency reached at the end (equal for flat tones).
        offset_ms: Start offset within the cue.
        duration_ms: Note length.
        gain: Peak gain.
    """

    frequency_hz: float
    end_frequency_hz: float
    offset_ms: int
    duration_ms: int
    gain: float = TONE_GAIN

    @property
    def is_sweep(self) -> bool:
        return self.frequency_hz != self.end_frequency_hz

    def to_dict(self) -> dict[str, Any]:
        return {
            "frequency": self.frequency_hz,
            "end_frequency": self.end_frequency_hz,
            "offset_ms": self.offset_ms,
            "duration_ms": self.duration_ms,
            "gain": self.gain,
        }


def cue_tones(cue: str) -> tuple[Tone, ...]:
    """Get the tone sequence for a cue name."""
    return tuple(Tone(*tone) for tone in TONE_CUES[cue])


# =============================================================================
# Throttle
# =============================================================================


class AudioEventThrottle:
    """
    Per-key rate limiter.

    An event is suppressed if its own key played less than `window_ms` ago.
    """

    def __init__(self, window_ms: float) -> None:
        self.window_ms = window_ms
        self._last_played: dict[str, float] = {}

    def allow(self, key: str, now_ms: float) -> bool:
        """Record and allow the event, or return False if throttled."""
        last = self._last_played.get(key)
        if last is not None and now_ms - last < self.window_ms:
            return False
        self._last_played[key] = now_ms
        return True

    def reset(self) -> None:
        self._last_played.clear()


# =============================================================================
# Engines
# =============================================================================


class FrontendToneEngine:
    """Tone engine that asks the frontend to synthesize tones."""

    def __init__(self, publisher: EventPublisher) -> None:
        self._publisher = publisher

    def play(self, key: str, tones: Sequence[Tone]) -> None:
        self._publisher.publish_nowait(
            EventType.PLAY_TONES,
            key=key,
            tones=[tone.to_dict() for tone in tones],
        )


def frontend_engine_factory(
    publisher: EventPublisher,
    settings: AudioSettings,
) -> Callable[[], ToneEngine]:
    """Build an engine factory honoring the audio enable flag."""

    def factory() -> ToneEngine:
        if not settings.enabled:
            raise AudioUnavailableError("Audio output is disabled")
        return FrontendToneEngine(publisher)

    return factory


# =============================================================================
# Audio Feedback
# =============================================================================


class AudioFeedback:
    """
    Semantic feedback cues.

    Cue keys: `paymentSuccess`, `paymentFailure`, `commandStart:<command>`,
    `commandSuccess:<command>`.
    """

    def __init__(
        self,
        engine_factory: Callable[[], ToneEngine],
        clock: Clock,
        settings: AudioSettings,
    ) -> None:
        self._engine_factory = engine_factory
        self._clock = clock
        self._engine: Optional[ToneEngine] = None
        self.throttle = AudioEventThrottle(settings.rate_limit_ms)

    @property
    def is_unlocked(self) -> bool:
        """Whether an engine exists."""
        return self._engine is not None

    def unlock(self) -> bool:
        """
        Create the engine after a user interaction.

        Returns:
            True if an engine is available afterwards.
        """
        if self._engine is not None:
            return True
        try:
            self._engine = self._engine_factory()
        except Exception as e:
            logger.debug(f"Audio engine unavailable: {e}")
            return False
        logger.info("Audio engine unlocked")
        return True

    def _play(self, key: str, cue: str) -> bool:
        if self._engine is None:
            return False
        if not self.throttle.allow(key, self._clock.monotonic_ms()):
            logger.debug(f"Audio cue throttled: {key}")
            return False
        try:
            self._engine.play(key, cue_tones(cue))
        except Exception as e:
            logger.debug(f"Audio cue {key} failed: {e}")
            return False
        return True

    def payment_success(self) -> bool:
        """Ascending three-tone chime."""
        return self._play("paymentSuccess", "paymentSuccess")

    def payment_failure(self) -> bool:
        """Two descending tones."""
        return self._play("paymentFailure", "paymentFailure")

    def command_start(self, command: str) -> bool:
        """Rising tone when a device command starts."""
        return self._play(f"commandStart:{command}", "commandStart")

    def command_success(self, command: str) -> bool:
        """Two-tone chime when a device command finishes."""
        return self._play(f"commandSuccess:{command}", "commandSuccess")
