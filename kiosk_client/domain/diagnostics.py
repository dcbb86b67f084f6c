"""
Diagnostics - gateway and connectivity health tracks.

Gateway health is fed by the transaction status polls. Connectivity health
runs its own probe loop against a third-party endpoint.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Optional

from kiosk_client.core.exceptions import ConnectivityProbeError
from kiosk_client.core.interfaces import KioskBackend, Scheduler
from kiosk_client.core.value_objects import DiagnosticsSample, HealthStatus
from kiosk_client.event_system import EventPublisher, EventType
from kiosk_client.infrastructure.scheduler import TimerSlot
from kiosk_client.infrastructure.settings import ConnectivitySettings
from kiosk_client.loggers import logger


class HealthTrack:
    """
    One timestamped, latency-tracked health signal.

    Attributes:
        name: Track name.
        status: Current status.
        last_at: Instant of the last sample.
        last_latency_ms: Latency of the last sample.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.status = HealthStatus.PENDING
        self.last_at: Optional[datetime] = None
        self.last_latency_ms: Optional[int] = None

    def record(self, sample: DiagnosticsSample) -> None:
        self.status = HealthStatus.OK if sample.ok else HealthStatus.BAD
        self.last_at = sample.at
        self.last_latency_ms = sample.latency_ms

    def reset(self) -> None:
        self.status = HealthStatus.PENDING
        self.last_at = None
        self.last_latency_ms = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "last_at": self.last_at.isoformat() if self.last_at else None,
            "last_latency_ms": self.last_latency_ms,
        }


class DiagnosticsAggregator:
    """
    Aggregates gateway and connectivity health.

    Every change is published as a `diagnostics` display event.
    """

    def __init__(
        self,
        backend: KioskBackend,
        scheduler: Scheduler,
        publisher: EventPublisher,
        settings: ConnectivitySettings,
    ) -> None:
        self._backend = backend
        self._clock = scheduler.clock
        self._publisher = publisher
        self._settings = settings
        self.gateway = HealthTrack("gateway")
        self.connectivity = HealthTrack("connectivity")
        self.probe_timer = TimerSlot(scheduler, "connectivity_probe")
        self._probe_generation = 0
        self._probing_generation: Optional[int] = None

    def snapshot(self) -> dict[str, Any]:
        return {
            "gateway": self.gateway.to_dict(),
            "connectivity": self.connectivity.to_dict(),
        }

    def _publish(self) -> None:
        self._publisher.publish_nowait(EventType.DIAGNOSTICS, **self.snapshot())

    # -------------------------------------------------------------------------
    # Gateway
    # -------------------------------------------------------------------------

    def reset_gateway(self) -> None:
        """Mark the gateway as pending; called whenever a new session starts."""
        self.gateway.reset()
        self._publish()

    def record_gateway(
        self,
        ok: bool,
        latency_ms: Optional[float],
        at: datetime,
    ) -> None:
        """Record the outcome of one payment status poll."""
        self.gateway.record(DiagnosticsSample.create(ok, latency_ms, at))
        self._publish()

    # -------------------------------------------------------------------------
    # Connectivity
    # -------------------------------------------------------------------------

    def start_connectivity_checks(self) -> None:
        """Probe immediately, then on every interval."""
        self._probe_generation += 1
        self.probe_timer.arm_every(
            self._settings.interval_ms,
            self.probe_connectivity,
            immediate=True,
        )

    def stop_connectivity_checks(self) -> None:
        self._probe_generation += 1
        self.probe_timer.clear()

    async def probe_connectivity(self) -> None:
        """
        Run one reachability probe.

        The probe is cancelled after `timeout_ms`; any failure, timeout
        included, marks connectivity as bad.
        """
        generation = self._probe_generation
        if self._probing_generation == generation:
            return
        self._probing_generation = generation
        started = self._clock.monotonic_ms()
        at = self._clock.now()
        try:
            await asyncio.wait_for(
                self._backend.check_reachability(self._settings.probe_url),
                timeout=self._settings.timeout_ms / 1000.0,
            )
            ok = True
        except asyncio.TimeoutError:
            logger.warning(f"Connectivity probe timed out after {self._settings.timeout_ms} ms")
            ok = False
        except ConnectivityProbeError as e:
            logger.warning(f"Connectivity probe failed: {e.message}")
            ok = False
        finally:
            if self._probing_generation == generation:
                self._probing_generation = None

        if generation != self._probe_generation:
            return

        latency = self._clock.monotonic_ms() - started if ok else None
        self.connectivity.record(DiagnosticsSample.create(ok, latency, at))
        self._publish()
