"""
Infrastructure layer - External dependencies and implementations.

Contains:
- Backend HTTP client
- Timers on the asyncio loop
- Configuration
"""

from .backend_client import BackendClient, safe_json
from .scheduler import AsyncioScheduler, SystemClock, TimerSlot
from .settings import (
    Settings,
    get_settings,
    load_settings,
)


__all__ = [
    # Backend
    "BackendClient",
    "safe_json",
    # Timers
    "AsyncioScheduler",
    "SystemClock",
    "TimerSlot",
    # Settings
    "Settings",
    "get_settings",
    "load_settings",
]
