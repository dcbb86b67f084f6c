"""
Kiosk client - attended payment kiosk session orchestrator.

Layers:
- core: exceptions, protocols, value objects
- infrastructure: backend HTTP client, timers, settings
- domain: transaction lifecycle, device command overlay, diagnostics, audio
- application: facade and command routing
"""

__version__ = "0.1.0"
