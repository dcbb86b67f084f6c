"""
Configuration module for the kiosk client.

This module provides the static tables shared by all components:
external service endpoints, customer-facing display texts, the device
command overlay table and the feedback tone definitions.
"""

import os
from typing import Final


# =============================================================================
# System Configuration
# =============================================================================

APP_NAME: Final[str] = "kiosk_client"
LOG_FILE: Final[str] = os.environ.get("KIOSK_LOG_FILE", "logs/kiosk_client.log")


# =============================================================================
# External Services Configuration
# =============================================================================

LOKI_URL: Final[str] = os.environ.get("KIOSK_LOKI_URL", "")
WS_URL: Final[str] = os.environ.get("KIOSK_FRONTEND_WS_URL", "ws://localhost:8005/ws")


# =============================================================================
# Customer-facing Texts
# =============================================================================

DISPLAY_TEXTS: Final[dict[str, str]] = {
    "creating": "Zahlungsformular wird erstellt...",
    "created": "Zahlung wird erstellt...",
    "waiting": "Warten auf Zahlung...",
    "success": "Zahlung erfolgreich",
    "failure": "Zahlung fehlgeschlagen",
    "unknown": "Unbekannter Status",
    "checking": "Status wird überprüft...",
    "create_failed": "Etwas ist schiefgelaufen.",
    "cancelled": "Zahlung abgebrochen",
    "success_banner": "Danke, dein Solibändeli wird ausgegeben!",
    "loading_qr": "Warten auf QR Code...",
    "error_create": "Die Zahlung konnte nicht gestartet werden. Wir versuchen es gleich erneut.",
    "error_poll": "Der Zahlungsstatus konnte nicht geprüft werden. Wir versuchen es gleich erneut.",
    "error_actuate": "Solibändeli konnte nicht ausgegeben werden. Bitte kontaktiere den Betreiber.",
    "error_cancelled": "Die Zahlung wurde vom Betreiber abgebrochen.",
    "expiry_unknown": "Gültig für --:--",
    "expiry": "Gültig für {minutes:02d}:{seconds:02d}",
}


# =============================================================================
# Device Command Overlay
# =============================================================================

CANCEL_COMMAND: Final[str] = "cancel"
MESSAGE_COMMAND: Final[str] = "message"

COMMAND_DISPLAY_TEXTS: Final[dict[str, str]] = {
    "extend": "Solibändeli wird ausgegeben...",
    "retract": "Ausgabe wird zurückgefahren...",
    "home": "Ausgabe wird kalibriert...",
}

MESSAGE_PLACEHOLDER: Final[str] = "Nachricht vom Betreiber"
GENERIC_COMMAND_TEXT: Final[str] = "Wird ausgeführt: {command}"


# =============================================================================
# Feedback Tones
# =============================================================================

# (frequency_hz, end_frequency_hz, offset_ms, duration_ms)
TONE_CUES: Final[dict[str, tuple[tuple[float, float, int, int], ...]]] = {
    "paymentSuccess": (
        (523.25, 523.25, 0, 140),    # C5
        (659.25, 659.25, 150, 140),  # E5
        (783.99, 783.99, 300, 260),  # G5
    ),
    "paymentFailure": (
        (440.0, 440.0, 0, 220),      # A4
        (329.63, 329.63, 240, 320),  # E4
    ),
    "commandStart": (
        (440.0, 880.0, 0, 250),
    ),
    "commandSuccess": (
        (659.25, 659.25, 0, 120),
        (987.77, 987.77, 130, 200),
    ),
}

TONE_GAIN: Final[float] = 0.2
