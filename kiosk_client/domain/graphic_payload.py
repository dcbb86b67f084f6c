"""
Graphic payload resolution for the payment QR code.

The backend schema has renamed its QR fields over time, so resolution walks
an ordered list of field aliases and content sniffers; the first match wins.
"""

from __future__ import annotations

import re
from typing import Any, Final, Mapping, Optional

from kiosk_client.core.value_objects import (
    EncodedImage,
    ExternalUrl,
    GraphicPayload,
    InlineMarkup,
    Unresolved,
)


MARKUP_FIELDS: Final[tuple[str, ...]] = (
    "qr_code_svg",
    "qrcode_svg",
    "qr_svg",
    "twint_qr_code_svg",
)
PNG_BASE64_FIELDS: Final[tuple[str, ...]] = (
    "qr_code_png_base64",
    "qrcode_png_base64",
    "twint_qr_code_png_base64",
)
GENERIC_FIELDS: Final[tuple[str, ...]] = ("qr", "qrcode", "qr_data")
URL_FIELDS: Final[tuple[str, ...]] = (
    "qr_code_url",
    "qrcode_url",
    "payment_qr_url",
    "url",
)

BASE64_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")


def _first_truthy(data: Mapping[str, Any], fields: tuple[str, ...]) -> Any:
    """Return the first truthy alias value, whatever its type."""
    for name in fields:
        value = data.get(name)
        if value:
            return value
    return None


def _as_string(data: Mapping[str, Any], fields: tuple[str, ...]) -> Optional[str]:
    value = _first_truthy(data, fields)
    return value if isinstance(value, str) else None


def sniff_generic(value: str) -> Optional[GraphicPayload]:
    """
    Classify a generic payload string by its content.

    Args:
        value: Raw payload string.

    Returns:
        The payload, or None if nothing matched.
    """
    trimmed = value.strip()
    if trimmed.startswith("data:"):
        return ExternalUrl(trimmed)
    if trimmed.startswith("<svg"):
        return InlineMarkup(trimmed)
    if BASE64_PATTERN.fullmatch(trimmed):
        return EncodedImage(trimmed)
    return None


def resolve_graphic_payload(data: Mapping[str, Any]) -> GraphicPayload:
    """
    Resolve a renderable QR payload from a creation response.

    Order: inline markup, base64 PNG, generic sniffed payload, URL,
    then an explicit Unresolved placeholder.

    Args:
        data: Loosely typed backend response.

    Returns:
        The resolved payload.
    """
    markup = _as_string(data, MARKUP_FIELDS)
    if markup:
        return InlineMarkup(markup)

    png = _as_string(data, PNG_BASE64_FIELDS)
    if png:
        return EncodedImage(png)

    generic = _as_string(data, GENERIC_FIELDS)
    if generic:
        payload = sniff_generic(generic)
        if payload is not None:
            return payload

    url = _as_string(data, URL_FIELDS)
    if url:
        return ExternalUrl(url)

    return Unresolved()
