"""
Tests for QR payload resolution.
"""

import pytest

from kiosk_client.core.value_objects import EncodedImage, ExternalUrl, InlineMarkup, Unresolved
from kiosk_client.domain.graphic_payload import resolve_graphic_payload, sniff_generic


SVG = "<svg xmlns='http://www.w3.org/2000/svg'></svg>"
PNG_B64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="


class TestResolverPriority:
    """Tests for the resolution order."""

    def test_markup_wins_over_everything(self):
        payload = resolve_graphic_payload({
            "qr_code_url": "https://qr.example/1.png",
            "qr_code_png_base64": PNG_B64,
            "qr_svg": SVG,
        })
        assert payload == InlineMarkup(SVG)

    def test_png_wins_over_url(self):
        payload = resolve_graphic_payload({
            "url": "https://qr.example/1.png",
            "twint_qr_code_png_base64": PNG_B64,
        })
        assert payload == EncodedImage(PNG_B64)

    def test_first_markup_alias_wins(self):
        payload = resolve_graphic_payload({"qrcode_svg": "<svg>b</svg>", "qr_code_svg": "<svg>a</svg>"})
        assert payload == InlineMarkup("<svg>a</svg>")

    def test_empty_alias_is_skipped(self):
        payload = resolve_graphic_payload({"qr_code_svg": "", "qr_svg": SVG})
        assert payload == InlineMarkup(SVG)

    def test_url_fallback(self):
        payload = resolve_graphic_payload({"payment_qr_url": "https://qr.example/1.png"})
        assert payload == ExternalUrl("https://qr.example/1.png")

    def test_nothing_found(self):
        payload = resolve_graphic_payload({"id": "pay_1", "qr_code_svg": 42})
        assert isinstance(payload, Unresolved)
        assert payload.to_dict()["kind"] == "unresolved"


class TestGenericSniffing:
    """Tests for content sniffing of generic QR fields."""

    @pytest.mark.parametrize("value, expected", [
        ("data:image/png;base64,AAAA", ExternalUrl("data:image/png;base64,AAAA")),
        ("  <svg></svg>  ", InlineMarkup("<svg></svg>")),
        ("QUJDRA==", EncodedImage("QUJDRA==")),
    ])
    def test_sniff(self, value, expected):
        assert sniff_generic(value) == expected

    def test_unrecognized_generic_falls_through_to_url(self):
        payload = resolve_graphic_payload({
            "qr": "not a qr code!",
            "qrcode_url": "https://qr.example/2.png",
        })
        assert payload == ExternalUrl("https://qr.example/2.png")

    def test_generic_beats_url(self):
        payload = resolve_graphic_payload({"qr_data": SVG, "url": "https://qr.example/3.png"})
        assert payload == InlineMarkup(SVG)


class TestPayloadSerialization:
    """Tests for the display event shape."""

    def test_encoded_image_src(self):
        image = EncodedImage("QUJD")
        assert image.to_dict() == {
            "kind": "encoded_image",
            "mime": "image/png",
            "src": "data:image/png;base64,QUJD",
        }
        assert image.to_bytes() == b"ABC"
