"""Tests for product image payload handling."""
import base64

import pytest

from pos_api.services.exceptions import InvalidImageError
from pos_api.utils.images import (
    DEFAULT_IMAGE_MIME,
    decode_base64_image,
    extract_image_request,
    image_columns,
    image_data_uri,
)


def test_decode_bare_base64_uses_fallback_mime():
    data, mime = decode_base64_image(base64.b64encode(b"abc").decode(), "image/webp")

    assert data == b"abc"
    assert mime == "image/webp"


def test_decode_data_uri_overrides_fallback_mime():
    raw = "data:image/png;base64," + base64.b64encode(b"png").decode()

    assert decode_base64_image(raw, "image/jpeg") == (b"png", "image/png")


def test_decode_defaults_mime():
    _, mime = decode_base64_image(base64.b64encode(b"x").decode())

    assert mime == DEFAULT_IMAGE_MIME


@pytest.mark.parametrize("raw", ["%%%", "data:image/png;base64,@@@", "===="])
def test_decode_rejects_invalid_payloads(raw):
    with pytest.raises(InvalidImageError):
        decode_base64_image(raw)


def test_extract_rejects_non_string_payloads():
    with pytest.raises(InvalidImageError):
        extract_image_request({"image_base64": 123})
    with pytest.raises(InvalidImageError):
        extract_image_request({"image_url": ["a"]})


def test_no_image_fields_leave_columns_alone():
    assert image_columns(extract_image_request({})) == {}


def test_blank_url_clears_all_image_columns():
    columns = image_columns(extract_image_request({"image_url": "   "}))

    assert columns == {"image_url": None, "image_data": None, "image_mime_type": None}


def test_embedded_image_wins_over_url():
    payload = base64.b64encode(b"img").decode()

    columns = image_columns(extract_image_request({
        "image_url": "https://example.com/a.png",
        "image_base64": payload,
        "image_mime_type": "image/png",
    }))

    assert columns == {"image_url": None, "image_data": b"img", "image_mime_type": "image/png"}


def test_image_data_uri():
    assert image_data_uri(None, "image/png") is None
    assert image_data_uri(b"img", None) == "data:application/octet-stream;base64,aW1n"
