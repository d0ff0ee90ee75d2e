"""Normalization of product image payloads."""
import base64
import binascii
import re
from dataclasses import dataclass
from typing import Any, Optional

from pos_api.services.exceptions import InvalidImageError

DATA_URI_REGEX = re.compile(r"^data:([a-z0-9.+\-/]+);base64,(.+)$", re.IGNORECASE | re.DOTALL)
DEFAULT_IMAGE_MIME = "application/octet-stream"


@dataclass
class ImageRequest:
    """What a create/update body asked to do with the product image."""
    base64_provided: bool = False
    url_provided: bool = False
    remove_image: bool = False
    data: Optional[bytes] = None
    mime_type: Optional[str] = None
    url: Optional[str] = None


def decode_base64_image(raw: str, fallback_mime: Optional[str] = None) -> tuple[bytes, str]:
    """
    Decode a bare base64 string or a ``data:<mime>;base64,<payload>`` URI.

    Raises:
        InvalidImageError: If the payload is not valid base64 or decodes to nothing
    """
    trimmed = raw.strip()
    mime_type = fallback_mime.strip() if isinstance(fallback_mime, str) and fallback_mime.strip() else None
    payload = trimmed

    match = DATA_URI_REGEX.match(trimmed)
    if match:
        mime_type = match.group(1)
        payload = match.group(2)

    try:
        data = base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError):
        raise InvalidImageError("Invalid base64 image data")

    if not data:
        raise InvalidImageError("Invalid base64 image data")

    return data, mime_type or DEFAULT_IMAGE_MIME


def extract_image_request(fields: dict[str, Any]) -> ImageRequest:
    """
    Build an ImageRequest from the image fields present in a request body.

    Only keys present in ``fields`` are considered, so an omitted field and an
    explicit null are told apart. A null or blank ``image_base64`` removes the
    image; a blank ``image_url`` clears the URL.
    """
    result = ImageRequest()

    if "image_base64" in fields:
        result.base64_provided = True
        raw = fields["image_base64"]
        if raw is None:
            result.remove_image = True
        elif isinstance(raw, str):
            if not raw.strip():
                result.remove_image = True
            else:
                result.data, result.mime_type = decode_base64_image(raw, fields.get("image_mime_type"))
        else:
            raise InvalidImageError("image_base64 must be a base64-encoded string, null, or omitted")

    if "image_url" in fields:
        result.url_provided = True
        raw = fields["image_url"]
        if raw is None:
            result.url = None
        elif isinstance(raw, str):
            result.url = raw.strip() or None
        else:
            raise InvalidImageError("image_url must be a string, null, or omitted")

    return result


def image_columns(request: ImageRequest) -> dict[str, Any]:
    """
    Translate an ImageRequest into product column values.

    An embedded image wins over a URL given in the same body, and setting one
    representation clears the other. Returns an empty dict when the body
    carried no image fields.
    """
    if request.base64_provided:
        if request.remove_image:
            return {"image_url": None, "image_data": None, "image_mime_type": None}
        return {
            "image_url": None,
            "image_data": request.data,
            "image_mime_type": request.mime_type or DEFAULT_IMAGE_MIME,
        }
    if request.url_provided:
        return {"image_url": request.url, "image_data": None, "image_mime_type": None}
    return {}


def image_data_uri(data: Optional[bytes], mime_type: Optional[str]) -> Optional[str]:
    """Render embedded image bytes as a data URI."""
    if not data:
        return None
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type or DEFAULT_IMAGE_MIME};base64,{encoded}"
