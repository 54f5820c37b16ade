"""
Helpers for screenshot payloads carried as data URIs or raw base64.
"""
import base64
import binascii
import io
import logging
from typing import Optional, Tuple

from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = 'image/jpeg'


def strip_data_uri_prefix(payload: str) -> str:
    """
    Drop a ``data:<mime>;base64,`` prefix, leaving raw base64.
    Payloads without a comma are returned unchanged.
    """
    if not payload:
        return ''
    head, sep, tail = payload.partition(',')
    if sep and head.startswith('data:'):
        return tail
    return payload


def data_uri_mime_type(payload: str, default: str = DEFAULT_MIME_TYPE) -> str:
    """Return the mime type declared by a data URI, or ``default``"""
    if payload and payload.startswith('data:'):
        header = payload[5:].split(',', 1)[0]
        mime_type = header.split(';', 1)[0].strip()
        if mime_type:
            return mime_type
    return default


def decode_image_payload(payload: str) -> Optional[bytes]:
    """Decode a data URI or raw base64 string; None when it is not valid base64"""
    raw = strip_data_uri_prefix(payload)
    if not raw:
        return None
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        return None


def image_dimensions(payload: str) -> Tuple[int, int]:
    """
    Read width and height of an encoded screenshot.

    Args:
        payload: Data URI or raw base64 image

    Returns:
        (width, height), or (0, 0) when the payload is not a readable image
    """
    data = decode_image_payload(payload)
    if not data:
        return 0, 0
    try:
        with Image.open(io.BytesIO(data)) as image:
            return image.size
    except (OSError, ValueError) as e:
        logger.debug(f"[IMAGE] Could not read screenshot dimensions: {str(e)}")
        return 0, 0
