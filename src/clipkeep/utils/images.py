import base64
import binascii
import io
import logging
from typing import Tuple

from PIL import Image

from clipkeep.models.clipboard_item import ImageMetadata

logger = logging.getLogger(__name__)


def encode_data_url(payload: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


def decode_data_url(data_url: str) -> Tuple[str, bytes]:
    """Split a ``data:<mime>;base64,<payload>`` string into mime and bytes."""
    if not data_url.startswith("data:") or "," not in data_url:
        raise ValueError("not a data URL")
    header, encoded = data_url.split(",", 1)
    mime = header[len("data:"):].split(";", 1)[0] or "application/octet-stream"
    if ";base64" not in header:
        raise ValueError("only base64 data URLs are supported")
    try:
        payload = base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 payload: {e}")
    return mime, payload


def image_to_data_url(image: Image.Image) -> str:
    output = io.BytesIO()
    image.save(output, format="PNG")
    return encode_data_url(output.getvalue(), "image/png")


def image_metadata(data_url: str) -> ImageMetadata:
    """Pixel dimensions and byte size of the image inside ``data_url``.

    Undecodable payloads yield zeros rather than an error.
    """
    try:
        _, payload = decode_data_url(data_url)
    except ValueError as e:
        logger.error(f"Error getting image metadata: {e}")
        return ImageMetadata()

    try:
        with Image.open(io.BytesIO(payload)) as img:
            width, height = img.size
    except Exception as e:
        logger.error(f"Error reading image dimensions: {e}")
        return ImageMetadata(size=len(payload))

    return ImageMetadata(width=width, height=height, size=len(payload))
