"""Downsample and re-encode a portrait so it fits the generation request."""
import base64
import io
import logging
import math
import os
from dataclasses import dataclass

from PIL import Image, ImageOps

from config import MAX_REQUEST_BYTES
from errors import ImageLoadError, ImageReadError, ImageTooLargeError

logger = logging.getLogger(__name__)

MAX_WIDTH = 1024
MAX_HEIGHT = 1024
JPEG_QUALITY = 80

# Room in the request body for the prompt and the JSON keys around the image.
REQUEST_ENVELOPE_BYTES = 16_384


@dataclass(frozen=True)
class NormalizedImage:
    data: str
    width: int
    height: int
    mime_type: str = "image/jpeg"

    @property
    def size_bytes(self):
        return len(self.data)


def _round_half_up(value):
    return max(1, int(math.floor(value + 0.5)))


def fit_within(width, height, max_width=MAX_WIDTH, max_height=MAX_HEIGHT):
    """Scale (width, height) down to the bounds, keeping the aspect ratio.

    The limiting side is picked by comparing width and height directly:
    landscape images are fitted to the width first, everything else to the
    height. Images already inside the bounds are returned unchanged.
    """
    if width > max_width or height > max_height:
        if width > height:
            height = _round_half_up(height * max_width / width)
            width = max_width
        else:
            width = _round_half_up(width * max_height / height)
            height = max_height
        # Non-square bounds can leave the other side too large.
        if height > max_height:
            width = _round_half_up(width * max_height / height)
            height = max_height
        elif width > max_width:
            height = _round_half_up(height * max_width / width)
            width = max_width
    return width, height


def _read_source(source):
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if hasattr(source, "data") and isinstance(source.data, (bytes, bytearray)):
        return bytes(source.data)
    try:
        if isinstance(source, (str, os.PathLike)):
            with open(source, "rb") as f:
                return f.read()
        return source.read()
    except (OSError, AttributeError) as e:
        logger.debug("Could not read image source %r: %s", source, e)
        raise ImageReadError("Failed to read file") from e


def _flatten(img):
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return img.convert("RGB")


def normalize_image(source, max_width=MAX_WIDTH, max_height=MAX_HEIGHT,
                    quality=JPEG_QUALITY, max_bytes=MAX_REQUEST_BYTES):
    """Return `source` as a base64 JPEG (no data-URI prefix) within the bounds."""
    raw = _read_source(source)
    if not raw:
        raise ImageReadError("Failed to read file")

    try:
        img = Image.open(io.BytesIO(raw))
        img = ImageOps.exif_transpose(img)
        width, height = fit_within(img.size[0], img.size[1], max_width, max_height)
        img = _flatten(img)
        if (width, height) != img.size:
            img = img.resize((width, height), Image.LANCZOS)
        buf = io.BytesIO()
        img.save(buf, format="JPEG", quality=quality)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.debug("Could not decode image: %s", e)
        raise ImageLoadError("Failed to load image for resizing") from e

    data = base64.b64encode(buf.getvalue()).decode("utf-8")
    limit = max_bytes - REQUEST_ENVELOPE_BYTES
    if len(data) >= limit:
        raise ImageTooLargeError(
            f"Encoded image is {len(data)} bytes, over the {limit} byte limit"
        )
    return NormalizedImage(data=data, width=width, height=height)
