"""Image decoding and encoding functions for the image-to-music pipeline.

This module turns uploaded files, raw arrays and stored data URLs into
RasterImage objects, and produces the small PNG thumbnails that are kept
with every composition. OpenCV does all decoding, resizing and encoding.
"""

import base64
import binascii
import logging

import cv2
import numpy as np

from image_to_music.errors import InvalidImage
from image_to_music.models import RasterImage

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:image/png;base64,"
THUMBNAIL_SIZE = 256


def to_raster(image: RasterImage | np.ndarray | None) -> RasterImage:
    """Normalize an image argument to a RasterImage.

    Args:
        image: A RasterImage, an RGB/RGBA/grayscale NumPy array, or None.

    Returns:
        The RasterImage itself, or a new one built from the array.

    Raises:
        InvalidImage: If no image is given or the array cannot be used.
    """
    if image is None:
        raise InvalidImage("No image provided")
    if isinstance(image, RasterImage):
        return image
    return RasterImage.from_array(image)


def _cv_to_raster(decoded: np.ndarray) -> RasterImage:
    """Convert an OpenCV BGR/BGRA/grayscale array to an RGBA RasterImage."""
    if decoded.dtype == np.uint16:
        decoded = (decoded >> 8).astype(np.uint8)

    if decoded.ndim == 2:
        rgba = cv2.cvtColor(decoded, cv2.COLOR_GRAY2RGBA)
    elif decoded.shape[2] == 3:
        rgba = cv2.cvtColor(decoded, cv2.COLOR_BGR2RGBA)
    else:
        rgba = cv2.cvtColor(decoded, cv2.COLOR_BGRA2RGBA)

    return RasterImage.from_array(rgba)


def decode_image(data: bytes) -> RasterImage:
    """Decode encoded image bytes (PNG, JPEG, ...) into a RasterImage.

    Args:
        data: Encoded image file contents.

    Returns:
        RasterImage with RGBA pixels.

    Raises:
        InvalidImage: If the data is empty or OpenCV cannot decode it.
    """
    if not data:
        raise InvalidImage("No image data provided")

    buffer = np.frombuffer(data, dtype=np.uint8)
    decoded = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if decoded is None:
        raise InvalidImage("Could not decode image data")

    return _cv_to_raster(decoded)


def load_image_file(path: str) -> RasterImage:
    """Read an image file from disk into a RasterImage.

    Raises:
        InvalidImage: If the file is missing or not a readable image.
    """
    decoded = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if decoded is None:
        raise InvalidImage(f"Could not read image file {path!r}")
    return _cv_to_raster(decoded)


def encode_thumbnail(
    image: RasterImage, max_size: int | None = THUMBNAIL_SIZE
) -> str:
    """Encode a downscaled PNG copy of an image as a data URL.

    The longer side is reduced to at most ``max_size`` pixels using area
    interpolation; smaller images are encoded at their original size.
    With ``max_size=None`` the full image is encoded losslessly.

    Args:
        image: Image to encode.
        max_size: Maximum width or height of the thumbnail in pixels, or
            None to keep every pixel.

    Returns:
        A ``data:image/png;base64,...`` string.
    """
    rgba = image.pixels
    scale = 1.0
    if max_size is not None:
        scale = min(1.0, max_size / max(image.width, image.height))
    if scale < 1.0:
        size = (
            max(1, int(image.width * scale)),
            max(1, int(image.height * scale)),
        )
        rgba = cv2.resize(rgba, size, interpolation=cv2.INTER_AREA)

    ok, encoded = cv2.imencode(".png", cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA))
    if not ok:
        raise InvalidImage("Could not encode image thumbnail")

    return DATA_URL_PREFIX + base64.b64encode(encoded.tobytes()).decode("ascii")


def decode_data_url(url: str) -> RasterImage:
    """Decode an image data URL produced by :func:`encode_thumbnail`.

    Raises:
        InvalidImage: If the string is not a base64 image data URL.
    """
    header, _, payload = (url or "").partition(",")
    if not header.startswith("data:image/") or not header.endswith(";base64"):
        raise InvalidImage("Not a base64 image data URL")

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImage(f"Corrupt image data URL: {e}") from e

    return decode_image(data)
