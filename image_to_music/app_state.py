"""Registry of uploaded images for the web interface.

Images are registered under an identifier derived from a CRC32 checksum of
their pixel data, so the same upload always maps to the same id and cached
analyses can be looked up by it.
"""

import zlib

from image_to_music.models import RasterImage

# In-memory registry of images by ID
_image_registry: dict[str, RasterImage] = {}


def register_image(image: RasterImage, image_id: str | None = None) -> str:
    """Register an image and return its identifier.

    Args:
        image: Image to register.
        image_id: Identifier to use; a CRC32-based id is generated when omitted.

    Returns:
        The image identifier.
    """
    if image_id is None:
        crc = zlib.crc32(image.pixels.tobytes()) & 0xFFFFFFFF
        image_id = f"img_{image.width}x{image.height}_{crc:08x}"

    _image_registry[image_id] = image
    return image_id


def get_image_by_id(image_id: str | None) -> RasterImage | None:
    """Retrieve a registered image, or None if the id is unknown."""
    if image_id is None:
        return None
    return _image_registry.get(image_id)


def clear_registry() -> None:
    _image_registry.clear()
