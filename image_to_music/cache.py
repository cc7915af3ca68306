"""Caching of the deterministic pipeline stages.

Image analysis and thumbnail encoding depend only on the registered image,
so their results are cached by image id. Composition building is not
cached: it draws a fresh rhythm pattern choice on every generation.
"""

from functools import lru_cache

from image_to_music.app_state import get_image_by_id
from image_to_music.errors import InvalidImage
from image_to_music.image_processing import encode_thumbnail
from image_to_music.models import ImageAnalysis
from image_to_music.pipeline import run_analysis

ANALYSIS_CACHE_SIZE = 32
THUMBNAIL_CACHE_SIZE = 32
DATA_URL_CACHE_SIZE = 8


def _require_image(image_id: str):
    image = get_image_by_id(image_id)
    if image is None:
        raise InvalidImage(f"No image registered under {image_id!r}")
    return image


@lru_cache(maxsize=ANALYSIS_CACHE_SIZE)
def cached_analysis(image_id: str) -> ImageAnalysis:
    """Analyze a registered image, reusing earlier results for the same id.

    Raises:
        InvalidImage: If no image is registered under ``image_id`` or it is
            too small to analyze.
    """
    return run_analysis(_require_image(image_id))


@lru_cache(maxsize=THUMBNAIL_CACHE_SIZE)
def cached_thumbnail(image_id: str) -> str:
    """Thumbnail data URL of a registered image."""
    return encode_thumbnail(_require_image(image_id))


@lru_cache(maxsize=DATA_URL_CACHE_SIZE)
def cached_data_url(image_id: str) -> str:
    """Full-resolution lossless data URL of a registered image, for history."""
    return encode_thumbnail(_require_image(image_id), max_size=None)


def clear_all_caches() -> None:
    """Clear the analysis, thumbnail and data URL caches."""
    cached_analysis.cache_clear()
    cached_thumbnail.cache_clear()
    cached_data_url.cache_clear()
