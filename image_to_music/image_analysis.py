"""Colour analysis of raster images.

This module computes the two statistics compositions are built from: the
most frequent exact colours of an image, and the average colour of each
cell of a fixed 4x4 grid laid over it.
"""

import logging

import numpy as np

from image_to_music.errors import InvalidImage
from image_to_music.models import (
    DominantColor,
    ImageAnalysis,
    RasterImage,
    SectionStat,
)
from image_to_music.models.pipeline_models import SECTION_GRID

logger = logging.getLogger(__name__)

DOMINANT_COLOR_LIMIT = 5


def get_dominant_colors(
    pixels: np.ndarray, limit: int = DOMINANT_COLOR_LIMIT
) -> list[DominantColor]:
    """Rank the exact RGB colours of an image by how many pixels use them.

    Pixels are grouped by their exact (R, G, B) value; alpha is ignored.
    Colours with equal counts keep the order in which they first appear in
    a row-major scan of the image.

    Args:
        pixels: ``H×W×3`` or ``H×W×4`` pixel array (or any array whose last
            axis starts with R, G, B).
        limit: Maximum number of colours to return.

    Returns:
        Up to ``limit`` DominantColor entries, most frequent first. Empty if
        the array holds no pixels.
    """
    rgb = np.asarray(pixels)[..., :3].reshape(-1, 3)
    if rgb.shape[0] == 0:
        return []

    colors, first_seen, counts = np.unique(
        rgb, axis=0, return_index=True, return_counts=True
    )

    # Primary key: count descending; secondary: first occurrence in the scan
    order = np.lexsort((first_seen, -counts))

    return [
        DominantColor(color=tuple(int(c) for c in colors[i]), count=int(counts[i]))
        for i in order[:limit]
    ]


def analyze_section(
    rgb: np.ndarray, x: int, y: int, section_width: int, section_height: int
) -> SectionStat:
    """Average the colour of one grid cell.

    Args:
        rgb: ``H×W×3`` colour array of the whole image.
        x: Column index of the cell (0-3).
        y: Row index of the cell (0-3).
        section_width: Cell width in pixels.
        section_height: Cell height in pixels.

    Returns:
        SectionStat with the mean R, G and B over exactly
        ``section_width * section_height`` pixels.
    """
    cell = rgb[
        y * section_height : (y + 1) * section_height,
        x * section_width : (x + 1) * section_width,
    ]
    mean = cell.reshape(-1, 3).astype(np.float64).mean(axis=0)
    return SectionStat(average_color=(float(mean[0]), float(mean[1]), float(mean[2])))


def analyze_sections(image: RasterImage) -> list[SectionStat]:
    """Split an image into a 4x4 grid and average each cell.

    Cell sizes use truncating division, so up to three trailing columns and
    rows of pixels belong to no cell.

    Raises:
        InvalidImage: If the image is smaller than 4x4 pixels.
    """
    if image.width < SECTION_GRID or image.height < SECTION_GRID:
        raise InvalidImage(
            f"Image of {image.width}x{image.height} pixels is smaller than "
            f"the minimum {SECTION_GRID}x{SECTION_GRID}"
        )

    section_width = image.width // SECTION_GRID
    section_height = image.height // SECTION_GRID
    rgb = image.rgb

    return [
        analyze_section(rgb, x, y, section_width, section_height)
        for y in range(SECTION_GRID)
        for x in range(SECTION_GRID)
    ]


def analyze_image(image: RasterImage) -> ImageAnalysis:
    """Compute the colour statistics a composition is derived from.

    Args:
        image: Image to analyze; must be at least 4x4 pixels.

    Returns:
        ImageAnalysis with 16 section averages and up to five dominant colours.

    Raises:
        InvalidImage: If the image is missing or too small.
    """
    if image is None:
        raise InvalidImage("No image provided for analysis")

    sections = analyze_sections(image)
    dominant_colors = get_dominant_colors(image.pixels)
    logger.debug(
        f"Analyzed {image.width}x{image.height} image: "
        f"{len(dominant_colors)} dominant colours"
    )
    return ImageAnalysis(sections=sections, dominant_colors=dominant_colors)
