"""
Pipeline processing functions for image-to-music conversion.

This module wires the processing stages together, separating the
composition logic from rendering, storage and UI concerns. Failures in
analysis and derivation are raised to the caller as typed errors, since
playback depends on well-formed tracks.
"""

import logging
import random

import numpy as np

from image_to_music.composition import create_composition
from image_to_music.descriptions import describe_image, describe_music
from image_to_music.errors import (
    InvalidComposition,
    InvalidImage,
    PipelineError,
    StorageFailure,
)
from image_to_music.image_analysis import analyze_image
from image_to_music.image_processing import encode_thumbnail, to_raster
from image_to_music.models import (
    AppSettings,
    CompositionParams,
    GenerationResult,
    ImageAnalysis,
    RasterImage,
)
from image_to_music.music_transformations import create_scales

logger = logging.getLogger(__name__)

__all__ = [
    "PipelineError",
    "InvalidImage",
    "InvalidComposition",
    "StorageFailure",
    "load_image",
    "run_analysis",
    "generate_composition",
    "process_complete_pipeline",
]


def load_image(image: RasterImage | np.ndarray | None) -> RasterImage:
    """Normalize the pipeline input to a RasterImage.

    Args:
        image: RasterImage or RGB/RGBA NumPy array.

    Returns:
        RasterImage ready for analysis.

    Raises:
        InvalidImage: If no image is provided or it cannot be used.
    """
    if image is None:
        logger.warning("No image provided for processing")
        raise InvalidImage("No image provided")
    return to_raster(image)


def run_analysis(image: RasterImage | np.ndarray | None) -> ImageAnalysis:
    """Load and analyze an image.

    Raises:
        InvalidImage: If the image is missing or smaller than 4x4 pixels.
    """
    raster = load_image(image)
    try:
        return analyze_image(raster)
    except InvalidImage as e:
        logger.error(f"Error in image analysis: {e}")
        raise


def generate_composition(
    image: RasterImage | np.ndarray | None,
    params: CompositionParams | None = None,
    rng: random.Random | None = None,
    created_at: int | None = None,
):
    """Analyze an image and build a composition from it.

    Returns:
        Tuple of (analysis, composition).
    """
    raster = load_image(image)
    analysis = run_analysis(raster)
    composition = create_composition(
        analysis,
        image_data=encode_thumbnail(raster),
        rng=rng,
        params=params,
        created_at=created_at,
    )
    return analysis, composition


def process_complete_pipeline(
    image: RasterImage | np.ndarray | None,
    settings: AppSettings | None = None,
    rng: random.Random | None = None,
    created_at: int | None = None,
) -> GenerationResult:
    """Process the complete image-to-music pipeline.

    Args:
        image: Input image as a RasterImage or RGB/RGBA array.
        settings: Application settings; defaults apply when omitted.
        rng: Random source for rhythm pattern choices.
        created_at: Creation timestamp (ms) for the composition id.

    Returns:
        GenerationResult with the analysis, derived scales, composition and
        text descriptions.

    Raises:
        InvalidImage: If the image is missing or too small.
    """
    settings = settings or AppSettings()

    analysis, composition = generate_composition(
        image, settings.composition, rng, created_at
    )
    scales = create_scales(analysis, settings.composition)

    return GenerationResult(
        analysis=analysis,
        scales=scales,
        composition=composition,
        image_description=describe_image(analysis),
        music_description=describe_music(analysis, composition.tempo),
    )
