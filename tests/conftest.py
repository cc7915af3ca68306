import random

import numpy as np
import pytest

from image_to_music.composition import create_composition
from image_to_music.image_analysis import analyze_image
from image_to_music.models import RasterImage


@pytest.fixture
def small_rgb_image():
    # 2×2 RGB image: red, red, blue, black
    img = np.array(
        [[[255, 0, 0], [255, 0, 0]], [[0, 0, 255], [0, 0, 0]]], dtype=np.uint8
    )
    return img


@pytest.fixture
def gray_image():
    # 8×8 uniform mid-gray raster
    return RasterImage.from_array(np.full((8, 8, 3), 128, dtype=np.uint8))


@pytest.fixture
def gradient_image():
    # 16×16 raster getting brighter from left to right
    row = np.linspace(0, 255, 16, dtype=np.uint8)
    rgb = np.repeat(np.tile(row, (16, 1))[:, :, None], 3, axis=2)
    return RasterImage.from_array(rgb)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def gradient_analysis(gradient_image):
    return analyze_image(gradient_image)


@pytest.fixture
def sample_composition(gradient_analysis, rng):
    return create_composition(
        gradient_analysis,
        image_data="data:image/png;base64,AAAA",
        rng=rng,
        created_at=1700000000000,
    )
