import numpy as np
from image_to_music.models import VisualizationSet


def test_visualizationset_defaults_and_arrays():
    vs = VisualizationSet()
    assert vs.section_grid is None and vs.piano_roll is None
    vs2 = VisualizationSet(palette=np.zeros((2, 2, 3), dtype=np.uint8))
    assert vs2.palette.shape == (2, 2, 3)
