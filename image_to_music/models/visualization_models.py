"""Models for visualization outputs.

The VisualizationSet model gathers every image and plot produced for one
generated composition so the user interface can take them from a single
container.
"""

from typing import Any

import numpy as np
from pydantic import BaseModel, Field


class VisualizationSet(BaseModel):
    """Complete set of visualizations for the user interface.

    Attributes:
        section_grid: Source image with the 4x4 section grid and each cell's
            average colour, or None.
        palette: Strip of dominant colour swatches, or None.
        piano_roll: Matplotlib figure of the composition's tracks, or None.
        waveform: Matplotlib figure of the rendered audio, or None.
    """

    section_grid: np.ndarray | None = Field(
        None, description="Image with section grid overlay"
    )
    palette: np.ndarray | None = Field(None, description="Dominant colour swatches")
    piano_roll: Any | None = Field(None, description="Piano roll figure")
    waveform: Any | None = Field(None, description="Waveform and spectrum figure")

    class Config:
        arbitrary_types_allowed = True
