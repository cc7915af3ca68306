"""Core domain models for image-to-music conversion."""

from typing import Literal

import numpy as np
from pydantic import BaseModel, Field, model_validator

from image_to_music.errors import InvalidImage

Instrument = Literal["piano", "pad", "bell"]


class RasterImage(BaseModel):
    """Decoded raster image with an RGBA8 pixel buffer.

    The pixel buffer is row-major with four bytes per pixel, stored as a
    NumPy array of shape ``(height, width, 4)``. Instances are the immutable
    input to image analysis.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        pixels: RGBA pixel data as a ``uint8`` array.
    """

    width: int = Field(..., ge=0, description="Image width in pixels")
    height: int = Field(..., ge=0, description="Image height in pixels")
    pixels: np.ndarray = Field(..., description="RGBA pixel buffer (H x W x 4)")

    class Config:
        arbitrary_types_allowed = True
        frozen = True

    @model_validator(mode="after")
    def _check_buffer(self) -> "RasterImage":
        if self.width == 0 or self.height == 0:
            raise InvalidImage("Image has zero pixels")
        if self.pixels.shape != (self.height, self.width, 4):
            raise InvalidImage(
                f"Pixel buffer shape {self.pixels.shape} does not match "
                f"{self.width}x{self.height} RGBA"
            )
        return self

    @classmethod
    def from_array(cls, array: np.ndarray) -> "RasterImage":
        """Build a RasterImage from a grayscale, RGB or RGBA array.

        Args:
            array: ``H×W``, ``H×W×3`` or ``H×W×4`` array of 8-bit values.

        Returns:
            RasterImage holding an RGBA copy of the data.

        Raises:
            InvalidImage: If the array is missing or has an unsupported shape.
        """
        if array is None:
            raise InvalidImage("No image provided")

        data = np.asarray(array)
        if data.ndim == 2:
            data = np.repeat(data[:, :, None], 3, axis=2)
        if data.ndim != 3 or data.shape[2] not in (3, 4):
            raise InvalidImage(f"Unsupported image shape {data.shape}")

        data = data.astype(np.uint8, copy=False)
        if data.shape[2] == 3:
            alpha = np.full(data.shape[:2] + (1,), 255, dtype=np.uint8)
            data = np.concatenate([data, alpha], axis=2)

        height, width = data.shape[:2]
        return cls(width=width, height=height, pixels=np.ascontiguousarray(data))

    @classmethod
    def from_buffer(cls, buffer: bytes, width: int, height: int) -> "RasterImage":
        """Build a RasterImage from a flat RGBA8 byte buffer.

        Raises:
            InvalidImage: If the buffer length is not ``width * height * 4``.
        """
        expected = width * height * 4
        if len(buffer) != expected:
            raise InvalidImage(
                f"Buffer holds {len(buffer)} bytes, expected {expected}"
            )
        pixels = np.frombuffer(bytes(buffer), dtype=np.uint8).reshape(height, width, 4)
        return cls(width=width, height=height, pixels=pixels.copy())

    @property
    def rgb(self) -> np.ndarray:
        """Return the ``H×W×3`` colour channels without alpha."""
        return self.pixels[:, :, :3]


class SectionStat(BaseModel):
    """Average colour of one cell of the 4×4 section grid.

    Attributes:
        average_color: Mean red, green and blue values over the cell.
    """

    average_color: tuple[float, float, float] = Field(
        ..., description="Mean R, G, B over the section"
    )

    @property
    def brightness(self) -> float:
        """Mean of the three channel averages."""
        r, g, b = self.average_color
        return (r + g + b) / 3


class DominantColor(BaseModel):
    """An exact RGB colour and the number of pixels that carry it."""

    color: tuple[int, int, int] = Field(..., description="RGB triple")
    count: int = Field(..., ge=1, description="Number of pixels with this colour")


class Track(BaseModel):
    """One instrument's note and rhythm sequence.

    Notes and rhythm values are index-aligned: ``notes[i]`` sounds for
    ``rhythm[i]`` beats.

    Attributes:
        instrument: Instrument identifier ("piano", "pad" or "bell").
        notes: Pitch names such as "C4" or "G#3".
        rhythm: Durations in beats.
    """

    instrument: Instrument = Field(..., description="Instrument identifier")
    notes: list[str] = Field(default_factory=list, description="Pitch names")
    rhythm: list[float] = Field(default_factory=list, description="Durations in beats")

    class Config:
        frozen = True

    @model_validator(mode="after")
    def _check_alignment(self) -> "Track":
        if len(self.notes) != len(self.rhythm):
            raise ValueError(
                f"notes ({len(self.notes)}) and rhythm ({len(self.rhythm)}) "
                "must have equal length"
            )
        if any(duration <= 0 for duration in self.rhythm):
            raise ValueError("rhythm durations must be positive")
        return self

    @property
    def total_beats(self) -> float:
        return float(sum(self.rhythm))


class MidiEvent(BaseModel):
    """A single MIDI note event with timing information.

    Time is measured in MIDI ticks, which convert to seconds through the
    tempo and ticks-per-beat of the MIDI file.

    Attributes:
        note: MIDI note number (0-127, where 60 is middle C).
        start_tick: Start time in MIDI ticks (non-negative).
        duration_tick: Duration in MIDI ticks (positive).
        velocity: Note velocity (1-127).
    """

    note: int = Field(..., ge=0, le=127, description="MIDI note number (0-127)")
    start_tick: int = Field(..., ge=0, description="Start time in MIDI ticks")
    duration_tick: int = Field(..., ge=1, description="Duration in MIDI ticks")
    velocity: int = Field(64, ge=1, le=127, description="Note velocity")


class Composition(BaseModel):
    """A generated piece: tempo, length and one track per instrument.

    Compositions are frozen once created. The serialized form uses the
    ``imageData`` key for the thumbnail, matching the stored layout.

    Attributes:
        id: Creation timestamp in milliseconds since the epoch.
        tempo: Tempo in beats per minute.
        duration: Length in beats.
        image_data: Thumbnail of the source image as a data URL.
        tracks: Instrument tracks in piano/pad/bell order.
    """

    id: int = Field(..., ge=0, description="Creation timestamp (ms)")
    tempo: int = Field(..., ge=1, description="Tempo in beats per minute")
    duration: int = Field(32, ge=1, description="Length in beats")
    image_data: str = Field("", alias="imageData", description="Thumbnail data URL")
    tracks: list[Track] = Field(default_factory=list, description="Instrument tracks")

    class Config:
        frozen = True
        populate_by_name = True

    def to_dict(self) -> dict:
        """Return the plain structured form used for storage."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_dict(cls, data: dict):
        return cls.model_validate(data)


class SavedComposition(Composition):
    """A composition saved to the library under a name and date."""

    name: str = Field(..., description="Display name, e.g. 'Composition 3'")
    date: str = Field(..., description="Human-readable save time")


class HistoryEntry(BaseModel):
    """One uploaded or generated image remembered in the history list."""

    image_data: str = Field(..., alias="imageData", description="Image data URL")
    date: str = Field(..., description="Human-readable upload time")
    filename: str = Field(..., description="Original file name or label")
    composition: Composition | None = Field(
        None, description="Composition generated from this image, if any"
    )

    class Config:
        populate_by_name = True

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
