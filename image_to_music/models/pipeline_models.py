"""Models for representing pipeline processing stages.

This module contains Pydantic models that encapsulate the results of each
stage in the image-to-music pipeline: the colour analysis of the image,
the tempo and scales derived from it, the fully assembled output, and the
rendered MIDI/audio files.
"""

from pydantic import BaseModel, Field, field_validator

from image_to_music.models.core_models import Composition, DominantColor, SectionStat

SECTION_GRID = 4
SECTION_COUNT = SECTION_GRID * SECTION_GRID


class ImageAnalysis(BaseModel):
    """Colour statistics of an image.

    Attributes:
        sections: Average colours of the 16 grid cells, row-major (rows outer,
            columns inner).
        dominant_colors: Up to five most frequent exact colours, most frequent
            first.
    """

    sections: list[SectionStat] = Field(..., description="4x4 section statistics")
    dominant_colors: list[DominantColor] = Field(
        default_factory=list, description="Most frequent colours"
    )

    @field_validator("sections")
    @classmethod
    def _sixteen_sections(cls, sections: list[SectionStat]) -> list[SectionStat]:
        if len(sections) != SECTION_COUNT:
            raise ValueError(
                f"expected {SECTION_COUNT} sections, got {len(sections)}"
            )
        return sections

    @field_validator("dominant_colors")
    @classmethod
    def _at_most_five(cls, colors: list[DominantColor]) -> list[DominantColor]:
        if len(colors) > 5:
            raise ValueError(f"at most 5 dominant colours allowed, got {len(colors)}")
        return colors

    @property
    def average_brightness(self) -> float:
        """Mean brightness over all sections (0-255)."""
        return sum(s.brightness for s in self.sections) / len(self.sections)


class ScaleSet(BaseModel):
    """Tempo and transposed scales derived from an image analysis.

    Attributes:
        tempo: Tempo in beats per minute (80-140).
        transpose: Semitone shift applied to every base scale.
        scales: Transposed scales in piano, pad, bell order.
    """

    tempo: int = Field(..., ge=1, description="Tempo in beats per minute")
    transpose: int = Field(0, description="Semitone shift applied to the scales")
    scales: list[list[str]] = Field(
        default_factory=list, description="Transposed scales"
    )


class GenerationResult(BaseModel):
    """Everything produced from one image by the composition pipeline."""

    analysis: ImageAnalysis
    scales: ScaleSet
    composition: Composition
    image_description: str = Field("", description="Text describing the image")
    music_description: str = Field("", description="Text describing the music")


class RenderResult(BaseModel):
    """MIDI and audio files rendered from a composition.

    Attributes:
        midi_bytes: Serialized MIDI file data, or None if rendering failed.
        midi_file_path: Path to the written MIDI file.
        audio_file_path: Path to the synthesized WAV file, or None if
            synthesis failed.
    """

    midi_bytes: bytes | None = Field(None, description="Serialized MIDI file data")
    midi_file_path: str = Field("", description="Path to the MIDI file")
    audio_file_path: str | None = Field(None, description="Path to the WAV file")
