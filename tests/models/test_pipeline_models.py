import pytest
from pydantic import ValidationError
from image_to_music.models import (
    DominantColor,
    ImageAnalysis,
    RenderResult,
    ScaleSet,
    SectionStat,
)


def test_image_analysis_average_brightness(gray_sections):
    analysis = ImageAnalysis(sections=gray_sections)
    assert analysis.average_brightness == pytest.approx(100.0)
    assert analysis.dominant_colors == []


@pytest.mark.parametrize("count", [0, 15, 17])
def test_image_analysis_requires_sixteen_sections(count):
    sections = [SectionStat(average_color=(0.0, 0.0, 0.0))] * count
    with pytest.raises(ValidationError):
        ImageAnalysis(sections=sections)


def test_image_analysis_at_most_five_colors(gray_sections):
    colors = [DominantColor(color=(i, i, i), count=1) for i in range(6)]
    with pytest.raises(ValidationError):
        ImageAnalysis(sections=gray_sections, dominant_colors=colors)


def test_scale_set_defaults():
    scales = ScaleSet(tempo=100)
    assert scales.transpose == 0
    assert scales.scales == []


def test_render_result_defaults():
    result = RenderResult()
    assert result.midi_bytes is None
    assert result.audio_file_path is None
