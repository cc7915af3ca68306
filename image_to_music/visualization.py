"""
Visualization functions for the image-to-music pipeline.

This module centralizes the images and plots shown alongside a generated
composition: the section grid the notes were sampled from, the dominant
colour palette, a piano roll of the three tracks, and the waveform and
spectrum of the rendered audio.
"""

import logging
from collections.abc import Sequence

import cv2
import numpy as np
from matplotlib.figure import Figure

from image_to_music.models import (
    AppFeatures,
    Composition,
    DominantColor,
    ImageAnalysis,
    RasterImage,
    VisualizationSet,
)
from image_to_music.models.pipeline_models import SECTION_GRID
from image_to_music.music_transformations import get_key_name, note_to_midi

logger = logging.getLogger(__name__)

TRACK_COLORS = {"piano": "#4c72b0", "pad": "#55a868", "bell": "#c44e52"}
SPECTRUM_BANDS = 32


def create_section_grid_visualization(
    image: RasterImage | None, analysis: ImageAnalysis | None
) -> np.ndarray | None:
    """Overlay the 4x4 section grid and each cell's average colour on an image.

    Each cell gets a swatch of its average colour in its centre; grid lines
    follow the truncated cell boundaries used by the analysis.

    Args:
        image: Analyzed image, or None.
        analysis: Its analysis, or None.

    Returns:
        RGB image as an H×W×3 uint8 array, or None if either input is missing.
    """
    if image is None or analysis is None:
        return None

    canvas = np.ascontiguousarray(image.rgb.copy())
    cell_w = image.width // SECTION_GRID
    cell_h = image.height // SECTION_GRID
    thickness = max(1, min(cell_w, cell_h) // 40)

    for index, section in enumerate(analysis.sections):
        row, col = divmod(index, SECTION_GRID)
        x0, y0 = col * cell_w, row * cell_h
        color = tuple(int(round(c)) for c in section.average_color)

        # Swatch covers the middle third of the cell
        sx0, sy0 = x0 + cell_w // 3, y0 + cell_h // 3
        sx1, sy1 = x0 + 2 * cell_w // 3, y0 + 2 * cell_h // 3
        cv2.rectangle(canvas, (sx0, sy0), (sx1, sy1), color, -1)
        cv2.rectangle(canvas, (sx0, sy0), (sx1, sy1), (0, 0, 0), thickness)

    grid_w, grid_h = cell_w * SECTION_GRID, cell_h * SECTION_GRID
    white = (255, 255, 255)
    for k in range(SECTION_GRID + 1):
        cv2.line(canvas, (k * cell_w, 0), (k * cell_w, grid_h), white, thickness)
        cv2.line(canvas, (0, k * cell_h), (grid_w, k * cell_h), white, thickness)

    return canvas


def create_palette_visualization(
    colors: Sequence[DominantColor], swatch_size: int = 40
) -> np.ndarray | None:
    """Draw dominant colours as a horizontal strip of square swatches.

    Returns:
        RGB image of shape ``(swatch_size, swatch_size * len(colors), 3)``,
        or None if there are no colours.
    """
    if not colors:
        return None

    strip = np.zeros((swatch_size, swatch_size * len(colors), 3), dtype=np.uint8)
    for i, dominant in enumerate(colors):
        strip[:, i * swatch_size : (i + 1) * swatch_size] = dominant.color
    return strip


def create_piano_roll_visualization(
    composition: Composition | None,
    *,
    width_px: int = 1200,
    height_px: int = 480,
    dpi: int = 150,
) -> Figure:
    """Create a piano roll of a composition's tracks.

    Notes are drawn as bars positioned by their start beat and pitch, one
    colour per instrument, with sharps-only pitch labels on the y-axis.

    Args:
        composition: Composition to draw, or None.
        width_px: Figure width in pixels.
        height_px: Figure height in pixels.
        dpi: Raster resolution.

    Returns:
        Matplotlib Figure. Shows a "No notes" message if the composition is
        missing or empty.
    """
    fig = Figure(figsize=(width_px / dpi, height_px / dpi), dpi=dpi)
    ax = fig.subplots()

    tracks = composition.tracks if composition is not None else []
    if not any(track.notes for track in tracks):
        ax.text(0.5, 0.5, "No notes", ha="center", va="center", transform=ax.transAxes)
        ax.axis("off")
        return fig

    pitches: set[int] = set()
    for track in tracks:
        color = TRACK_COLORS.get(track.instrument, "#8172b2")
        beat = 0.0
        for note, duration in zip(track.notes, track.rhythm):
            pitch = note_to_midi(note)
            ax.broken_barh(
                [(beat, duration)],
                (pitch - 0.4, 0.8),
                facecolors=color,
                edgecolors="black",
                linewidth=0.5,
            )
            pitches.add(pitch)
            beat += duration

        # Empty line so the legend gets one entry per instrument
        ax.plot([], [], color=color, linewidth=6, label=track.instrument)

    lo, hi = min(pitches), max(pitches)
    ax.set_ylim(lo - 1, hi + 1)
    ax.set_xlim(0, max(composition.duration, max(t.total_beats for t in tracks)))
    ax.set_yticks(range(lo, hi + 1))
    ax.set_yticklabels([get_key_name(p) for p in range(lo, hi + 1)], fontsize=6)
    ax.set_xlabel("Beat", fontsize=8)
    ax.set_ylabel("Note", fontsize=8)
    ax.set_title(f"{composition.tempo} BPM", fontsize=9)
    ax.legend(loc="upper right", fontsize=6)

    for spine_name, spine in ax.spines.items():
        if spine_name not in ("left", "bottom"):
            spine.set_visible(False)

    fig.tight_layout()
    return fig


def spectrum_bands(samples: np.ndarray, bands: int = SPECTRUM_BANDS) -> np.ndarray:
    """Average FFT magnitude (dB) of ``samples`` in ``bands`` equal-width bands.

    Returns:
        Array of ``bands`` values; all -140 dB for silent or empty input.
    """
    if samples.size == 0:
        return np.full(bands, -140.0)

    magnitude = np.abs(np.fft.rfft(samples)) / samples.size
    groups = np.array_split(magnitude, bands)
    levels = np.array([group.mean() if group.size else 0.0 for group in groups])
    return np.maximum(20 * np.log10(np.maximum(levels, 1e-7)), -140.0)


def create_waveform_visualization(
    samples: np.ndarray | None,
    sample_rate: int = 44100,
    *,
    width_px: int = 1200,
    height_px: int = 480,
    dpi: int = 150,
) -> Figure:
    """Plot the rendered audio's waveform above a spectrum bar graph.

    Args:
        samples: Mono audio samples, or None.
        sample_rate: Sample rate of ``samples`` in Hz.

    Returns:
        Matplotlib Figure with two axes, or a "No audio" message.
    """
    fig = Figure(figsize=(width_px / dpi, height_px / dpi), dpi=dpi)

    if samples is None or samples.size == 0:
        ax = fig.subplots()
        ax.text(0.5, 0.5, "No audio", ha="center", va="center", transform=ax.transAxes)
        ax.axis("off")
        return fig

    wave_ax, spectrum_ax = fig.subplots(2, 1)

    # Decimate long signals to keep the plot light
    step = max(1, samples.size // 4000)
    times = np.arange(0, samples.size, step) / sample_rate
    wave_ax.plot(times, samples[::step], linewidth=0.5, color="#4c72b0")
    wave_ax.set_xlim(0, samples.size / sample_rate)
    wave_ax.set_ylim(-1.05, 1.05)
    wave_ax.set_xlabel("Time (s)", fontsize=8)
    wave_ax.set_yticks([])

    levels = spectrum_bands(samples)
    spectrum_ax.bar(range(levels.size), levels + 140, color="#55a868", width=0.9)
    spectrum_ax.set_xticks([])
    spectrum_ax.set_yticks([])
    spectrum_ax.set_xlabel("Frequency band", fontsize=8)

    fig.tight_layout()
    return fig


def create_all_visualizations(
    image: RasterImage | None,
    analysis: ImageAnalysis | None,
    composition: Composition | None,
    audio: tuple[np.ndarray, int] | None = None,
    features: AppFeatures | None = None,
) -> VisualizationSet:
    """Create the complete set of visualizations for a generated composition.

    Args:
        image: Source image, or None.
        analysis: Image analysis, or None.
        composition: Generated composition, or None.
        audio: Rendered ``(samples, sample_rate)``, or None.
        features: Enabled UI features; the waveform is skipped when its
            feature is off.

    Returns:
        VisualizationSet; individual fields are None when their inputs are
        missing.
    """
    if image is None:
        return VisualizationSet()

    features = features or AppFeatures()

    waveform = None
    if features.waveform and audio is not None:
        waveform = create_waveform_visualization(*audio)

    return VisualizationSet(
        section_grid=create_section_grid_visualization(image, analysis),
        palette=create_palette_visualization(analysis.dominant_colors)
        if analysis
        else None,
        piano_roll=create_piano_roll_visualization(composition)
        if composition
        else None,
        waveform=waveform,
    )
