"""Parameter models for pipeline and application configuration.

This module defines Pydantic models that hold every configurable value of
the image-to-music application: how compositions are derived, how they are
rendered to MIDI and audio, which optional UI features are enabled, and
where saved state is stored. Each model validates its ranges and carries
the defaults the application runs with.
"""

import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field

DATA_DIR_ENV = "IMAGE_TO_MUSIC_DATA_DIR"


class CompositionParams(BaseModel):
    """Configuration for deriving a composition from an image analysis.

    Attributes:
        beat_budget: Beats each track is filled to (default 32).
        min_tempo: Tempo for a completely dark image (default 80 BPM).
        tempo_span: Tempo added for a completely bright image (default 60).
        brightness_buckets: Brightness width of one transposition step
            (default 51, i.e. 255 split into five buckets).
    """

    beat_budget: int = Field(32, ge=1, le=256, description="Beats per track")
    min_tempo: int = Field(80, ge=20, le=300, description="Tempo at brightness 0")
    tempo_span: int = Field(60, ge=0, le=200, description="Tempo range above minimum")
    brightness_buckets: int = Field(
        51, ge=1, le=255, description="Brightness per transposition step"
    )


class RenderParams(BaseModel):
    """Configuration for rendering compositions to MIDI and audio.

    Attributes:
        ticks_per_beat: MIDI ticks per quarter note (default 480).
        sample_rate: Audio sample rate for synthesis (default 44100).
        humanize: Randomize note velocities between 0.3 and 0.6 of full scale.
        base_velocity: Note velocity when humanize is off (default 64).
    """

    ticks_per_beat: int = Field(480, ge=24, le=9600, description="MIDI resolution")
    sample_rate: int = Field(44100, ge=8000, le=192000, description="Audio rate")
    humanize: bool = Field(False, description="Randomize note velocities")
    base_velocity: int = Field(64, ge=1, le=127, description="Fixed note velocity")


class AppFeatures(BaseModel):
    """Optional features of the web interface.

    Attributes:
        history: Keep and show a list of recently uploaded images.
        timeline: Show the playback length and a seekable position readout.
        waveform: Show the rendered waveform and spectrum bars.
        max_history: Number of history entries kept (default 20).
    """

    history: bool = Field(True, description="Enable the upload history")
    timeline: bool = Field(True, description="Enable the playback timeline")
    waveform: bool = Field(True, description="Enable the waveform display")
    max_history: int = Field(20, ge=1, le=500, description="History capacity")


class StorageParams(BaseModel):
    """Location of persisted compositions and history.

    Attributes:
        directory: Directory holding the key-value files. When unset the
            ``IMAGE_TO_MUSIC_DATA_DIR`` environment variable is used, then a
            directory under the system temp dir.
    """

    directory: str | None = Field(None, description="Storage directory")

    def resolve_directory(self) -> Path:
        if self.directory:
            return Path(self.directory)
        env_dir = os.environ.get(DATA_DIR_ENV)
        if env_dir:
            return Path(env_dir)
        return Path(tempfile.gettempdir()) / "image-to-music"


class AppSettings(BaseModel):
    """Complete configuration for the image-to-music application.

    Attributes:
        composition: Composition derivation parameters.
        render: MIDI/audio rendering parameters.
        features: Optional UI features.
        storage: Persistence location.
    """

    composition: CompositionParams = Field(
        default_factory=CompositionParams, description="Composition parameters"
    )
    render: RenderParams = Field(
        default_factory=RenderParams, description="Rendering parameters"
    )
    features: AppFeatures = Field(
        default_factory=AppFeatures, description="Optional UI features"
    )
    storage: StorageParams = Field(
        default_factory=StorageParams, description="Storage location"
    )
