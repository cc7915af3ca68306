"""Domain models for the image-to-music application.

This module provides a centralized location for all data models used
throughout the image-to-music pipeline. It includes:

- Core domain models (RasterImage, SectionStat, Track, Composition, ...)
- Pipeline stage results (ImageAnalysis, ScaleSet, GenerationResult, ...)
- Configuration parameters (CompositionParams, RenderParams, AppSettings, ...)
- Visualization data containers

All models are built using Pydantic for data validation and serialization,
ensuring type safety and clear interfaces between pipeline components.
"""

# Re-export core models
from image_to_music.models.core_models import (
    RasterImage,
    SectionStat,
    DominantColor,
    Track,
    MidiEvent,
    Composition,
    SavedComposition,
    HistoryEntry,
)

# Re-export pipeline models
from image_to_music.models.pipeline_models import (
    ImageAnalysis,
    ScaleSet,
    GenerationResult,
    RenderResult,
)

# Re-export setting models
from image_to_music.models.settings_models import (
    CompositionParams,
    RenderParams,
    AppFeatures,
    StorageParams,
    AppSettings,
)

# Re-export visualization models
from image_to_music.models.visualization_models import VisualizationSet
