"""
Preset storage for CropSight
"""

from .presets import (
    LayerPreset, PresetStore, InMemoryPresetStore, YamlPresetStore,
    PresetFormatError, default_presets, seed_defaults,
)

__all__ = [
    "LayerPreset",
    "PresetStore",
    "InMemoryPresetStore",
    "YamlPresetStore",
    "PresetFormatError",
    "default_presets",
    "seed_defaults",
]
