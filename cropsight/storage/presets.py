"""
Layer preset storage for CropSight

Named layer configurations are kept behind an abstract PresetStore so that
callers can swap the backend (memory, YAML file, anything else) without
touching the engine.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging
import threading

import yaml

from ..processing.geometry.models import LayerTransform

logger = logging.getLogger(__name__)


class PresetFormatError(ValueError):
    """Raised when a stored preset cannot be parsed."""
    pass


@dataclass
class LayerPreset:
    """A named stack of layer transforms plus the preview guide settings"""
    name: str
    guide_size: int = 400
    layers: List[LayerTransform] = field(default_factory=list)
    show_second_guide: bool = False
    second_guide_size: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'guide_size': self.guide_size,
            'show_second_guide': self.show_second_guide,
            'layers': [layer.to_dict() for layer in self.layers],
        }
        if self.second_guide_size is not None:
            data['second_guide_size'] = self.second_guide_size
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LayerPreset':
        if not isinstance(data, dict) or 'name' not in data:
            raise PresetFormatError(f"Preset must be a mapping with a name, got {data!r}")
        try:
            layers = [LayerTransform.from_dict(layer) for layer in data.get('layers') or []]
            return cls(
                name=str(data['name']),
                guide_size=int(data.get('guide_size', data.get('guideSize', 400))),
                layers=layers,
                show_second_guide=bool(data.get('show_second_guide', data.get('showSecondGuide', False))),
                second_guide_size=data.get('second_guide_size', data.get('secondGuideSize')),
            )
        except (TypeError, ValueError) as e:
            raise PresetFormatError(f"Invalid preset {data.get('name')!r}: {e}") from e


class PresetStore(ABC):
    """Abstract key-value store for named layer presets."""

    @abstractmethod
    def get(self, name: str) -> Optional[LayerPreset]:
        """Return the preset, or None if it does not exist."""
        pass

    @abstractmethod
    def put(self, name: str, preset: LayerPreset) -> None:
        """Create or replace a preset."""
        pass

    @abstractmethod
    def list(self) -> List[str]:
        """Names of all stored presets, sorted."""
        pass

    @abstractmethod
    def delete(self, name: str) -> bool:
        """Remove a preset; False if it did not exist."""
        pass


class InMemoryPresetStore(PresetStore):
    """Process-local store, mainly for tests and embedding."""

    def __init__(self, presets: Optional[Dict[str, LayerPreset]] = None):
        self._presets: Dict[str, LayerPreset] = dict(presets or {})
        self._lock = threading.RLock()

    def get(self, name: str) -> Optional[LayerPreset]:
        with self._lock:
            return self._presets.get(name)

    def put(self, name: str, preset: LayerPreset) -> None:
        with self._lock:
            self._presets[name] = preset

    def list(self) -> List[str]:
        with self._lock:
            return sorted(self._presets)

    def delete(self, name: str) -> bool:
        with self._lock:
            return self._presets.pop(name, None) is not None


class YamlPresetStore(PresetStore):
    """
    Presets persisted in a single YAML file

    The whole file is re-read on every access so several processes can share
    it; writes replace the file.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.RLock()

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        with open(self.path, 'r') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise PresetFormatError(f"Preset file {self.path} must contain a mapping")
        return data.get('presets', {}) or {}

    def _save(self, presets: Dict[str, Dict[str, Any]]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            yaml.safe_dump({'presets': presets}, f, default_flow_style=False, indent=2, sort_keys=True)

    def get(self, name: str) -> Optional[LayerPreset]:
        with self._lock:
            raw = self._load().get(name)
        return LayerPreset.from_dict(raw) if raw is not None else None

    def put(self, name: str, preset: LayerPreset) -> None:
        with self._lock:
            presets = self._load()
            presets[name] = preset.to_dict()
            self._save(presets)
        logger.info(f"Saved preset '{name}' to {self.path}")

    def list(self) -> List[str]:
        with self._lock:
            return sorted(self._load())

    def delete(self, name: str) -> bool:
        with self._lock:
            presets = self._load()
            if name not in presets:
                return False
            del presets[name]
            self._save(presets)
        logger.info(f"Deleted preset '{name}' from {self.path}")
        return True


def default_presets() -> List[LayerPreset]:
    """Built-in starting points for the three-layer avatar layout."""
    return [
        LayerPreset(
            name="Standard",
            guide_size=400,
            layers=[
                LayerTransform(name="Background"),
                LayerTransform(name="Avatar"),
                LayerTransform(name="Frame"),
            ],
        ),
        LayerPreset(
            name="Avatar Focus",
            guide_size=180,
            layers=[
                LayerTransform(scale=0.6, x=-4, y=14, name="Background"),
                LayerTransform(scale=0.5, y=13, name="Avatar"),
                LayerTransform(scale=0.4, name="Frame"),
            ],
            show_second_guide=True,
            second_guide_size=280,
        ),
    ]


def seed_defaults(store: PresetStore) -> int:
    """Add missing built-in presets to a store; returns how many were added."""
    existing = set(store.list())
    added = 0
    for preset in default_presets():
        if preset.name not in existing:
            store.put(preset.name, preset)
            added += 1
    return added
