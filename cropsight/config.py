"""
Configuration management for CropSight

Settings live in a YAML file. Anything the file leaves out falls back to
get_default_config(), and string values may reference environment
variables as ${NAME}.
"""

import yaml
import os
import re
from pathlib import Path
from typing import Dict, Any, List, Optional, Union
import logging

from .processing.geometry.models import AspectCropSpec, CropOptions

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

_ENV_REFERENCE = re.compile(r'\$\{([^}]+)\}')


def _substitute_env(value: Any) -> Any:
    """Replace ${NAME} references in strings nested anywhere in value."""
    if isinstance(value, str):
        # Unset variables keep their ${NAME} text
        return _ENV_REFERENCE.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)
    if isinstance(value, dict):
        return {k: _substitute_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env(v) for v in value]
    return value

def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge override into a copy of base."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged

def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file

    Values from the file are merged over the defaults, so a partial file
    only needs the keys it changes.

    Args:
        config_path: Path to config file. If None, uses default config.yaml

    Returns:
        Configuration dictionary
    """
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.debug(f"Config file not found: {config_path}. Using defaults.")
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        return get_default_config()

    if not isinstance(config, dict):
        logger.error(f"Config file {config_path} does not contain a mapping, using defaults")
        return get_default_config()

    logger.info(f"Loaded configuration from {config_path}")
    return _merge(get_default_config(), _substitute_env(config))

def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration values

    Returns:
        Default configuration dictionary
    """
    return {
        'smart_crop': {
            'padding': 20,
            'padding_top': None,
            'padding_right': None,
            'padding_bottom': None,
            'padding_left': None,
            'tolerance': 10,
            'min_content_ratio': 0.1,
        },
        'auto_trim': {
            'padding': 0,
            'tolerance': 100,
            'min_content_ratio': 0.01,
            'target_width': None,
            'target_height': None,
        },
        'aspect_crop': {
            'ratio': '1:1',
            'position_x': 50.0,
            'position_y': 50.0,
        },
        'layers': {
            'preview_canvas_size': 400,
            'output_size': 1024,
        },
        'color_match': {
            'intensity': 100,
            'max_samples': 10000,
        },
        'batch': {
            'max_workers': None,
            'progress': True,
        },
        'presets': {
            'path': str(Path.home() / '.cropsight' / 'presets.yaml'),
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'color': True,
        },
    }

def save_config(config: Dict[str, Any], config_path: Union[str, Path]) -> bool:
    """Write config as block-style YAML; returns False when the file cannot be written."""
    config_path = Path(config_path)
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(yaml.safe_dump(config, default_flow_style=False, sort_keys=False))
    except OSError as e:
        logger.error(f"Could not write configuration to {config_path}: {e}")
        return False
    logger.info(f"Wrote configuration to {config_path}")
    return True


def _split_path(key_path: str) -> List[str]:
    return [part for part in key_path.split('.') if part]


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Look up a nested value by dotted path, e.g. 'smart_crop.padding'

    Returns default when any segment is missing or not a mapping.
    """
    node: Any = config
    for part in _split_path(key_path):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def update_config_value(config: Dict[str, Any], key_path: str, value: Any) -> None:
    """Set a nested value by dotted path, creating intermediate sections."""
    *parents, leaf = _split_path(key_path)
    node = config
    for part in parents:
        node = node.setdefault(part, {})
    node[leaf] = value


def crop_options_from_config(config: Dict[str, Any], section: str = 'smart_crop') -> CropOptions:
    """
    Build CropOptions from a config section

    Args:
        config: Configuration dictionary
        section: 'smart_crop' or 'auto_trim'
    """
    defaults = get_default_config()[section]
    values = {**defaults, **(config.get(section) or {})}
    return CropOptions(
        padding=int(values['padding']),
        padding_top=values.get('padding_top'),
        padding_right=values.get('padding_right'),
        padding_bottom=values.get('padding_bottom'),
        padding_left=values.get('padding_left'),
        tolerance=int(values['tolerance']),
        min_content_ratio=float(values['min_content_ratio']),
    )


def aspect_spec_from_config(config: Dict[str, Any]) -> AspectCropSpec:
    """Build the AspectCropSpec described by the 'aspect_crop' section."""
    values = {**get_default_config()['aspect_crop'], **(config.get('aspect_crop') or {})}
    return AspectCropSpec.parse(
        values['ratio'],
        position_x=float(values['position_x']),
        position_y=float(values['position_y']),
    )
