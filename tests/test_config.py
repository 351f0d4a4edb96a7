"""
Tests for configuration loading and logging setup.
"""

import logging

import pytest
import yaml

from cropsight.config import (
    aspect_spec_from_config, crop_options_from_config, get_config_value,
    get_default_config, load_config, save_config, update_config_value,
)
from cropsight.processing.errors import InvalidAspectRatioSpecError
from cropsight.utils.logging import StructuredLogger, setup_console_logging


class TestLoadConfig:
    """Test loading and merging YAML configuration."""

    def test_missing_file_returns_defaults(self, tmp_path):
        """A missing file yields the defaults."""
        assert load_config(tmp_path / "missing.yaml") == get_default_config()

    def test_partial_file_is_merged(self, tmp_path):
        """Partial files are merged over the defaults."""
        path = tmp_path / "config.yaml"
        path.write_text("smart_crop:\n  padding: 5\n")
        config = load_config(path)
        assert config['smart_crop']['padding'] == 5
        assert config['smart_crop']['tolerance'] == 10
        assert config['layers']['output_size'] == 1024

    def test_env_vars_expanded(self, tmp_path, monkeypatch):
        """${VAR} references are expanded from the environment."""
        monkeypatch.setenv("CROPSIGHT_PRESETS", "/tmp/presets.yaml")
        path = tmp_path / "config.yaml"
        path.write_text("presets:\n  path: ${CROPSIGHT_PRESETS}\n")
        assert load_config(path)['presets']['path'] == "/tmp/presets.yaml"

    def test_invalid_yaml_returns_defaults(self, tmp_path):
        """Malformed YAML yields the defaults."""
        path = tmp_path / "config.yaml"
        path.write_text("smart_crop: [unclosed\n")
        assert load_config(path) == get_default_config()

    def test_save_round_trip(self, tmp_path):
        """Saved configs load back unchanged."""
        path = tmp_path / "saved.yaml"
        config = get_default_config()
        update_config_value(config, 'auto_trim.target_width', 512)
        assert save_config(config, path)
        assert yaml.safe_load(path.read_text())['auto_trim']['target_width'] == 512
        assert load_config(path)['auto_trim']['target_width'] == 512


class TestConfigValues:
    """Test dot-path access and option builders."""

    def test_get_and_update(self):
        """Dotted paths read and create nested values."""
        config = get_default_config()
        assert get_config_value(config, 'color_match.intensity') == 100
        assert get_config_value(config, 'color_match.missing', 'x') == 'x'
        update_config_value(config, 'new.section.value', 3)
        assert config['new']['section']['value'] == 3

    def test_crop_options(self):
        """The smart_crop section builds CropOptions."""
        config = get_default_config()
        config['smart_crop']['padding_left'] = 0
        options = crop_options_from_config(config)
        assert options.resolved_padding() == (20, 20, 20, 0)
        assert options.min_content_ratio == 0.1

    def test_trim_options(self):
        """The auto_trim section builds trim options."""
        options = crop_options_from_config(get_default_config(), 'auto_trim')
        assert options.tolerance == 100
        assert options.padding == 0

    def test_aspect_spec(self):
        """The aspect_crop section builds an AspectCropSpec."""
        config = get_default_config()
        config['aspect_crop']['ratio'] = '16:9'
        config['aspect_crop']['position_x'] = 0
        spec = aspect_spec_from_config(config)
        assert (spec.ratio_width, spec.ratio_height, spec.position_x) == (16, 9, 0)

    def test_invalid_aspect_spec(self):
        """A malformed configured ratio is rejected."""
        config = get_default_config()
        config['aspect_crop']['ratio'] = 'wide'
        with pytest.raises(InvalidAspectRatioSpecError):
            aspect_spec_from_config(config)


class TestLogging:
    """Test logging helpers."""

    def test_structured_message(self, caplog):
        """Metadata is appended as sorted JSON."""
        log = StructuredLogger("cropsight.test", {'batch': 'b1'}).bind(image='a.png')
        with caplog.at_level(logging.INFO, logger="cropsight.test"):
            log.info("Cropped", width=10)
        assert 'Cropped | {"batch": "b1", "image": "a.png", "width": 10}' in caplog.text

    def test_console_handler_replaced(self):
        """Repeated setup replaces the console handler."""
        root = logging.getLogger()
        previous_level = root.level
        first = setup_console_logging("DEBUG", color=False)
        second = setup_console_logging("WARNING", color=False)
        try:
            assert first not in root.handlers
            assert second in root.handlers
            assert root.level == logging.WARNING
        finally:
            root.removeHandler(second)
            root.setLevel(previous_level)
