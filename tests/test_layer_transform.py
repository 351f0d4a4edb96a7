"""
Tests for layer transform resolution.
"""

import pytest

from cropsight.processing.errors import InvalidDimensionsError, InvalidLayerTransformError
from cropsight.processing.geometry import LayerTransform, initial_preview_scale, resolve_layer
from cropsight.processing.geometry.layer_transform import (
    normalize_layer_crop, resolve_layers, resolve_sub_crop,
)


class TestResolveLayer:
    """Test re-projection from preview space onto the output canvas."""

    def test_identity_when_canvases_match(self):
        """Matching canvases keep the transform unchanged."""
        result = resolve_layer(400, 400, LayerTransform(), 400, 400)
        assert result.effective_scale == pytest.approx(1.0)
        assert result.placement.as_tuple() == (0, 0, 400, 400)
        assert result.crop is None

    def test_reprojected_scale(self):
        """Scale grows with the output canvas."""
        result = resolve_layer(400, 400, LayerTransform(scale=0.5), 400, 1024)
        assert result.effective_scale == pytest.approx(1.28)
        assert result.placement.as_tuple() == (256, 256, 512, 512)

    def test_offsets_scale_with_canvas(self):
        """Offsets grow with the output canvas."""
        result = resolve_layer(400, 400, LayerTransform(scale=0.5, x=10, y=-20), 400, 1024)
        # Centre moves by 10 * 2.56 and -20 * 2.56 output pixels
        assert result.placement.as_tuple() == (282, 205, 512, 512)

    def test_oversized_layer_is_clamped(self):
        """Oversized layers are clamped to the canvas."""
        result = resolve_layer(400, 400, LayerTransform(scale=2.0, x=100), 400, 1024)
        assert result.placement.width == 1024
        assert result.placement.height == 1024
        assert result.placement.left == 0
        assert result.placement.fits_within(1024, 1024)

    def test_offset_pushes_against_edge(self):
        """Large offsets push the layer against the edge."""
        result = resolve_layer(100, 100, LayerTransform(scale=1.0, x=1000, y=-1000), 400, 400)
        assert result.placement.as_tuple() == (300, 0, 100, 100)

    def test_sub_crop_applied_before_scaling(self):
        """The sub-crop is taken before scaling."""
        transform = LayerTransform(scale=0.4, crop_enabled=True, crop_x=10, crop_y=20,
                                   crop_width=50, crop_height=50)
        result = resolve_layer(1000, 500, transform, 400, 400)
        assert result.crop.as_tuple() == (100, 100, 500, 250)
        assert result.placement.as_tuple() == (100, 150, 200, 100)

    def test_invalid_canvas(self):
        """A zero canvas is rejected."""
        with pytest.raises(InvalidLayerTransformError):
            resolve_layer(100, 100, LayerTransform(), 0, 1024)

    def test_invalid_source(self):
        """A zero source size is rejected."""
        with pytest.raises(InvalidDimensionsError):
            resolve_layer(0, 100, LayerTransform())

    def test_invisible_layers_are_skipped(self):
        """Invisible layers resolve to None."""
        results = resolve_layers([
            (100, 100, LayerTransform(name="Background")),
            (100, 100, LayerTransform(visible=False, name="Avatar")),
        ], 400, 400)
        assert results[0] is not None
        assert results[1] is None


class TestSubCrop:
    """Test percentage crops."""

    def test_disabled(self):
        """No sub-crop unless enabled."""
        assert resolve_sub_crop(100, 100, LayerTransform(crop_x=50)) is None

    def test_clamped_to_source(self):
        """Sub-crops are clamped to the source."""
        transform = LayerTransform(crop_enabled=True, crop_x=90, crop_y=90,
                                   crop_width=50, crop_height=50)
        assert resolve_sub_crop(100, 100, transform).as_tuple() == (90, 90, 10, 10)

    def test_normalize_pulls_origin_back(self):
        """Normalisation moves the origin so the crop fits."""
        transform = LayerTransform(crop_enabled=True, crop_x=80, crop_y=10,
                                   crop_width=50, crop_height=50)
        normalized = normalize_layer_crop(transform)
        assert normalized.crop_x == 50
        assert normalized.crop_y == 10

    def test_normalize_keeps_valid_crop(self):
        """Valid crops are returned unchanged."""
        transform = LayerTransform(crop_enabled=True, crop_x=10, crop_width=50)
        assert normalize_layer_crop(transform) is transform


class TestLayerTransformModel:
    """Test validation and conversion of layer transforms."""

    def test_rejects_non_positive_scale(self):
        """Zero scale is rejected."""
        with pytest.raises(InvalidLayerTransformError):
            LayerTransform(scale=0)

    @pytest.mark.parametrize("offsets", [
        {'x': float("nan")}, {'y': float("nan")},
        {'x': float("inf")}, {'y': float("-inf")},
    ])
    def test_rejects_non_finite_offsets(self, offsets):
        """NaN or infinite offsets are reported as invalid transforms."""
        with pytest.raises(InvalidLayerTransformError):
            LayerTransform(**offsets)

    def test_rejects_non_finite_scale(self):
        """Scale must be a finite positive number."""
        with pytest.raises(InvalidLayerTransformError):
            LayerTransform(scale=float("inf"))
        with pytest.raises(InvalidLayerTransformError):
            LayerTransform(scale=float("nan"))

    def test_rejects_crop_outside_percent_range(self):
        """Crop percentages above 100 are rejected."""
        with pytest.raises(InvalidLayerTransformError):
            LayerTransform(crop_x=120)

    def test_from_camel_case(self):
        """camelCase mappings fill missing fields with defaults."""
        transform = LayerTransform.from_dict({
            'scale': 0.6, 'x': -4, 'y': 14, 'cropEnabled': True,
            'cropX': 10, 'cropWidth': 80, 'layerName': 'Avatar',
        })
        assert transform.scale == 0.6
        assert transform.crop_enabled
        assert transform.crop_x == 10
        assert transform.crop_width == 80
        assert transform.crop_height == 100
        assert transform.name == 'Avatar'

    def test_dict_round_trip(self):
        """to_dict output loads back unchanged."""
        transform = LayerTransform(scale=0.75, x=3, name="Frame")
        assert LayerTransform.from_dict(transform.to_dict()) == transform


class TestInitialPreviewScale:
    """Test the fill-canvas starting scale."""

    def test_fill_scale(self):
        """The initial scale fills the output canvas."""
        assert initial_preview_scale(2048, 1024, 1024, 400) == pytest.approx(0.2)

    def test_square_matching_output(self):
        """A square source matching the output scales to the preview."""
        assert initial_preview_scale(1024, 1024, 1024, 400) == pytest.approx(0.39)

    def test_invalid_dimensions(self):
        """Zero source dimensions are rejected."""
        with pytest.raises(InvalidDimensionsError):
            initial_preview_scale(0, 10, 1024)
