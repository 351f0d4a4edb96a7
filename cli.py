#!/usr/bin/env python3
"""
CropSight Command Line Interface

Main CLI entry point for CropSight. Every command decodes its input images,
runs one planner and prints the planned geometry or adjustment as JSON.
"""

import sys
import json
import click
import logging
from typing import Any, Optional

from cropsight.config import (
    load_config, get_config_value, crop_options_from_config, aspect_spec_from_config,
)
from cropsight.io.codec import CodecError, decode_image, expand_palette
from cropsight.processing.errors import ProcessingError
from cropsight.processing.geometry import (
    AspectCropSpec, CropOptions, LayerTransform, SmartCropPlanner,
    plan_aspect_crop, plan_trim_and_fit, resolve_layer, initial_preview_scale,
)
from cropsight.processing.geometry.aspect_crop import COMMON_ASPECT_RATIOS
from cropsight.processing.geometry.smart_crop import plan_smart_crop_split, plan_smart_crop_resize
from cropsight.processing.color import ColorMatcher
from cropsight.processing.batch import batch_color_match
from cropsight.storage import YamlPresetStore, seed_defaults
from cropsight.utils.logging import ProcessingStats, setup_console_logging

logger = logging.getLogger(__name__)


def _emit(data: Any):
    click.echo(json.dumps(data, indent=2, sort_keys=True))


def _fail(message: str):
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _decode(path: str):
    try:
        return decode_image(path)
    except CodecError as e:
        _fail(f"{path}: {e}")


def _merge_crop_options(base: CropOptions, **overrides) -> CropOptions:
    """Apply the command line values that were actually given."""
    values = {
        'padding': base.padding,
        'padding_top': base.padding_top,
        'padding_right': base.padding_right,
        'padding_bottom': base.padding_bottom,
        'padding_left': base.padding_left,
        'tolerance': base.tolerance,
        'min_content_ratio': base.min_content_ratio,
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return CropOptions(**values)


def _parse_size(value: str) -> tuple:
    try:
        width, height = (int(part) for part in value.lower().split('x'))
    except ValueError:
        raise click.BadParameter(f"expected WIDTHxHEIGHT, got {value!r}")
    return width, height


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, config: Optional[str] = None, verbose: bool = False, quiet: bool = False):
    """
    CropSight - content-aware cropping, layout and color matching

    Finds the meaningful content of raster images and plans crops, fixed
    canvas placements, layer transforms and color adjustments from it.
    """
    if ctx.obj is None:
        ctx.obj = {}

    ctx.obj['config'] = load_config(config)

    log_config = ctx.obj['config'].get('logging', {})
    level = log_config.get('level', 'INFO')
    if verbose:
        level = 'DEBUG'
    elif quiet:
        level = 'ERROR'
    setup_console_logging(level=level, color=log_config.get('color', True),
                          fmt=log_config.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


@main.command()
@click.argument('image', type=click.Path(exists=True, dir_okay=False))
@click.option('--tolerance', '-t', type=click.IntRange(min=0), help='Alpha or RGB distance threshold')
@click.pass_context
def bounds(ctx, image: str, tolerance: Optional[int] = None):
    """
    Detect the bounding box of the image content.

    IMAGE: Path to the image to analyze
    """
    options = crop_options_from_config(ctx.obj['config'])
    tolerance = options.tolerance if tolerance is None else tolerance

    buffer = _decode(image)
    planner = SmartCropPlanner(expand_palette)
    try:
        detected = planner.analyzer.analyze(buffer, tolerance)
    except ProcessingError as e:
        _fail(str(e))

    _emit({
        'image': image,
        'width': buffer.width,
        'height': buffer.height,
        'strategy': planner.analyzer.select_strategy(buffer),
        'bounds': detected.to_dict(),
    })


@main.command('smart-crop')
@click.argument('image', type=click.Path(exists=True, dir_okay=False))
@click.option('--padding', '-p', type=int, help='Padding on every side')
@click.option('--padding-top', type=int, help='Override top padding')
@click.option('--padding-right', type=int, help='Override right padding')
@click.option('--padding-bottom', type=int, help='Override bottom padding')
@click.option('--padding-left', type=int, help='Override left padding')
@click.option('--tolerance', '-t', type=int, help='Alpha or RGB distance threshold')
@click.option('--min-content-ratio', type=float, help='Minimum content/image area ratio')
@click.option('--split', is_flag=True, help='Also split the cropped region into quadrants')
@click.option('--fit', 'fit_size', help='Also contain-fit the cropped region to WIDTHxHEIGHT')
@click.pass_context
def smart_crop(ctx, image: str, padding: Optional[int] = None,
               padding_top: Optional[int] = None, padding_right: Optional[int] = None,
               padding_bottom: Optional[int] = None, padding_left: Optional[int] = None,
               tolerance: Optional[int] = None, min_content_ratio: Optional[float] = None,
               split: bool = False, fit_size: Optional[str] = None):
    """
    Plan a padded crop around the detected content.

    A null crop means the image should be kept unchanged.

    IMAGE: Path to the image to crop
    """
    try:
        options = _merge_crop_options(
            crop_options_from_config(ctx.obj['config']),
            padding=padding, padding_top=padding_top, padding_right=padding_right,
            padding_bottom=padding_bottom, padding_left=padding_left,
            tolerance=tolerance, min_content_ratio=min_content_ratio,
        )
    except ValueError as e:
        _fail(str(e))

    buffer = _decode(image)
    try:
        detected, crop = SmartCropPlanner(expand_palette).plan(buffer, options)
        result = {
            'image': image,
            'width': buffer.width,
            'height': buffer.height,
            'bounds': detected.to_dict(),
            'crop': crop.to_dict() if crop else None,
        }
        if split:
            tiles = plan_smart_crop_split(buffer, options, expand_palette)
            result['split'] = [tile.to_dict() for tile in tiles]
        if fit_size:
            target_width, target_height = _parse_size(fit_size)
            region, placement = plan_smart_crop_resize(buffer, target_width, target_height,
                                                       options, expand_palette)
            result['fit'] = {'region': region.to_dict(), 'placement': placement.to_dict()}
    except ProcessingError as e:
        _fail(str(e))

    _emit(result)


@main.command('aspect-crop')
@click.argument('image', type=click.Path(exists=True, dir_okay=False))
@click.option('--ratio', '-r', help='Target aspect ratio as W:H, e.g. 16:9')
@click.option('--position-x', type=float, help='Horizontal focal position (0-100)')
@click.option('--position-y', type=float, help='Vertical focal position (0-100)')
@click.option('--all', 'all_ratios', is_flag=True, help='Plan every common aspect ratio')
@click.pass_context
def aspect_crop(ctx, image: str, ratio: Optional[str] = None,
                position_x: Optional[float] = None, position_y: Optional[float] = None,
                all_ratios: bool = False):
    """
    Plan the largest crop of a fixed aspect ratio.

    IMAGE: Path to the image to crop
    """
    try:
        base = aspect_spec_from_config(ctx.obj['config'])
        pos_x = base.position_x if position_x is None else position_x
        pos_y = base.position_y if position_y is None else position_y
        if all_ratios:
            specs = [AspectCropSpec(w, h, pos_x, pos_y) for w, h in COMMON_ASPECT_RATIOS]
        elif ratio:
            specs = [AspectCropSpec.parse(ratio, pos_x, pos_y)]
        else:
            specs = [AspectCropSpec(base.ratio_width, base.ratio_height, pos_x, pos_y)]
    except ProcessingError as e:
        _fail(str(e))

    buffer = _decode(image)
    crops = []
    try:
        for spec in specs:
            rect = plan_aspect_crop(buffer.width, buffer.height, spec)
            crops.append({'ratio': f"{spec.ratio_width:g}:{spec.ratio_height:g}",
                          'crop': rect.to_dict()})
    except ProcessingError as e:
        _fail(str(e))

    _emit({'image': image, 'width': buffer.width, 'height': buffer.height, 'crops': crops})


@main.command('trim-fit')
@click.argument('image', type=click.Path(exists=True, dir_okay=False))
@click.option('--width', '-w', type=int, help='Target canvas width')
@click.option('--height', '-h', type=int, help='Target canvas height')
@click.option('--padding', '-p', type=int, help='Padding kept around the content')
@click.option('--tolerance', '-t', type=int, help='Alpha or RGB distance threshold')
@click.pass_context
def trim_fit(ctx, image: str, width: Optional[int] = None, height: Optional[int] = None,
             padding: Optional[int] = None, tolerance: Optional[int] = None):
    """
    Trim empty margins and fit the content onto a fixed-size canvas.

    IMAGE: Path to the image to normalize
    """
    config = ctx.obj['config']
    width = width or get_config_value(config, 'auto_trim.target_width')
    height = height or get_config_value(config, 'auto_trim.target_height')
    if not width or not height:
        _fail("Target --width and --height are required")

    try:
        options = _merge_crop_options(crop_options_from_config(config, 'auto_trim'),
                                      padding=padding, tolerance=tolerance)
    except ValueError as e:
        _fail(str(e))

    buffer = _decode(image)
    try:
        placement = plan_trim_and_fit(buffer, width, height, options, expand_palette)
    except ProcessingError as e:
        _fail(str(e))

    _emit({'image': image, 'width': buffer.width, 'height': buffer.height,
           'placement': placement.to_dict()})


@main.command()
@click.argument('image', type=click.Path(exists=True, dir_okay=False))
@click.option('--scale', '-s', type=float, help='Preview scale; defaults to fill the canvas')
@click.option('--x', 'offset_x', type=float, default=0.0, help='Preview X offset from centre')
@click.option('--y', 'offset_y', type=float, default=0.0, help='Preview Y offset from centre')
@click.option('--crop', 'crop', help='Percentage crop as X,Y,WIDTH,HEIGHT')
@click.option('--preview-size', type=int, help='Preview canvas size the transform was authored on')
@click.option('--output-size', type=int, help='Output canvas size')
@click.pass_context
def layer(ctx, image: str, scale: Optional[float] = None, offset_x: float = 0.0,
          offset_y: float = 0.0, crop: Optional[str] = None,
          preview_size: Optional[int] = None, output_size: Optional[int] = None):
    """
    Resolve a preview-space layer transform onto the output canvas.

    IMAGE: Path to the layer image
    """
    config = ctx.obj['config']
    preview_size = preview_size or get_config_value(config, 'layers.preview_canvas_size', 400)
    output_size = output_size or get_config_value(config, 'layers.output_size', 1024)

    buffer = _decode(image)
    try:
        if scale is None:
            scale = initial_preview_scale(buffer.width, buffer.height, output_size, preview_size)

        crop_values = {}
        if crop:
            try:
                crop_x, crop_y, crop_w, crop_h = (float(part) for part in crop.split(','))
            except ValueError:
                raise click.BadParameter(f"expected X,Y,WIDTH,HEIGHT, got {crop!r}", param_hint='--crop')
            crop_values = dict(crop_enabled=True, crop_x=crop_x, crop_y=crop_y,
                               crop_width=crop_w, crop_height=crop_h)

        transform = LayerTransform(scale=scale, x=offset_x, y=offset_y, **crop_values)
        placement = resolve_layer(buffer.width, buffer.height, transform, preview_size, output_size)
    except ProcessingError as e:
        _fail(str(e))

    _emit({'image': image, 'transform': transform.to_dict(), 'output_size': output_size,
           'placement': placement.to_dict()})


@main.command('color-match')
@click.argument('reference', type=click.Path(exists=True, dir_okay=False))
@click.argument('targets', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('--intensity', '-i', type=float, help='Match intensity in percent')
@click.option('--workers', type=int, help='Number of worker threads')
@click.option('--progress/--no-progress', default=None, help='Show a progress bar')
@click.pass_context
def color_match(ctx, reference: str, targets, intensity: Optional[float] = None,
                workers: Optional[int] = None, progress: Optional[bool] = None):
    """
    Compute color adjustments that match TARGETS to REFERENCE.

    REFERENCE: Image whose colors are matched
    TARGETS: Images to adjust
    """
    config = ctx.obj['config']
    intensity = get_config_value(config, 'color_match.intensity', 100) if intensity is None else intensity
    workers = workers or get_config_value(config, 'batch.max_workers')
    max_samples = int(get_config_value(config, 'color_match.max_samples', 10000))
    if progress is None:
        progress = bool(get_config_value(config, 'batch.progress', True)) and not ctx.obj['quiet']

    try:
        matcher = ColorMatcher.from_buffer(_decode(reference), intensity, max_samples)
    except ProcessingError as e:
        _fail(str(e))

    results = batch_color_match(matcher.reference, list(targets), decode_image, matcher.intensity,
                                max_workers=workers, progress=progress,
                                max_samples=max_samples)

    stats = ProcessingStats().record_batch(results)
    stats.log_summary()

    _emit({
        'reference': reference,
        'reference_profile': matcher.reference.to_dict(),
        'intensity': matcher.intensity,
        'results': [
            {
                'image': path,
                'profile': item.result.profile.to_dict() if item.result.profile else None,
                'adjustment': item.result.adjustment.to_dict(),
                'error': item.error,
            }
            for path, item in zip(targets, results)
        ],
    })
    if stats.failed_images:
        sys.exit(1)


@main.group()
@click.option('--store', type=click.Path(dir_okay=False), help='Preset YAML file')
@click.pass_context
def presets(ctx, store: Optional[str] = None):
    """Manage saved layer presets."""
    path = store or get_config_value(ctx.obj['config'], 'presets.path')
    ctx.obj['presets'] = YamlPresetStore(path)


@presets.command('list')
@click.option('--seed', is_flag=True, help='Add the built-in presets first')
@click.pass_context
def presets_list(ctx, seed: bool = False):
    """List preset names."""
    store = ctx.obj['presets']
    if seed:
        added = seed_defaults(store)
        logger.info(f"Seeded {added} built-in presets")
    _emit(store.list())


@presets.command('show')
@click.argument('name')
@click.pass_context
def presets_show(ctx, name: str):
    """Show one preset."""
    preset = ctx.obj['presets'].get(name)
    if preset is None:
        _fail(f"Preset not found: {name}")
    _emit(preset.to_dict())


@presets.command('delete')
@click.argument('name')
@click.pass_context
def presets_delete(ctx, name: str):
    """Delete one preset."""
    if not ctx.obj['presets'].delete(name):
        _fail(f"Preset not found: {name}")
    _emit({'deleted': name})


if __name__ == '__main__':
    main()
