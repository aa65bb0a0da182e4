"""Rendition planning: decide the size and encoding of each output image."""

from typing import Tuple

from .models import EngineConfig, RenditionPlan, RenditionRole, RenditionSpec


def fit_within(width: int, height: int, threshold: int) -> Tuple[int, int]:
    """
    Scale (width, height) so the larger side equals ``threshold``.

    Images already within the threshold are returned unchanged; nothing is
    ever upscaled. The shorter side is rounded and kept at least 1px.
    """
    longest = max(width, height)
    if longest <= threshold:
        return width, height

    scale = threshold / longest
    if width >= height:
        return threshold, max(1, round(height * scale))
    return max(1, round(width * scale)), threshold


def scale_to_width(width: int, height: int, target_width: int) -> Tuple[int, int]:
    """Scale to ``target_width`` preserving aspect ratio, never upscaling."""
    target_width = min(target_width, width)
    return target_width, max(1, round(height * target_width / width))


def plan_renditions(width: int, height: int, config: EngineConfig) -> RenditionPlan:
    """
    Compute the original and placeholder renditions for a decoded image.

    Args:
        width: Decoded image width in pixels
        height: Decoded image height in pixels
        config: Engine configuration supplying threshold, placeholder width,
            quality and format

    Returns:
        RenditionPlan with the original first and the placeholder second

    Raises:
        ValueError: If either dimension is not positive
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image dimensions: {width}x{height}")

    if config.resize_threshold:
        original_size = fit_within(width, height, config.resize_threshold)
    else:
        original_size = (width, height)

    placeholder_size = scale_to_width(width, height, config.placeholder_width)

    return RenditionPlan(
        original=RenditionSpec(
            role=RenditionRole.ORIGINAL,
            width=original_size[0],
            height=original_size[1],
            quality=config.quality,
            format=config.output_format,
        ),
        placeholder=RenditionSpec(
            role=RenditionRole.PLACEHOLDER,
            width=placeholder_size[0],
            height=placeholder_size[1],
            quality=config.quality,
            format=config.output_format,
        ),
    )
