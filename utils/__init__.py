"""Utilities package - Helper functions for geometry, images, hashing and text."""

from .bbox_utils import (
    extract_crop_tags,
    rect_area,
    intersection_over_union,
    center_distance,
    gap_distance,
    union_rect,
    compute_margin,
    normalized_to_pixels,
    pixels_to_normalized,
    expand_rect,
)

from .image_utils import (
    image_file_to_bytes,
    load_image,
    get_image_dimensions,
    get_mime_type,
    crop_figure,
)

from .image_hash import (
    compute_bitmap_hash,
    hamming_distance,
)

from .text_utils import (
    normalize_llm_output,
    strip_crop_tags,
    clean_caption,
    extract_figure_references,
)

__all__ = [
    # BBox utils
    'extract_crop_tags',
    'rect_area',
    'intersection_over_union',
    'center_distance',
    'gap_distance',
    'union_rect',
    'compute_margin',
    'normalized_to_pixels',
    'pixels_to_normalized',
    'expand_rect',

    # Image utils
    'image_file_to_bytes',
    'load_image',
    'get_image_dimensions',
    'get_mime_type',
    'crop_figure',

    # Hashing
    'compute_bitmap_hash',
    'hamming_distance',

    # Text utils
    'normalize_llm_output',
    'strip_crop_tags',
    'clean_caption',
    'extract_figure_references',
]
