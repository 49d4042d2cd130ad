"""
Bounding box utilities for the figure capture workflow.

Handles crop tag extraction, rectangle geometry on the normalized 0-1000
grid, and the scale-aware margin expansion used for clustering and cropping.
"""
import math
import re
from typing import List, Sequence, Tuple

from core.constants import CROP_TAG_PATTERN, DEFAULT_CAPTION, NORMALIZED_SCALE
from core.exceptions import EmptyInputError
from core.models import ExpandedRect, Rect

CROP_TAG_RE = re.compile(CROP_TAG_PATTERN, re.IGNORECASE)


def extract_crop_tags(text: str) -> List[Rect]:
    """
    Extract crop tags in the format [CROP: ymin, xmin, ymax, xmax | Caption].

    Args:
        text: OCR output containing crop tags

    Returns:
        List of Rects in source order, each carrying its matched span
    """
    if not text:
        return []

    rects = []
    for match in CROP_TAG_RE.finditer(text):
        ymin, xmin, ymax, xmax = (int(match.group(i)) for i in range(1, 5))
        desc = (match.group(5) or '').strip() or DEFAULT_CAPTION

        rects.append(Rect(
            ymin=ymin,
            xmin=xmin,
            ymax=ymax,
            xmax=xmax,
            full_tag=match.group(0),
            desc=desc,
            start=match.start(),
            end=match.end()
        ))

    return rects


def rect_area(rect: Rect) -> float:
    """Area in normalized units; inverted or degenerate rectangles give 0."""
    return rect.area


def intersection_over_union(a: Rect, b: Rect) -> float:
    """
    Calculate IoU between two axis-aligned rectangles.

    Args:
        a: First rectangle
        b: Second rectangle

    Returns:
        IoU in [0, 1]; 0 when the rectangles do not overlap
    """
    inter_w = max(0.0, min(a.xmax, b.xmax) - max(a.xmin, b.xmin))
    inter_h = max(0.0, min(a.ymax, b.ymax) - max(a.ymin, b.ymin))
    inter_area = inter_w * inter_h

    union_area = a.area + b.area - inter_area
    if union_area <= 0:
        return 0.0

    return min(1.0, inter_area / union_area)


def center_distance(a: Rect, b: Rect) -> float:
    """Euclidean distance between rectangle centers (normalized units)."""
    ax, ay = a.center
    bx, by = b.center
    return math.hypot(ax - bx, ay - by)


def gap_distance(a: Rect, b: Rect) -> float:
    """
    Distance between the nearest edges of two rectangles.

    Each axis contributes 0 when the rectangles overlap or touch on it, so
    overlapping rectangles are at distance 0.
    """
    dx = max(0.0, max(a.xmin, b.xmin) - min(a.xmax, b.xmax))
    dy = max(0.0, max(a.ymin, b.ymin) - min(a.ymax, b.ymax))
    return math.hypot(dx, dy)


def union_rect(rects: Sequence[Rect]) -> Rect:
    """
    Minimal rectangle enclosing all given rectangles.

    The label fields (desc, full_tag, span) are taken from the first
    rectangle; only the geometry is meaningful downstream.

    Raises:
        EmptyInputError: If ``rects`` is empty
    """
    if not rects:
        raise EmptyInputError("Cannot compute the union of zero rectangles")

    first = rects[0]
    return Rect(
        ymin=min(r.ymin for r in rects),
        xmin=min(r.xmin for r in rects),
        ymax=max(r.ymax for r in rects),
        xmax=max(r.xmax for r in rects),
        full_tag=first.full_tag,
        desc=first.desc,
        start=first.start,
        end=first.end
    )


def compute_margin(
    size_px: float,
    margin_ratio: float = 0.10,
    min_margin_px: float = 24,
    max_margin_px: float = 120
) -> float:
    """Scale-aware margin: ``margin_ratio`` of the size, clamped to [min, max] px."""
    return min(max(size_px * margin_ratio, min_margin_px), max_margin_px)


def normalized_to_pixels(
    rect: Rect,
    img_width: int,
    img_height: int
) -> Tuple[float, float, float, float]:
    """
    Convert a normalized rectangle to pixel coordinates.

    Returns:
        Tuple of (x1, y1, x2, y2) in pixels, unrounded
    """
    return (
        rect.xmin / NORMALIZED_SCALE * img_width,
        rect.ymin / NORMALIZED_SCALE * img_height,
        rect.xmax / NORMALIZED_SCALE * img_width,
        rect.ymax / NORMALIZED_SCALE * img_height,
    )


def pixels_to_normalized(
    x1: float,
    y1: float,
    x2: float,
    y2: float,
    img_width: int,
    img_height: int
) -> Tuple[float, float, float, float]:
    """
    Convert pixel coordinates to the normalized 0-1000 grid.

    Returns:
        Tuple of (ymin, xmin, ymax, xmax)
    """
    return (
        y1 / img_height * NORMALIZED_SCALE,
        x1 / img_width * NORMALIZED_SCALE,
        y2 / img_height * NORMALIZED_SCALE,
        x2 / img_width * NORMALIZED_SCALE,
    )


def padded_pixel_box(
    rect: Rect,
    img_width: int,
    img_height: int,
    margin_ratio: float = 0.10,
    min_margin_px: float = 24,
    max_margin_px: float = 120
) -> Tuple[float, float, float, float]:
    """
    Pixel box of ``rect`` padded with scale-aware margins and clamped to the image.

    Returns:
        Tuple of (x1, y1, x2, y2) in pixels
    """
    x1, y1, x2, y2 = normalized_to_pixels(rect, img_width, img_height)

    margin_x = compute_margin(x2 - x1, margin_ratio, min_margin_px, max_margin_px)
    margin_y = compute_margin(y2 - y1, margin_ratio, min_margin_px, max_margin_px)

    return (
        max(0.0, x1 - margin_x),
        max(0.0, y1 - margin_y),
        min(float(img_width), x2 + margin_x),
        min(float(img_height), y2 + margin_y),
    )


def expand_rect(
    rect: Rect,
    img_width: int,
    img_height: int,
    margin_ratio: float = 0.10,
    min_margin_px: float = 24,
    max_margin_px: float = 120
) -> ExpandedRect:
    """
    Compute the padded "visual" footprint of a tag for clustering.

    The original rectangle is kept as a back-reference; cropping re-applies
    the margin to the raw union instead of reusing this footprint.

    Args:
        rect: Tag rectangle on the normalized grid
        img_width: Source image width in pixels
        img_height: Source image height in pixels

    Returns:
        ExpandedRect on the normalized grid
    """
    x1, y1, x2, y2 = padded_pixel_box(
        rect, img_width, img_height,
        margin_ratio, min_margin_px, max_margin_px
    )
    ymin, xmin, ymax, xmax = pixels_to_normalized(x1, y1, x2, y2, img_width, img_height)

    return ExpandedRect(
        ymin=ymin,
        xmin=xmin,
        ymax=ymax,
        xmax=xmax,
        full_tag=rect.full_tag,
        desc=rect.desc,
        start=rect.start,
        end=rect.end,
        original=rect
    )
