"""
Spatial Filters Module

Drops figure clusters that are too small to be real figures. Micro fragments
are usually stray detections (bullets, glyphs, underlines) rather than diagrams.
"""
import logging
from typing import List, Sequence, Tuple

from core.models import Cluster, Rect
from utils.bbox_utils import normalized_to_pixels

logger = logging.getLogger(__name__)


def passes_floors(
    rect: Rect,
    img_width: int,
    img_height: int,
    min_dim_px: float = 48,
    min_area_px2: float = 48 * 48
) -> bool:
    """
    Check a rectangle against the minimum pixel size.

    Args:
        rect: Rectangle on the normalized grid
        img_width: Image width in pixels
        img_height: Image height in pixels
        min_dim_px: Minimum width and height in pixels
        min_area_px2: Minimum area in square pixels

    Returns:
        True if width, height and area all meet their floors
    """
    x1, y1, x2, y2 = normalized_to_pixels(rect, img_width, img_height)
    width_px = x2 - x1
    height_px = y2 - y1

    return (
        width_px >= min_dim_px
        and height_px >= min_dim_px
        and width_px * height_px >= min_area_px2
    )


def filter_clusters_by_size(
    clusters: Sequence[Cluster],
    img_width: int,
    img_height: int,
    min_dim_px: float = 48,
    min_area_px2: float = 48 * 48
) -> Tuple[List[Cluster], List[Cluster]]:
    """
    Remove clusters whose raw (un-expanded) union is below the size floors.

    Returns:
        Tuple of (kept_clusters, removed_clusters), both in input order
    """
    kept = []
    removed = []

    for cluster in clusters:
        if passes_floors(cluster.union, img_width, img_height, min_dim_px, min_area_px2):
            kept.append(cluster)
        else:
            removed.append(cluster)

    if removed:
        logger.debug(
            "Size filter removed %d of %d clusters (floor %spx, %spx^2)",
            len(removed), len(clusters), min_dim_px, min_area_px2
        )

    return kept, removed
