"""
Non-Maximum Suppression Module

Removes figure clusters that duplicate a larger cluster. The OCR model often
reports the same figure twice with slightly different boxes; the larger
visual footprint is kept as the canonical one.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from core.models import Cluster
from utils.bbox_utils import center_distance, intersection_over_union

logger = logging.getLogger(__name__)


@dataclass
class NmsResult:
    """Partition of clusters produced by non-maximum suppression."""
    kept: List[Cluster] = field(default_factory=list)
    removed: List[Cluster] = field(default_factory=list)


def is_duplicate(
    candidate: Cluster,
    kept: Sequence[Cluster],
    iou_threshold: float = 0.85,
    center_dist_threshold: float = 30.0
) -> bool:
    """True if the candidate's visual union nearly coincides with any kept cluster's."""
    for other in kept:
        overlap = intersection_over_union(candidate.visual_union, other.visual_union)
        dist = center_distance(candidate.visual_union, other.visual_union)
        if overlap >= iou_threshold or dist <= center_dist_threshold:
            return True
    return False


def non_max_suppress(
    clusters: Sequence[Cluster],
    iou_threshold: float = 0.85,
    center_dist_threshold: float = 30.0
) -> NmsResult:
    """
    Greedy largest-first non-maximum suppression over cluster visual unions.

    Clusters are visited by visual-union area, largest first. Equal areas keep
    their input order (the sort is stable), so the result is deterministic.

    Args:
        clusters: Clusters that passed the size filter
        iou_threshold: Suppress when IoU with a kept cluster is at least this
        center_dist_threshold: Suppress when centers are at most this far apart

    Returns:
        NmsResult with kept clusters in visiting order
    """
    ordered = sorted(clusters, key=lambda c: c.visual_union.area, reverse=True)
    result = NmsResult()

    for cluster in ordered:
        if is_duplicate(cluster, result.kept, iou_threshold, center_dist_threshold):
            result.removed.append(cluster)
        else:
            result.kept.append(cluster)

    logger.debug(
        "NMS kept %d of %d clusters", len(result.kept), len(clusters)
    )
    return result
