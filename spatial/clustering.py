"""
Clustering Module

Groups crop tags that likely depict the same figure. Clustering runs on the
expanded (padded) footprints so that fragments of one multi-panel diagram,
detected as separate boxes, end up overlapping or close enough to join.
"""
import logging
from typing import List, Sequence

from core.models import Cluster, ExpandedRect
from utils.bbox_utils import gap_distance, intersection_over_union, union_rect

logger = logging.getLogger(__name__)


def connects(
    candidate: ExpandedRect,
    members: Sequence[ExpandedRect],
    iou_threshold: float = 0.05,
    gap_threshold: float = 50.0
) -> bool:
    """
    Check whether a rectangle should join a cluster.

    Args:
        candidate: Rectangle not yet assigned to a cluster
        members: Current cluster members
        iou_threshold: Minimum IoU with any member
        gap_threshold: Maximum edge gap (normalized units, exclusive) to any member

    Returns:
        True if the candidate overlaps or is near any member
    """
    return any(
        intersection_over_union(member, candidate) >= iou_threshold
        or gap_distance(member, candidate) < gap_threshold
        for member in members
    )


def group_rects(
    rects: Sequence[ExpandedRect],
    iou_threshold: float = 0.05,
    gap_threshold: float = 50.0
) -> List[List[ExpandedRect]]:
    """
    Partition rectangles into connected groups.

    Each group is grown from the first unassigned rectangle until a full
    scan over the remaining rectangles attaches nothing, so a rectangle
    bridged in by a later member still joins.

    Returns:
        Groups in order of their first rectangle; every input rectangle
        appears in exactly one group
    """
    groups: List[List[ExpandedRect]] = []
    used = set()

    for i, seed in enumerate(rects):
        if i in used:
            continue

        group = [seed]
        used.add(i)

        changed = True
        while changed:
            changed = False
            for j, candidate in enumerate(rects):
                if j in used:
                    continue
                if connects(candidate, group, iou_threshold, gap_threshold):
                    group.append(candidate)
                    used.add(j)
                    changed = True

        groups.append(group)

    return groups


def build_cluster(members: Sequence[ExpandedRect]) -> Cluster:
    """Wrap a group of expanded rectangles with its visual and raw unions."""
    members = list(members)
    originals = [m.original if m.original is not None else m for m in members]

    return Cluster(
        members=members,
        visual_union=union_rect(members),
        union=union_rect(originals)
    )


def cluster_rects(
    rects: Sequence[ExpandedRect],
    iou_threshold: float = 0.05,
    gap_threshold: float = 50.0
) -> List[Cluster]:
    """
    Cluster expanded crop-tag rectangles into figures.

    Args:
        rects: Expanded rectangles for every parsed tag of one OCR response
        iou_threshold: Join when IoU with a member is at least this
        gap_threshold: Join when the edge gap to a member is below this

    Returns:
        List of clusters forming a partition of ``rects``
    """
    groups = group_rects(rects, iou_threshold, gap_threshold)
    clusters = [build_cluster(group) for group in groups]

    logger.debug("Clustered %d tags into %d clusters", len(rects), len(clusters))
    return clusters
