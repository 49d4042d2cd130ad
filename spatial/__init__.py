"""Spatial analysis package - Figure clustering, filtering and deduplication."""

from .clustering import (
    connects,
    group_rects,
    build_cluster,
    cluster_rects,
)

from .filters import (
    passes_floors,
    filter_clusters_by_size,
)

from .nms import (
    NmsResult,
    is_duplicate,
    non_max_suppress,
)

from .tag_rewriter import (
    format_figure_reference,
    format_caption_fallback,
    decide_cluster,
    rewrite_tags,
)

__all__ = [
    # Clustering
    'connects',
    'group_rects',
    'build_cluster',
    'cluster_rects',

    # Filters
    'passes_floors',
    'filter_clusters_by_size',

    # Non-maximum suppression
    'NmsResult',
    'is_duplicate',
    'non_max_suppress',

    # Tag rewriting
    'format_figure_reference',
    'format_caption_fallback',
    'decide_cluster',
    'rewrite_tags',
]
