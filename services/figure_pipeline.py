"""
Figure Pipeline - Turns crop tags in OCR output into stored figure images.

Runs once per page image: parse tags, expand, cluster, size-filter and
suppress duplicates, then crop, hash and store each surviving figure and
rewrite the text so every stored figure is referenced exactly once.
"""
import logging
import time
import uuid
from typing import Callable, Dict, List, Optional, Set, Tuple

from PIL import Image, UnidentifiedImageError

from core.constants import DEFAULT_FIGURE_PARAMS
from core.exceptions import CropFailure, HashFailure
from core.models import (
    Cluster,
    FigureExtractionResult,
    StoredFigure,
    TagDecision,
    TagOutcome,
)
from data.blob_store import BlobStore
from spatial.clustering import cluster_rects
from spatial.filters import filter_clusters_by_size
from spatial.nms import non_max_suppress
from spatial.tag_rewriter import decide_cluster, rewrite_tags
from utils.bbox_utils import expand_rect, extract_crop_tags
from utils.image_hash import compute_bitmap_hash
from utils.image_utils import ImageSource, crop_figure, get_image_dimensions, load_image
from utils.text_utils import clean_caption

logger = logging.getLogger(__name__)


def generate_image_id() -> str:
    """Generate a blob key: millisecond timestamp plus a random suffix."""
    return f"img_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


class FigureExtractionPipeline:
    """Figure capture for a single OCR response and its page image."""

    def __init__(
        self,
        blob_store: BlobStore,
        config: Optional[Dict] = None,
        key_factory: Callable[[], str] = generate_image_id,
        cropper: Callable[..., bytes] = crop_figure,
        hasher: Callable[..., str] = compute_bitmap_hash
    ):
        """
        Initialize the pipeline.

        Args:
            blob_store: Destination for accepted crops
            config: Threshold overrides (keys of DEFAULT_FIGURE_PARAMS)
            key_factory: Generates a unique blob key per stored figure
            cropper: Raster collaborator, ``(image, rect, **margins) -> bytes``
            hasher: Perceptual hash, ``(crop_bytes, grid_size) -> str``
        """
        self.blob_store = blob_store
        self.params = {**DEFAULT_FIGURE_PARAMS, **(config or {})}
        self.key_factory = key_factory
        self.cropper = cropper
        self.hasher = hasher

    @property
    def margin_params(self) -> Dict:
        return {
            'margin_ratio': self.params['margin_ratio'],
            'min_margin_px': self.params['min_margin_px'],
            'max_margin_px': self.params['max_margin_px'],
        }

    def process(
        self,
        text: str,
        image: ImageSource,
        dimensions: Optional[Tuple[int, int]] = None
    ) -> FigureExtractionResult:
        """
        Extract, deduplicate and store the figures tagged in ``text``.

        Args:
            text: OCR output containing [CROP: ...] tags
            image: The page image the tags refer to
            dimensions: (width, height) if already known

        Returns:
            FigureExtractionResult with the rewritten text

        Raises:
            Errors from reading the image dimensions propagate; failures for a single
            figure never do.
        """
        stats = {
            'tags': 0,
            'clusters': 0,
            'size_filtered': 0,
            'nms_removed': 0,
            'hash_dupes': 0,
            'crops': 0,
            'crop_failures': 0,
        }

        rects = extract_crop_tags(text)
        stats['tags'] = len(rects)
        if not rects:
            return FigureExtractionResult(text=text, stats=stats)

        img_width, img_height = dimensions or get_image_dimensions(image)

        expanded = [
            expand_rect(r, img_width, img_height, **self.margin_params)
            for r in rects
        ]
        clusters = cluster_rects(
            expanded,
            iou_threshold=self.params['cluster_iou'],
            gap_threshold=self.params['cluster_gap']
        )
        sized, too_small = filter_clusters_by_size(
            clusters,
            img_width,
            img_height,
            min_dim_px=self.params['min_dim_px'],
            min_area_px2=self.params['min_area_px2']
        )
        nms = non_max_suppress(
            sized,
            iou_threshold=self.params['nms_iou'],
            center_dist_threshold=self.params['nms_center_dist']
        )

        stats['clusters'] = len(clusters)
        stats['size_filtered'] = len(too_small)
        stats['nms_removed'] = len(nms.removed)

        logger.debug(
            "Pipeline: %d tags -> %d clusters -> %d sized -> %d post-NMS",
            len(rects), len(clusters), len(sized), len(nms.kept)
        )

        decisions: List[TagDecision] = []
        for cluster in too_small:
            decisions.extend(decide_cluster(cluster, TagOutcome.SIZE_FILTERED))
        for cluster in nms.removed:
            decisions.extend(decide_cluster(cluster, TagOutcome.NMS_REMOVED))

        source = self._preload(image)
        seen_hashes: Set[str] = set()
        figures: List[StoredFigure] = []

        for cluster in nms.kept:
            figure, cluster_decisions = self._capture(cluster, source, seen_hashes)
            decisions.extend(cluster_decisions)

            outcome = cluster_decisions[0].outcome
            if figure is not None:
                figures.append(figure)
                stats['crops'] += 1
            elif outcome is TagOutcome.HASH_DUP:
                stats['hash_dupes'] += 1
            elif outcome is TagOutcome.CROP_FAILED:
                stats['crop_failures'] += 1

        logger.info(
            "Figures: tags=%d clusters=%d size_filtered=%d nms_dropped=%d "
            "hash_dupes=%d crops=%d crop_failures=%d",
            stats['tags'], stats['clusters'], stats['size_filtered'],
            stats['nms_removed'], stats['hash_dupes'], stats['crops'],
            stats['crop_failures']
        )

        return FigureExtractionResult(
            text=rewrite_tags(text, decisions),
            figures=figures,
            decisions=decisions,
            stats=stats
        )

    def _preload(self, image: ImageSource) -> ImageSource:
        """Decode the page once for all crops; fall back to the raw source."""
        try:
            return load_image(image)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            logger.warning("Could not pre-load page image, cropping from source: %s", e)
            return image

    def _capture(
        self,
        cluster: Cluster,
        source: ImageSource,
        seen_hashes: Set[str]
    ) -> Tuple[Optional[StoredFigure], List[TagDecision]]:
        """Crop, hash and store one cluster; failures stay local to it."""
        caption = clean_caption(cluster.original_tags[0].desc)

        try:
            crop = self.cropper(
                source,
                cluster.union,
                quality=self.params['jpeg_quality'],
                **self.margin_params
            )
        except CropFailure as e:
            logger.warning("Failed to crop figure %r: %s", caption, e)
            return None, decide_cluster(cluster, TagOutcome.CROP_FAILED)
        except Exception as e:
            logger.exception("Cropper raised for figure %r: %s", caption, e)
            return None, decide_cluster(cluster, TagOutcome.CROP_FAILED)

        try:
            phash = self.hasher(crop, self.params['hash_grid'])
        except HashFailure as e:
            # Unhashed figures are kept and never count as duplicates
            logger.warning("Failed to hash figure %r, keeping it: %s", caption, e)
            phash = None
        except Exception as e:
            logger.exception("Hasher raised for figure %r, keeping it: %s", caption, e)
            phash = None

        if phash is not None and phash in seen_hashes:
            logger.debug("Figure %r duplicates an earlier crop (hash %s)", caption, phash)
            return None, decide_cluster(cluster, TagOutcome.HASH_DUP)

        image_id = self.key_factory()
        try:
            width, height = get_image_dimensions(crop)
            self.blob_store.put(
                image_id,
                crop,
                caption=caption,
                phash=phash,
                width=width,
                height=height,
                mime_type='image/jpeg'
            )
        except Exception as e:
            logger.exception("Failed to store figure %r: %s", caption, e)
            return None, decide_cluster(cluster, TagOutcome.CROP_FAILED)

        if phash is not None:
            seen_hashes.add(phash)

        figure = StoredFigure(
            image_id=image_id,
            caption=caption,
            width=width,
            height=height,
            phash=phash
        )
        return figure, decide_cluster(cluster, TagOutcome.KEPT_PRIMARY, image_id)
