"""
Tag Rewriter Module

Rewrites OCR text once every crop tag has a decision: the first tag of each
stored figure becomes a [FIG_CAPTURE: ...] reference, tags of failed crops
become a plain caption, and all other tags disappear.
"""
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from core.constants import CAPTION_FALLBACK_TEMPLATE, FIG_CAPTURE_TEMPLATE
from core.models import Cluster, TagDecision, TagOutcome
from utils.bbox_utils import CROP_TAG_RE
from utils.text_utils import clean_caption, strip_crop_tags

logger = logging.getLogger(__name__)


def format_figure_reference(image_id: str, caption: str) -> str:
    """Build the embedded figure reference for a stored image."""
    return FIG_CAPTURE_TEMPLATE.format(image_id=image_id, caption=caption)


def format_caption_fallback(caption: str) -> str:
    """Build the plain-text placeholder for a figure that could not be cropped."""
    return CAPTION_FALLBACK_TEMPLATE.format(caption=caption)


def decide_cluster(
    cluster: Cluster,
    outcome: TagOutcome,
    image_id: Optional[str] = None
) -> List[TagDecision]:
    """
    Expand a cluster-level outcome into per-tag decisions.

    For a stored figure pass ``TagOutcome.KEPT_PRIMARY`` and the image id:
    the first tag becomes primary and the rest secondary. Any other outcome
    applies to every tag of the cluster.
    """
    tags = cluster.original_tags

    if outcome is TagOutcome.KEPT_PRIMARY:
        if not image_id:
            raise ValueError("A kept cluster needs an image id")
        decisions = [TagDecision(tags[0], TagOutcome.KEPT_PRIMARY, image_id)]
        decisions.extend(TagDecision(t, TagOutcome.KEPT_SECONDARY) for t in tags[1:])
        return decisions

    return [TagDecision(t, outcome) for t in tags]


def replacement_for(decision: TagDecision) -> str:
    """Text that replaces a tag under the given decision."""
    if decision.outcome is TagOutcome.KEPT_PRIMARY:
        return format_figure_reference(decision.image_id, clean_caption(decision.rect.desc))
    if decision.outcome is TagOutcome.CROP_FAILED:
        return format_caption_fallback(clean_caption(decision.rect.desc))
    return ''


def rewrite_tags(source_text: str, decisions: Iterable[TagDecision]) -> str:
    """
    Rewrite crop tags in ``source_text`` according to their decisions.

    Tags are matched by the span they were parsed from, so two tags with
    identical text are handled independently. Any crop tag without a
    decision is removed. A final pass strips tags that only form once their
    neighbours are gone, such as the outer half of a nested tag, so the
    output never contains crop tag syntax.

    Args:
        source_text: OCR text the decisions' rectangles were parsed from
        decisions: One decision per parsed tag

    Returns:
        New text; ``source_text`` is not modified
    """
    by_span: Dict[Tuple[int, int], TagDecision] = {}
    for decision in decisions:
        by_span[decision.rect.span] = decision

    pieces = []
    cursor = 0
    unmatched = 0

    for match in CROP_TAG_RE.finditer(source_text):
        pieces.append(source_text[cursor:match.start()])
        cursor = match.end()

        decision = by_span.get((match.start(), match.end()))
        if decision is None or decision.rect.full_tag != match.group(0):
            unmatched += 1
            continue

        pieces.append(replacement_for(decision))

    pieces.append(source_text[cursor:])

    if unmatched:
        logger.warning("Stripped %d crop tags without a decision", unmatched)

    rewritten = ''.join(pieces)
    cleaned = strip_crop_tags(rewritten)
    if cleaned != rewritten:
        logger.warning("Stripped crop tags left over after substitution")

    return cleaned
