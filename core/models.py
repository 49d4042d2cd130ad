"""
Core domain models for the figure capture workflow.

These are pure data structures without business logic.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .constants import DEFAULT_CAPTION


@dataclass
class Rect:
    """
    A rectangle on the OCR model's normalized 0-1000 grid.

    ``full_tag`` and the ``start``/``end`` span locate the tag this rectangle
    was parsed from in the source text. Coordinates are not validated: an
    inverted rectangle simply has zero area.
    """
    ymin: float
    xmin: float
    ymax: float
    xmax: float
    full_tag: str = ""
    desc: str = DEFAULT_CAPTION
    start: int = -1
    end: int = -1

    @property
    def width(self) -> float:
        """Width in normalized units (may be negative for inverted input)."""
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        """Height in normalized units (may be negative for inverted input)."""
        return self.ymax - self.ymin

    @property
    def area(self) -> float:
        """Area in normalized units, clamped so it is never negative."""
        return max(0.0, self.width) * max(0.0, self.height)

    @property
    def center(self) -> tuple:
        return ((self.xmin + self.xmax) / 2, (self.ymin + self.ymax) / 2)

    @property
    def span(self) -> tuple:
        return (self.start, self.end)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'ymin': self.ymin,
            'xmin': self.xmin,
            'ymax': self.ymax,
            'xmax': self.xmax,
            'desc': self.desc,
            'full_tag': self.full_tag,
        }


@dataclass
class ExpandedRect(Rect):
    """Padded "visual" footprint of a tag, used only for clustering."""
    original: Optional[Rect] = None


@dataclass
class Cluster:
    """A group of tags believed to depict the same figure."""
    members: List[ExpandedRect]
    visual_union: Rect
    union: Rect

    @property
    def original_tags(self) -> List[Rect]:
        """Un-expanded tags in the order they joined the cluster."""
        return [m.original if m.original is not None else m for m in self.members]

    def __len__(self) -> int:
        return len(self.members)


class TagOutcome(str, Enum):
    """Terminal state of a parsed tag."""
    SIZE_FILTERED = 'size_filtered'
    NMS_REMOVED = 'nms_removed'
    HASH_DUP = 'hash_dup'
    CROP_FAILED = 'crop_failed'
    KEPT_PRIMARY = 'kept_primary'
    KEPT_SECONDARY = 'kept_secondary'

    @property
    def is_discarded(self) -> bool:
        return self not in (TagOutcome.KEPT_PRIMARY, TagOutcome.KEPT_SECONDARY)


@dataclass
class TagDecision:
    """What the rewriter should do with one parsed tag."""
    rect: Rect
    outcome: TagOutcome
    image_id: Optional[str] = None


@dataclass
class StoredFigure:
    """A cropped figure that was written to the blob store."""
    image_id: str
    caption: str
    width: int
    height: int
    phash: Optional[str] = None
    mime_type: str = "image/jpeg"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'image_id': self.image_id,
            'caption': self.caption,
            'width': self.width,
            'height': self.height,
            'phash': self.phash,
            'mime_type': self.mime_type,
        }


@dataclass
class FigureExtractionResult:
    """Output of one figure pipeline run over one OCR response."""
    text: str
    figures: List[StoredFigure] = field(default_factory=list)
    decisions: List[TagDecision] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)


@dataclass
class ServicePageResult:
    """Result from processing a single page with OCR."""
    page_num: int
    markdown: str
    figures: List[StoredFigure] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
