"""Core package - Domain models, constants and exceptions."""

from .models import (
    Rect,
    ExpandedRect,
    Cluster,
    TagOutcome,
    TagDecision,
    StoredFigure,
    FigureExtractionResult,
    ServicePageResult,
)
from .constants import (
    CROP_TAG_PATTERN,
    FIG_CAPTURE_PATTERN,
    DEFAULT_CAPTION,
    DEFAULT_FIGURE_PARAMS,
    OCR_PROMPTS,
    DEFAULT_OCR_PARAMS,
)
from .exceptions import (
    FigureCaptureError,
    EmptyInputError,
    CropFailure,
    HashFailure,
)

__all__ = [
    'Rect',
    'ExpandedRect',
    'Cluster',
    'TagOutcome',
    'TagDecision',
    'StoredFigure',
    'FigureExtractionResult',
    'ServicePageResult',
    'CROP_TAG_PATTERN',
    'FIG_CAPTURE_PATTERN',
    'DEFAULT_CAPTION',
    'DEFAULT_FIGURE_PARAMS',
    'OCR_PROMPTS',
    'DEFAULT_OCR_PARAMS',
    'FigureCaptureError',
    'EmptyInputError',
    'CropFailure',
    'HashFailure',
]
