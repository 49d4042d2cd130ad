"""
Exceptions raised by the figure capture workflow.
"""


class FigureCaptureError(Exception):
    """Base class for figure capture errors."""


class EmptyInputError(FigureCaptureError, ValueError):
    """Raised when a union is requested over zero rectangles."""


class CropFailure(FigureCaptureError):
    """Raised when a cluster cannot be cropped from the page image."""


class HashFailure(FigureCaptureError):
    """Raised when a perceptual hash cannot be computed for a crop."""
