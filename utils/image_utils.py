"""
Image utilities for the figure capture workflow.

Handles image loading, dimension probing and margin-aware cropping.
"""
import base64
from io import BytesIO
from typing import Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from core.exceptions import CropFailure
from core.models import Rect
from utils.bbox_utils import padded_pixel_box

ImageSource = Union[bytes, str, Image.Image]


def image_file_to_bytes(image_path: str) -> bytes:
    """
    Load an image file, fix EXIF orientation and re-encode as PNG bytes.

    Args:
        image_path: Path to the image file

    Returns:
        PNG-encoded image bytes
    """
    with Image.open(image_path) as img:
        img = ImageOps.exif_transpose(img)

        if img.mode in ('RGBA', 'LA', 'P'):
            img = img.convert('RGB')

        buf = BytesIO()
        img.save(buf, format='PNG')
        return buf.getvalue()


def bytes_to_base64(data: bytes) -> str:
    """Encode raw bytes as a base64 string."""
    return base64.b64encode(data).decode()


def load_image(source: ImageSource) -> Image.Image:
    """
    Decode an image from raw bytes, a file path or an existing PIL image.

    The pixel data is loaded eagerly so decode errors surface here.
    """
    if isinstance(source, Image.Image):
        return source

    if isinstance(source, (bytes, bytearray)):
        img = Image.open(BytesIO(source))
    else:
        img = Image.open(source)

    img.load()
    return img


def get_image_dimensions(source: ImageSource) -> Tuple[int, int]:
    """
    Get image dimensions (width, height).

    Args:
        source: Raw image bytes, PIL Image or path to image file

    Returns:
        Tuple of (width, height)
    """
    if isinstance(source, Image.Image):
        return source.size

    if isinstance(source, (bytes, bytearray)):
        with Image.open(BytesIO(source)) as img:
            return img.size

    with Image.open(source) as img:
        return img.size


def get_mime_type(data: bytes, default: str = "image/png") -> str:
    """Detect the MIME type of encoded image bytes."""
    try:
        with Image.open(BytesIO(data)) as img:
            return Image.MIME.get(img.format, default)
    except (UnidentifiedImageError, OSError):
        return default


def encode_image(image: Image.Image, fmt: str = 'JPEG', quality: int = 90) -> bytes:
    """Encode a PIL image to bytes, converting to RGB for JPEG output."""
    if fmt.upper() in ('JPEG', 'JPG') and image.mode != 'RGB':
        image = image.convert('RGB')

    buf = BytesIO()
    if fmt.upper() in ('JPEG', 'JPG'):
        image.save(buf, format='JPEG', quality=quality)
    else:
        image.save(buf, format=fmt)
    return buf.getvalue()


def crop_figure(
    source: ImageSource,
    rect: Rect,
    margin_ratio: float = 0.10,
    min_margin_px: float = 24,
    max_margin_px: float = 120,
    quality: int = 90
) -> bytes:
    """
    Crop a normalized rectangle from an image with scale-aware margins.

    Args:
        source: Page image (bytes, path, or a pre-decoded PIL image)
        rect: Raw (un-expanded) cluster union on the 0-1000 grid
        quality: JPEG quality of the returned crop

    Returns:
        JPEG-encoded crop bytes

    Raises:
        CropFailure: If the image cannot be decoded or the box is empty
    """
    try:
        image = load_image(source)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise CropFailure(f"Could not decode page image: {e}") from e

    img_width, img_height = image.size
    x1, y1, x2, y2 = padded_pixel_box(
        rect, img_width, img_height,
        margin_ratio, min_margin_px, max_margin_px
    )

    box = (int(round(x1)), int(round(y1)), int(round(x2)), int(round(y2)))
    if box[2] <= box[0] or box[3] <= box[1]:
        raise CropFailure(f"Empty crop box {box} for image {img_width}x{img_height}")

    try:
        crop = image.crop(box)
        return encode_image(crop, fmt='JPEG', quality=quality)
    except (OSError, ValueError) as e:
        raise CropFailure(f"Could not crop region {box}: {e}") from e
