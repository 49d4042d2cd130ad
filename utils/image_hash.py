"""
Perceptual hashing for cropped figures.

Average hash (aHash): the crop is reduced to a small grayscale grid and each
cell contributes one bit, set when the cell is at least as bright as the grid
mean. It is a coarse structural fingerprint, not a cryptographic digest.
"""
import numpy as np
from PIL import Image, UnidentifiedImageError

from core.exceptions import HashFailure
from utils.image_utils import ImageSource, load_image

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def luminance_grid(source: ImageSource, grid_size: int = 16) -> np.ndarray:
    """
    Downscale an image to a ``grid_size`` x ``grid_size`` luminance grid.

    Raises:
        HashFailure: If the image cannot be decoded
    """
    try:
        image = load_image(source)
        small = image.convert('RGB').resize(
            (grid_size, grid_size),
            Image.Resampling.BILINEAR
        )
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise HashFailure(f"Could not decode image for hashing: {e}") from e

    pixels = np.asarray(small, dtype=np.float64)
    r, g, b = LUMA_WEIGHTS
    return pixels[..., 0] * r + pixels[..., 1] * g + pixels[..., 2] * b


def bits_to_hex(bits: np.ndarray) -> str:
    """Pack a flat boolean array into hex digits, 4 bits per digit, MSB first."""
    flat = [bool(b) for b in np.ravel(bits)]
    if len(flat) % 4:
        flat.extend([False] * (4 - len(flat) % 4))

    digits = []
    for i in range(0, len(flat), 4):
        value = (flat[i] << 3) | (flat[i + 1] << 2) | (flat[i + 2] << 1) | flat[i + 3]
        digits.append(format(value, 'x'))
    return ''.join(digits)


def compute_bitmap_hash(source: ImageSource, grid_size: int = 16) -> str:
    """
    Compute the average hash of an image.

    Args:
        source: Crop as encoded bytes, file path or PIL image
        grid_size: Side of the sampling grid (16 gives a 64-digit hex string)

    Returns:
        Lowercase hex string, grid read in raster order

    Raises:
        HashFailure: If the image cannot be decoded
    """
    grid = luminance_grid(source, grid_size)
    return bits_to_hex(grid >= grid.mean())


def hamming_distance(hash_a: str, hash_b: str) -> int:
    """Number of differing bits between two equal-length hex hashes."""
    if len(hash_a) != len(hash_b):
        raise ValueError(
            f"Hash lengths differ: {len(hash_a)} != {len(hash_b)}"
        )
    return bin(int(hash_a, 16) ^ int(hash_b, 16)).count('1')
