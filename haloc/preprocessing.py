"""
Image preprocessing ahead of descriptor extraction.

Brings frames from different cameras and pipelines into one consistent
format (uint8, single channel, equalized contrast) so the keypoint
detector sees comparable inputs across a whole mapping session.
"""

import os
import cv2
import numpy as np
import logging

logger = logging.getLogger(__name__)

# CLAHE parameters for contrast equalization before detection.
# Set HALOC_CLAHE_CLIP=0 to disable equalization entirely.
CLAHE_CLIP_LIMIT = float(os.environ.get("HALOC_CLAHE_CLIP", "2.0"))
CLAHE_TILE_GRID = int(os.environ.get("HALOC_CLAHE_TILES", "8"))


def is_empty_image(image_np) -> bool:
    """True when there are no pixels to work with."""
    return image_np is None or np.asarray(image_np).size == 0


def normalize_image(image_np: np.ndarray) -> np.ndarray:
    """Ensure image is uint8 format."""
    if image_np.dtype != np.uint8:
        if image_np.max() <= 1.0:
            image_np = (image_np * 255).astype(np.uint8)
        else:
            image_np = np.clip(image_np, 0, 255).astype(np.uint8)
    return image_np


def to_grayscale(image_np: np.ndarray) -> np.ndarray:
    """
    Convert an image to a single uint8 channel.

    Accepts grayscale (H, W), single-channel (H, W, 1), RGB (H, W, 3)
    and RGBA (H, W, 4) arrays.

    Args:
        image_np: Input image in any of the layouts above.

    Returns:
        (H, W) uint8 grayscale image.

    Raises:
        ValueError: If the array does not look like an image.
    """
    image_np = normalize_image(np.asarray(image_np))

    if image_np.ndim == 2:
        return image_np
    if image_np.ndim == 3 and image_np.shape[2] == 1:
        return image_np[:, :, 0]
    if image_np.ndim == 3 and image_np.shape[2] == 3:
        return cv2.cvtColor(image_np, cv2.COLOR_RGB2GRAY)
    if image_np.ndim == 3 and image_np.shape[2] == 4:
        return cv2.cvtColor(image_np, cv2.COLOR_RGBA2GRAY)

    raise ValueError(f"Unsupported image shape {image_np.shape}")


def equalize_contrast(gray: np.ndarray,
                      clip_limit: float = CLAHE_CLIP_LIMIT,
                      tile_grid: int = CLAHE_TILE_GRID) -> np.ndarray:
    """
    Apply CLAHE to a grayscale image.

    Local equalization keeps keypoint detection stable across changes in
    exposure between visits to the same place.
    """
    if clip_limit <= 0:
        return gray
    clahe = cv2.createCLAHE(clipLimit=clip_limit,
                            tileGridSize=(tile_grid, tile_grid))
    return clahe.apply(gray)


def prepare_for_detection(image_np: np.ndarray) -> np.ndarray:
    """Grayscale + CLAHE, the input format the SIFT extractor expects."""
    return equalize_contrast(to_grayscale(image_np))
