"""
SIFT keypoint detection and descriptor extraction.

This is the default descriptor source for the loop closure detector.
The hashing core only needs a float matrix with a fixed number of
columns, so any callable ``image -> (N, D) ndarray`` can replace it.

SIFT is asked for a few features less than the descriptor capacity of
the hash encoder: OpenCV may return slightly more keypoints than
``nfeatures`` when several share the same response.
"""

import os
import cv2
import numpy as np
import logging

from .preprocessing import prepare_for_detection, is_empty_image

logger = logging.getLogger(__name__)

# SIFT descriptor width
SIFT_DIM = 128

# How many features below the descriptor capacity SIFT is configured with
SIFT_FEATURE_MARGIN = int(os.environ.get("HALOC_SIFT_FEATURE_MARGIN", "5"))


class SiftExtractor:
    """
    Callable SIFT extractor bound to a descriptor capacity.

    The detector instance is created once and reused for every image of a
    session.
    """

    def __init__(self, max_descriptors: int,
                 feature_margin: int = SIFT_FEATURE_MARGIN):
        self.n_features = max(1, max_descriptors - feature_margin)
        self._sift = cv2.SIFT_create(nfeatures=self.n_features)

    def __call__(self, image_np: np.ndarray) -> np.ndarray:
        return extract_sift_descriptors(image_np, detector=self._sift)


def extract_sift_descriptors(image_np: np.ndarray,
                             n_features: int = 0,
                             detector=None) -> np.ndarray:
    """
    Extract SIFT descriptors from an image.

    Process:
        1. Convert to grayscale
        2. CLAHE equalization
        3. SIFT detectAndCompute

    Args:
        image_np: Grayscale, RGB or RGBA image.
        n_features: Maximum number of features (0 keeps them all).
            Ignored when ``detector`` is given.
        detector: Optional pre-built ``cv2.SIFT`` instance.

    Returns:
        float32 ndarray of shape (N, 128), or an empty array when the
        image is empty, has no keypoints, or extraction fails.
    """
    if is_empty_image(image_np):
        logger.error("Cannot extract descriptors from an empty image")
        return np.array([], dtype=np.float32)

    try:
        gray = prepare_for_detection(image_np)
        sift = detector if detector is not None else cv2.SIFT_create(nfeatures=n_features)
        _, descriptors = sift.detectAndCompute(gray, None)

        if descriptors is None:
            logger.debug("No SIFT keypoints found")
            return np.array([], dtype=np.float32)

        logger.debug(f"Extracted {len(descriptors)} SIFT descriptors")
        return descriptors.astype(np.float32)

    except (cv2.error, ValueError) as e:
        logger.error(f"SIFT extraction error: {e}")
        return np.array([], dtype=np.float32)
