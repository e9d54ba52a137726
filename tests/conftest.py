"""Shared test fixtures for loop closure tests."""

import numpy as np
import cv2
import pytest


@pytest.fixture
def rng():
    """Seeded generator for reproducible descriptor data."""
    return np.random.default_rng(42)


@pytest.fixture
def descriptors(rng):
    """40 SIFT-like descriptors, 128 columns, values in [0, 1)."""
    return rng.random((40, 128)).astype(np.float32)


@pytest.fixture
def many_descriptors(rng):
    """More rows than the default descriptor capacity."""
    return rng.random((250, 128)).astype(np.float32)


@pytest.fixture
def textured_image():
    """Generate a 200x200 image with texture patterns (good for SIFT)."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 200
    # Checkerboard with a few blobs for strong keypoints
    for y in range(0, 200, 20):
        for x in range(0, 200, 20):
            if (x // 20 + y // 20) % 2 == 0:
                img[y:y+20, x:x+20] = [50, 50, 50]
    cv2.circle(img, (60, 140), 15, (230, 30, 30), -1)
    cv2.circle(img, (150, 50), 10, (30, 230, 30), -1)
    return img


@pytest.fixture
def noise_image():
    """Generate a 200x200 random noise image."""
    rng = np.random.RandomState(42)
    return rng.randint(0, 255, (200, 200, 3), dtype=np.uint8)


@pytest.fixture
def blank_image():
    """Uniform gray image, no keypoints at all."""
    return np.ones((200, 200, 3), dtype=np.uint8) * 128
