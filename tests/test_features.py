"""Tests for preprocessing and SIFT descriptor extraction."""

import numpy as np
import pytest

from haloc.features import extract_sift_descriptors, SiftExtractor, SIFT_DIM
from haloc.preprocessing import (
    normalize_image, to_grayscale, equalize_contrast, is_empty_image,
)


class TestPreprocessing:
    """Tests for image normalization helpers."""

    def test_float_image_scaled(self):
        img = np.full((4, 4), 0.5, dtype=np.float32)
        out = normalize_image(img)
        assert out.dtype == np.uint8
        assert out[0, 0] == 127

    def test_rgb_to_gray(self, textured_image):
        gray = to_grayscale(textured_image)
        assert gray.shape == (200, 200)

    def test_gray_passthrough(self):
        gray = np.ones((20, 30), dtype=np.uint8)
        assert to_grayscale(gray).shape == (20, 30)

    def test_rgba_to_gray(self):
        rgba = np.ones((20, 20, 4), dtype=np.uint8) * 100
        assert to_grayscale(rgba).shape == (20, 20)

    def test_unsupported_shape_raises(self):
        with pytest.raises(ValueError, match="Unsupported"):
            to_grayscale(np.ones((4, 4, 2), dtype=np.uint8))

    def test_clahe_disabled(self):
        gray = np.arange(100, dtype=np.uint8).reshape(10, 10)
        assert np.array_equal(equalize_contrast(gray, clip_limit=0), gray)

    def test_empty_detection(self):
        assert is_empty_image(None)
        assert is_empty_image(np.array([]))
        assert not is_empty_image(np.zeros((2, 2)))


class TestExtractSiftDescriptors:
    """Tests for SIFT extraction."""

    def test_output_width(self, textured_image):
        desc = extract_sift_descriptors(textured_image)
        assert desc.ndim == 2
        assert desc.shape[1] == SIFT_DIM

    def test_output_dtype(self, textured_image):
        desc = extract_sift_descriptors(textured_image)
        assert desc.dtype == np.float32

    def test_feature_limit(self, noise_image):
        desc = extract_sift_descriptors(noise_image, n_features=20)
        # SIFT may keep a few extra keypoints with equal response
        assert 0 < len(desc) <= 25

    def test_blank_image_empty(self, blank_image):
        assert extract_sift_descriptors(blank_image).size == 0

    def test_empty_image_empty(self):
        assert extract_sift_descriptors(np.array([])).size == 0

    def test_unsupported_image_empty(self):
        assert extract_sift_descriptors(np.ones((4, 4, 2), dtype=np.uint8)).size == 0


class TestSiftExtractor:
    """Tests for the callable extractor."""

    def test_feature_margin(self):
        assert SiftExtractor(100).n_features == 95

    def test_minimum_one_feature(self):
        assert SiftExtractor(3).n_features == 1

    def test_callable(self, noise_image):
        desc = SiftExtractor(50)(noise_image)
        assert desc.shape[1] == SIFT_DIM
        assert len(desc) <= 50
