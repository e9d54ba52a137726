"""Tests for the random projection basis."""

import logging

import numpy as np
import pytest

from haloc.projections import (
    build_projection_basis, orthogonality_error, unit_vector,
    validate_basis_shape, make_rng,
)


class ZeroGenerator(np.random.Generator):
    """Generator whose uniform draws are all zero."""

    def random(self, size=None, dtype=np.float64, out=None):
        return np.zeros(size, dtype=dtype)


class TestBuildProjectionBasis:
    """Tests for near-orthonormal basis construction."""

    def test_output_shape(self):
        basis = build_projection_basis(3, 100, seed=0)
        assert basis.shape == (3, 100)

    def test_rows_are_unit_length(self):
        basis = build_projection_basis(5, 100, seed=1)
        norms = np.linalg.norm(basis, axis=1)
        assert np.allclose(norms, 1.0, atol=1e-9)

    def test_rows_are_orthogonal(self):
        basis = build_projection_basis(10, 100, seed=2)
        gram = basis @ basis.T
        off_diagonal = gram[~np.eye(10, dtype=bool)]
        assert np.max(np.abs(off_diagonal)) < 1e-6

    def test_orthogonality_error_small(self):
        basis = build_projection_basis(8, 64, seed=3)
        assert orthogonality_error(basis) < 1e-6

    def test_single_projection(self):
        basis = build_projection_basis(1, 20, seed=4)
        assert basis.shape == (1, 20)
        assert np.isclose(np.linalg.norm(basis[0]), 1.0)

    def test_first_vector_non_negative(self):
        # Drawn from [0, 1) before normalization
        basis = build_projection_basis(3, 50, seed=5)
        assert np.all(basis[0] >= 0)

    def test_same_seed_same_basis(self):
        a = build_projection_basis(4, 60, seed=7)
        b = build_projection_basis(4, 60, seed=7)
        assert np.array_equal(a, b)

    def test_different_seed_different_basis(self):
        a = build_projection_basis(4, 60, seed=7)
        b = build_projection_basis(4, 60, seed=8)
        assert not np.allclose(a, b)

    def test_accepts_generator(self):
        basis = build_projection_basis(3, 30, seed=np.random.default_rng(9))
        assert basis.shape == (3, 30)

    def test_no_nan_or_inf(self):
        basis = build_projection_basis(6, 40, seed=10)
        assert not np.any(np.isnan(basis))
        assert not np.any(np.isinf(basis))

    def test_singular_system_degrades_with_warning(self, caplog):
        caplog.set_level(logging.WARNING, logger="haloc.projections")
        basis = build_projection_basis(3, 5, seed=ZeroGenerator(np.random.PCG64(0)))
        assert basis.shape == (3, 5)
        assert "Singular system" in caplog.text
        assert "zero-length vector" in caplog.text


class TestValidateBasisShape:
    """Tests for configuration checks."""

    def test_more_projections_than_length_raises(self):
        with pytest.raises(ValueError, match="must not exceed"):
            build_projection_basis(11, 10)

    def test_equal_sizes_allowed(self):
        validate_basis_shape(10, 10)

    def test_zero_projections_raises(self):
        with pytest.raises(ValueError):
            validate_basis_shape(0, 10)

    def test_zero_length_raises(self):
        with pytest.raises(ValueError):
            validate_basis_shape(1, 0)


class TestHelpers:
    """Tests for unit_vector and make_rng."""

    def test_unit_vector(self):
        v = unit_vector(np.array([3.0, 4.0]))
        assert np.allclose(v, [0.6, 0.8])

    def test_unit_vector_zero_passthrough(self):
        v = unit_vector(np.zeros(3))
        assert np.array_equal(v, np.zeros(3))

    def test_make_rng_returns_same_generator(self):
        gen = np.random.default_rng(0)
        assert make_rng(gen) is gen
