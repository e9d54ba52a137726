"""
Fixed-length image hashes from variable-size descriptor sets.

An image yields any number of descriptor rows, each ``D`` values wide.
Projecting the rows onto ``P`` random orthonormal vectors collapses them
into ``P x D`` values, no matter how many rows there were:

    hash[i * D + n] = mean_m( (basis[i, m] * desc[m, n] + 1) / 2 )

The ``(x + 1) / 2`` term maps a projected value from [-1, 1] into [0, 1]
before averaging.
"""

import os
import logging
import threading
from typing import Optional

import numpy as np

from .projections import build_projection_basis, make_rng, validate_basis_shape, SeedLike

logger = logging.getLogger(__name__)

# Defaults used when the encoder is built without explicit sizes
DEFAULT_NUM_PROJECTIONS = int(os.environ.get("HALOC_NUM_PROJECTIONS", "3"))
DEFAULT_MAX_DESCRIPTORS = int(os.environ.get("HALOC_MAX_DESCRIPTORS", "100"))


class HashEncoder:
    """
    Projects descriptor matrices into fixed-length hashes.

    The projection basis is built on the first call to calc_hash() and
    never changes afterwards, so every hash produced by one encoder lives
    in the same space and can be compared with the others.
    """

    def __init__(self,
                 num_projections: int = DEFAULT_NUM_PROJECTIONS,
                 max_descriptors: int = DEFAULT_MAX_DESCRIPTORS,
                 seed: SeedLike = None):
        """
        Args:
            num_projections: Number of projection vectors (hash granularity).
            max_descriptors: Maximum descriptor rows used per image; also
                the length of every projection vector.
            seed: Int seed or numpy Generator shared by basis construction
                and row subsampling. None gives non-reproducible hashes.

        Raises:
            ValueError: If num_projections exceeds max_descriptors or
                either is below 1.
        """
        validate_basis_shape(num_projections, max_descriptors)
        self.num_projections = num_projections
        self.max_descriptors = max_descriptors
        self._rng = make_rng(seed)
        self._basis: Optional[np.ndarray] = None
        self._init_lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._basis is not None

    @property
    def basis(self) -> np.ndarray:
        """The projection basis, built on first access. Read-only."""
        if self._basis is None:
            with self._init_lock:
                if self._basis is None:
                    basis = build_projection_basis(
                        self.num_projections, self.max_descriptors, self._rng
                    )
                    basis.setflags(write=False)
                    self._basis = basis
        return self._basis

    def hash_length(self, descriptor_dim: int) -> int:
        return self.num_projections * descriptor_dim

    def calc_hash(self, descriptors: np.ndarray) -> np.ndarray:
        """
        Compute the hash of one image.

        Args:
            descriptors: (N, D) float descriptor matrix. A 1-D array is
                treated as a single descriptor.

        Returns:
            float32 array of length P * D, or an empty array when there
            are no descriptors.
        """
        basis = self.basis

        if descriptors is None:
            logger.error("Descriptor matrix is empty")
            return np.array([], dtype=np.float32)

        desc = np.asarray(descriptors, dtype=np.float64)
        if desc.ndim == 1 and desc.size > 0:
            desc = desc.reshape(1, -1)

        if desc.ndim != 2 or desc.shape[0] == 0 or desc.shape[1] == 0:
            logger.error(f"Descriptor matrix is empty (shape {desc.shape})")
            return np.array([], dtype=np.float32)

        if desc.shape[0] > self.max_descriptors:
            desc = self._subsample(desc)

        # Row bound applies to the summation as well
        used_rows = min(desc.shape[0], self.max_descriptors)
        weights = basis[:, :used_rows]

        # (P, rows) @ (rows, D) gives the summed projections; adding
        # used_rows accounts for the +1 of every term
        projected = (weights @ desc[:used_rows] + used_rows) / 2.0
        hash_matrix = projected / desc.shape[0]

        # Row-major flattening: position i * D + n
        return hash_matrix.astype(np.float32).reshape(self.hash_length(desc.shape[1]))

    def _subsample(self, desc: np.ndarray) -> np.ndarray:
        """Keep a random subset of max_descriptors rows, without replacement."""
        rows = desc.shape[0]
        logger.debug(
            f"Subsampling {rows} descriptors down to {self.max_descriptors}"
        )
        keep = self._rng.permutation(rows)[:self.max_descriptors]
        return desc[keep]
