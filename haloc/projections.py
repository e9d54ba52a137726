"""
Random near-orthonormal projection vectors for image hashing.

Each vector is as long as the descriptor capacity of the encoder: entry
``m`` of a vector weights descriptor row ``m`` during projection. The
vectors are mutually orthogonal so that every projection captures a
different mix of the descriptor rows.

Orthogonality is enforced incrementally. Vector ``i`` is drawn at random
except for its last ``i`` coefficients, which are solved from an
``i x i`` linear system so the dot product with every previously
accepted vector is zero:

    free . prior_k[:M - i] + x . prior_k[M - i:] = 0    for every k < i

Every accepted vector consumes one degree of freedom, so at most ``M``
vectors of length ``M`` can be built.
"""

import logging
from typing import Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

SeedLike = Optional[Union[int, np.random.Generator]]


def make_rng(seed: SeedLike = None) -> np.random.Generator:
    """Return a Generator; unseeded generators draw fresh OS entropy."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def validate_basis_shape(num_projections: int, vector_length: int) -> None:
    """
    Reject configurations the orthogonalization cannot satisfy.

    Raises:
        ValueError: If either size is below 1, or there are more
            projections than coefficients per vector.
    """
    if num_projections < 1:
        raise ValueError(f"num_projections must be >= 1, got {num_projections}")
    if vector_length < 1:
        raise ValueError(f"vector_length must be >= 1, got {vector_length}")
    if num_projections > vector_length:
        raise ValueError(
            f"Cannot build {num_projections} orthogonal projections of "
            f"length {vector_length}: num_projections must not exceed "
            f"the maximum number of descriptors"
        )


def unit_vector(x: np.ndarray) -> np.ndarray:
    """Scale ``x`` to unit Euclidean length (zero vectors are returned as is)."""
    norm = np.linalg.norm(x)
    if norm == 0:
        logger.warning("Cannot normalize a zero-length vector")
        return x
    return x / norm


def build_projection_basis(num_projections: int,
                           vector_length: int,
                           seed: SeedLike = None) -> np.ndarray:
    """
    Build ``num_projections`` near-orthonormal random vectors.

    Args:
        num_projections: Number of vectors P.
        vector_length: Length M of each vector (the descriptor capacity).
        seed: Int seed or numpy Generator. None draws fresh entropy, so
            the basis differs between runs.

    Returns:
        float64 ndarray of shape (P, M). Rows have unit norm and are
        pairwise orthogonal within floating point tolerance. If one of the
        intermediate systems is singular the least-squares solution is
        used, and orthogonality of that row is not guaranteed.

    Raises:
        ValueError: On an infeasible shape (see validate_basis_shape).
    """
    validate_basis_shape(num_projections, vector_length)
    rng = make_rng(seed)

    basis = np.empty((num_projections, vector_length), dtype=np.float64)
    basis[0] = unit_vector(rng.random(vector_length))

    for i in range(1, num_projections):
        free_len = vector_length - i
        free = rng.random(free_len)

        accepted = basis[:i]
        # Right-hand side: minus the dot product of the free part with the
        # matching prefix of every accepted vector
        b = -(accepted[:, :free_len] @ free)
        # Unknowns multiply the last i entries of every accepted vector
        a = accepted[:, free_len:]

        x, _, rank, _ = np.linalg.lstsq(a, b, rcond=None)
        if rank < i:
            logger.warning(
                f"Singular system while building projection {i} "
                f"(rank {rank} < {i}), vector may not be orthogonal"
            )

        basis[i] = unit_vector(np.concatenate([free, x]))

    logger.info(
        f"Built projection basis: {num_projections} vectors of length "
        f"{vector_length}"
    )
    return basis


def orthogonality_error(basis: np.ndarray) -> float:
    """
    Largest deviation of ``basis @ basis.T`` from the identity.

    Covers both properties at once: diagonal entries measure the unit
    norm, off-diagonal entries the pairwise dot products.
    """
    gram = basis @ basis.T
    return float(np.max(np.abs(gram - np.eye(len(basis)))))
