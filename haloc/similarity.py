"""
Distance between image hashes.

The similarity of two hashes is their Euclidean distance: 0 for
identical hashes, larger for less similar images. Comparing hashes of
different length is not an error that propagates; it yields the
INVALID_SIMILARITY sentinel, which callers drop.

Scoring one query against a whole table goes through a FAISS flat L2
index so the distances are computed in a single batch.
"""

import logging
from typing import Sequence

import faiss
import numpy as np

logger = logging.getLogger(__name__)

# Returned for comparisons that cannot be made (hash length mismatch)
INVALID_SIMILARITY = -1.0


def calc_similarity(hash_a: np.ndarray, hash_b: np.ndarray) -> float:
    """
    Euclidean distance between two hashes.

    Args:
        hash_a: First hash.
        hash_b: Second hash.

    Returns:
        Non-negative distance (the smaller, the more similar), or
        INVALID_SIMILARITY if the hashes differ in length.
    """
    a = np.asarray(hash_a, dtype=np.float64).ravel()
    b = np.asarray(hash_b, dtype=np.float64).ravel()
    if a.size != b.size:
        logger.error(
            f"The hashes have different sizes ({a.size} vs {b.size})"
        )
        return INVALID_SIMILARITY

    return float(np.sqrt(np.sum((a - b) ** 2)))


def is_valid_similarity(score: float) -> bool:
    return score >= 0.0


def calc_similarities(query_hash: np.ndarray,
                      hashes: Sequence[np.ndarray]) -> np.ndarray:
    """
    Distances from one query hash to many hashes in one batch.

    Hashes whose length differs from the query get INVALID_SIMILARITY;
    the others are scored through a flat L2 FAISS index.

    Args:
        query_hash: Hash to compare.
        hashes: Stored hashes, in any order.

    Returns:
        float64 array with one distance per stored hash, in input order.
    """
    query = np.asarray(query_hash, dtype=np.float32).ravel()
    scores = np.full(len(hashes), INVALID_SIMILARITY, dtype=np.float64)
    if len(hashes) == 0 or query.size == 0:
        return scores

    positions = []
    vectors = []
    for pos, h in enumerate(hashes):
        h = np.asarray(h, dtype=np.float32).ravel()
        if h.size != query.size:
            logger.error(
                f"The hashes have different sizes ({query.size} vs {h.size})"
            )
            continue
        positions.append(pos)
        vectors.append(h)

    if not vectors:
        return scores

    index = faiss.IndexFlatL2(query.size)
    index.add(np.ascontiguousarray(np.vstack(vectors)))
    squared, order = index.search(query.reshape(1, -1), len(vectors))

    # FAISS returns squared L2 sorted by distance; map back to input order
    for sq, idx in zip(squared[0], order[0]):
        if idx < 0:
            continue
        scores[positions[idx]] = float(np.sqrt(max(float(sq), 0.0)))

    return scores
