"""
haloc — Hash-based loop closure candidate detection.

Turns the variable-size descriptor set of an image into a fixed-length
hash by projecting it onto random orthonormal vectors, and retrieves the
previously seen images with the closest hashes.

Modules:
    engine          Main LoopClosureDetector class
    hashing         Descriptor set -> fixed-length hash
    projections     Near-orthonormal random projection basis
    similarity      Hash distance (pairwise and FAISS batched)
    candidates      Hash table and best-N selection
    features        SIFT descriptor extraction
    preprocessing   Grayscale conversion and contrast equalization
"""

from .candidates import CandidateIndex, select_best
from .engine import LoopClosureDetector
from .hashing import HashEncoder
from .projections import build_projection_basis
from .similarity import INVALID_SIMILARITY, calc_similarity

__version__ = "1.0.0"

__all__ = [
    "CandidateIndex",
    "HashEncoder",
    "INVALID_SIMILARITY",
    "LoopClosureDetector",
    "build_projection_basis",
    "calc_similarity",
    "select_best",
]
