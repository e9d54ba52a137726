"""
Loop closure candidate detection.

Orchestrates the per-image pipeline:
    1. SIFT descriptor extraction (or caller-provided descriptors)
    2. Hash computation against the shared projection basis
    3. Storage of the hash under the image id
    4. Distance scoring against every other stored hash
    5. Best-N candidate selection

Recoverable problems (empty image, empty hash, no candidates) are logged
and reported as None. Candidates are only the most similar images by
hash distance; confirming them geometrically is up to the caller.
"""

import logging
import threading
from typing import Callable, Iterable, List, Optional

import numpy as np

from .candidates import CandidateIndex
from .features import SiftExtractor
from .hashing import HashEncoder, DEFAULT_NUM_PROJECTIONS, DEFAULT_MAX_DESCRIPTORS
from .preprocessing import is_empty_image
from .projections import SeedLike

logger = logging.getLogger(__name__)

DescriptorExtractor = Callable[[np.ndarray], np.ndarray]


class LoopClosureDetector:
    """
    Hash-based loop closure candidate detector.

    Keeps the hash of every processed image in memory and, for each new
    image, returns the ids of the previously seen images whose hashes are
    closest.
    """

    def __init__(self,
                 num_projections: int = DEFAULT_NUM_PROJECTIONS,
                 max_descriptors: int = DEFAULT_MAX_DESCRIPTORS,
                 seed: SeedLike = None,
                 max_entries: Optional[int] = None,
                 extractor: Optional[DescriptorExtractor] = None):
        """
        Args:
            num_projections: Number of projections per hash.
            max_descriptors: Maximum descriptors used per image.
            seed: Int seed or numpy Generator for reproducible hashes.
            max_entries: Optional bound on stored hashes (oldest evicted).
            extractor: Callable image -> (N, D) descriptors. Defaults to
                SIFT configured for max_descriptors.

        Raises:
            ValueError: On an infeasible projection configuration.
        """
        self.encoder = HashEncoder(num_projections, max_descriptors, seed)
        self.index = CandidateIndex(max_entries)
        self.extractor = extractor or SiftExtractor(max_descriptors)
        self._lock = threading.Lock()

    def process(self,
                image_id: int,
                image: np.ndarray,
                num_candidates: int,
                ignore: Optional[Iterable[int]] = ()) -> Optional[List[int]]:
        """
        Process an image and get its loop closure candidates.

        Args:
            image_id: Unique image identifier.
            image: Image array (grayscale, RGB or RGBA).
            num_candidates: Number of candidates to return.
            ignore: Image ids that must not be returned.

        Returns:
            Candidate ids, most similar first, or None when the image is
            empty, its hash could not be computed, or nothing matched.
        """
        if is_empty_image(image):
            logger.error("The image is empty")
            return None

        try:
            descriptors = self.extractor(image)
        except Exception as e:
            logger.error(f"Descriptor extraction failed for image {image_id}: {e}")
            return None

        return self.process_descriptors(image_id, descriptors, num_candidates, ignore)

    def process_descriptors(self,
                            image_id: int,
                            descriptors: np.ndarray,
                            num_candidates: int,
                            ignore: Optional[Iterable[int]] = ()) -> Optional[List[int]]:
        """
        Same as process(), for callers that extract descriptors themselves.

        All descriptor matrices given to one detector must have the same
        number of columns.
        """
        if descriptors is None:
            logger.error(f"No descriptors for image {image_id}")
            return None

        try:
            descriptors = np.asarray(descriptors, dtype=np.float64)
        except (TypeError, ValueError) as e:
            logger.error(f"Invalid descriptors for image {image_id}: {e}")
            return None

        if descriptors.size == 0:
            logger.error(f"No descriptors for image {image_id}")
            return None

        with self._lock:
            image_hash = self.encoder.calc_hash(descriptors)
            if image_hash.size == 0:
                logger.error(f"The hash of image {image_id} is empty")
                return None

            self.index.upsert(image_id, image_hash)

            # An image is never its own candidate
            excluded = set(ignore or ())
            excluded.add(image_id)
            candidates = self.index.query(image_hash, num_candidates, excluded)

        if not candidates:
            logger.warning(f"No candidates found for image {image_id}")
            return None

        logger.debug(f"Image {image_id}: candidates {candidates}")
        return candidates
