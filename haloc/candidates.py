"""
In-memory table of image hashes and loop closure candidate selection.

The table maps image identifiers to hashes. Reprocessing an identifier
overwrites its hash. The table grows without bound unless a
``max_entries`` limit is set, in which case the oldest inserted entries
are evicted first.

The table has no internal lock. It belongs to a single owner (the loop
closure detector) that serializes access to it.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

import numpy as np

from .similarity import calc_similarities, is_valid_similarity

logger = logging.getLogger(__name__)


class CandidateIndex:
    """Image id -> hash table with best-N retrieval."""

    def __init__(self, max_entries: Optional[int] = None):
        """
        Args:
            max_entries: Optional bound on the number of stored hashes.
                None keeps every hash for the lifetime of the index.
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self._hashes: "OrderedDict[int, np.ndarray]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._hashes)

    def __contains__(self, image_id: int) -> bool:
        return image_id in self._hashes

    def ids(self) -> List[int]:
        return list(self._hashes)

    def get(self, image_id: int) -> Optional[np.ndarray]:
        return self._hashes.get(image_id)

    def upsert(self, image_id: int, image_hash: np.ndarray) -> None:
        """
        Store the hash of an image, replacing any previous one.

        An overwritten entry keeps its original insertion position for
        eviction purposes.
        """
        self._hashes[image_id] = np.asarray(image_hash, dtype=np.float32)

        if self.max_entries is not None:
            while len(self._hashes) > self.max_entries:
                evicted, _ = self._hashes.popitem(last=False)
                logger.info(f"Evicted image {evicted} from the hash table")

    def score_against(self,
                      query_hash: np.ndarray,
                      ignore: Optional[Iterable[int]] = ()) -> Dict[int, float]:
        """
        Distance from the query to every stored hash.

        Args:
            query_hash: Hash to compare.
            ignore: Image ids to leave out.

        Returns:
            Dict of image id -> distance. Ids in ``ignore`` and hashes that
            cannot be compared with the query are absent.
        """
        ignore = set(ignore or ())
        ids = [i for i in self.ids() if i not in ignore]
        if not ids:
            return {}

        scores = calc_similarities(query_hash, [self._hashes[i] for i in ids])
        similarities = {
            image_id: float(score)
            for image_id, score in zip(ids, scores)
            if is_valid_similarity(score)
        }

        dropped = len(ids) - len(similarities)
        if dropped:
            logger.warning(f"Discarded {dropped} hashes that could not be compared")
        return similarities

    def query(self,
              query_hash: np.ndarray,
              num_candidates: int,
              ignore: Optional[Iterable[int]] = ()) -> List[int]:
        """Score the query against the table and return the best ids."""
        return select_best(self.score_against(query_hash, ignore), num_candidates)


def select_best(similarities: Dict[int, float], num_candidates: int) -> List[int]:
    """
    Extract the ``num_candidates`` ids with the smallest scores.

    Repeatedly takes the entry with the smallest score out of
    ``similarities`` until enough ids were taken or none remain. Emitted
    entries are removed from the dict. Equal scores go to the lowest id
    first.

    Args:
        similarities: Dict of image id -> distance. Consumed.
        num_candidates: Maximum number of ids to return.

    Returns:
        Up to ``num_candidates`` ids, most similar first.
    """
    candidates = []
    while len(candidates) < num_candidates and similarities:
        best = min(similarities, key=lambda k: (similarities[k], k))
        candidates.append(best)
        del similarities[best]
    return candidates
