from __future__ import annotations

from typing import Any, Dict, Sequence, Tuple

import numpy as np


def _as_vector(t: Any) -> np.ndarray:
    if isinstance(t, (bytes, bytearray, memoryview)):
        t = np.frombuffer(t, dtype=np.uint8)
    return np.asarray(t, dtype=np.float64).reshape(-1)


def score(t1: Any, t2: Any) -> float:
    """
    Pearson correlation of two templates mapped from [-1, 1] to [0, 1].

    Unequal lengths and zero-variance templates (e.g. a blank frame) score 0.
    """
    a = _as_vector(t1)
    b = _as_vector(t2)
    if a.shape[0] != b.shape[0] or a.size == 0:
        return 0.0

    da = a - a.mean()
    db = b - b.mean()
    den = float(np.sqrt(np.dot(da, da) * np.dot(db, db)))
    if den == 0.0:
        return 0.0

    r = float(np.dot(da, db)) / den
    return min(1.0, max(0.0, (r + 1.0) / 2.0))


def batch_score(
    live: Sequence[Any],
    stored: Sequence[Any],
    live_samples: int = 5,
    stored_samples: int = 10,
) -> float:
    """
    Mean over subsampled live templates of their best score against the
    subsampled stored templates.

    Not symmetric: the live batch is strided by len/live_samples and the stored
    batch by len/stored_samples, so always pass the fresh capture first.
    """
    live_step = max(1, len(live) // max(1, int(live_samples)))
    stored_step = max(1, len(stored) // max(1, int(stored_samples)))
    stored_subset = stored[::stored_step]

    best_scores = []
    for t1 in live[::live_step]:
        best = 0.0
        for t2 in stored_subset:
            s = score(t1, t2)
            if s > best:
                best = s
        best_scores.append(best)

    if not best_scores:
        return 0.0
    return float(sum(best_scores) / len(best_scores))


class SimilarityMatcher:
    def __init__(self, threshold: float = 0.65, live_samples: int = 5, stored_samples: int = 10):
        self.threshold = float(threshold)
        self.live_samples = int(live_samples)
        self.stored_samples = int(stored_samples)

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "SimilarityMatcher":
        return cls(
            threshold=cfg["acceptance_threshold"],
            live_samples=cfg["live_samples"],
            stored_samples=cfg["stored_samples"],
        )

    def batch_score(self, live: Sequence[Any], stored: Sequence[Any]) -> float:
        return batch_score(live, stored, self.live_samples, self.stored_samples)

    def is_match(self, similarity: float) -> bool:
        return similarity >= self.threshold

    def evaluate(self, live: Sequence[Any], stored: Sequence[Any]) -> Tuple[bool, float]:
        similarity = self.batch_score(live, stored)
        return self.is_match(similarity), similarity
