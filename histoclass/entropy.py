# histoclass/entropy.py
# -----------------------------------------------------------------------------
# Shannon entropy & information gain over class labels.
#
# Labels are integer class indices in [0, class_count).  A class with zero
# occurrences contributes exactly 0 to the entropy (0 * log2(0) := 0), and the
# entropy of an empty set is 0.
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np


# ----------------------------- utility functions ---------------------------- #

def _entropy_rows(counts: np.ndarray) -> np.ndarray:
    """
    Row-wise entropy of a (n_rows, class_count) matrix of class counts.
    Rows summing to zero get entropy 0.
    """
    counts = np.asarray(counts, dtype=np.float64)
    totals = counts.sum(axis=1, keepdims=True)
    p = counts / np.where(totals > 0, totals, 1.0)
    # Mask zero probabilities so log2(0) is never evaluated
    logp = np.log2(p, out=np.zeros_like(p), where=p > 0)
    return -(p * logp).sum(axis=1)


def class_counts(labels: np.ndarray, class_count: Optional[int] = None) -> np.ndarray:
    """Tally of each class index; sized to `class_count` when given."""
    labels = np.asarray(labels, dtype=int)
    return np.bincount(labels, minlength=class_count or 0)


def entropy(labels: np.ndarray, class_count: Optional[int] = None) -> float:
    """
    Shannon entropy (bits) of a label vector.
    """
    labels = np.asarray(labels, dtype=int)
    if labels.size == 0:
        return 0.0
    return float(_entropy_rows(class_counts(labels, class_count)[None, :])[0])


def information_gain(parent: np.ndarray, left: np.ndarray, right: np.ndarray,
                     class_count: Optional[int] = None) -> float:
    """
    Information gain = H(parent) - [ (nL/N) * H(left) + (nR/N) * H(right) ]
    """
    n = len(parent)
    if n == 0:
        return 0.0
    wL = len(left) / n
    wR = len(right) / n
    return float(entropy(parent, class_count)
                 - wL * entropy(left, class_count)
                 - wR * entropy(right, class_count))


def split_gains(column: np.ndarray, labels: np.ndarray, class_count: int,
                parent_entropy: Optional[float] = None) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Information gain of every candidate threshold for one feature column.

    Candidates are the distinct values of `column` in ascending order; a
    threshold t sends rows with value < t left and value >= t right.
    Uses cumulative class counts over the sorted column, so all thresholds
    cost one sort.

    Returns (thresholds, gains, n_left).  Candidates with an empty side
    (always the smallest value) have gain -inf.
    """
    column = np.asarray(column)
    labels = np.asarray(labels, dtype=int)
    n = column.size
    if n == 0:
        empty = np.zeros(0)
        return empty, empty, np.zeros(0, dtype=int)

    order = np.argsort(column, kind="stable")
    col_sorted = column[order]
    lab_sorted = labels[order]

    thresholds = np.unique(col_sorted)
    # rows strictly below each threshold
    n_left = np.searchsorted(col_sorted, thresholds, side="left")

    onehot = np.zeros((n, class_count), dtype=np.int64)
    onehot[np.arange(n), lab_sorted] = 1
    cum = np.vstack([np.zeros((1, class_count), dtype=np.int64), np.cumsum(onehot, axis=0)])

    left_counts = cum[n_left]
    right_counts = cum[n] - left_counts

    if parent_entropy is None:
        parent_entropy = float(_entropy_rows(cum[n][None, :])[0])

    wL = n_left / n
    gains = parent_entropy - wL * _entropy_rows(left_counts) - (1.0 - wL) * _entropy_rows(right_counts)
    gains[(n_left == 0) | (n_left == n)] = -np.inf
    return thresholds, gains, n_left
