# histoclass/dataset.py
# -----------------------------------------------------------------------------
# Dataset adapter shared by every classifier.
#
# A dataset is a mapping  class name -> sequence of histograms.  Learning
# turns it into:
#   * a class table   (class index -> name, in mapping-iteration order)
#   * a flat list of  LabeledExample(histogram, class_index)
#
# Histograms are fixed-length vectors of non-negative integer counts (e.g.
# visual-word occurrences).  Every histogram in a run must have the feature
# count the classifier was constructed with.
#
# Also holds a small CSV loader (pandas) used by the pipeline / CLI.
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .errors import ConfigurationError, DimensionError

Histogram = Sequence[int]
Dataset = Mapping[str, Sequence[Histogram]]


# ------------------------------- data classes -------------------------------- #

@dataclass(frozen=True)
class LabeledExample:
    histogram: Tuple[int, ...]   # read-only copy of the counts
    class_index: int             # position of the class name in the class table


# ------------------------------- validation ---------------------------------- #

def check_feature_count(feature_count: int) -> int:
    """Validate a constructor feature count; returns it as int."""
    feature_count = int(feature_count)
    if feature_count <= 0:
        raise ConfigurationError(f"feature_count must be positive, got {feature_count}.")
    return feature_count


def check_histogram(histogram: Histogram, feature_count: int) -> np.ndarray:
    """
    Return `histogram` as a 1-D int64 array after checking its length.

    Raises DimensionError on a length mismatch or non-1-D input, and
    ValueError on negative or non-integral counts (2.0 is accepted, 2.5 is not).
    """
    arr = np.asarray(histogram)
    if arr.ndim != 1 or arr.shape[0] != feature_count:
        raise DimensionError(
            f"Histogram must be 1-D with {feature_count} features, got shape {arr.shape}."
        )
    if arr.dtype.kind not in "iub":
        as_float = arr.astype(np.float64)
        if not (np.all(np.isfinite(as_float)) and np.array_equal(as_float, np.floor(as_float))):
            raise ValueError(f"Histogram counts must be integers, got {arr.tolist()}.")
        arr = as_float
    arr = arr.astype(np.int64, copy=False)
    if arr.size and arr.min() < 0:
        raise ValueError("Histogram counts must be non-negative.")
    return arr


# ------------------------------- conversion ---------------------------------- #

def to_labeled(dataset: Dataset, feature_count: int) -> Tuple[List[LabeledExample], List[str]]:
    """
    Flatten a {class name: histograms} mapping.

    Returns (examples, class_names) where class_names[i] is the name of class
    index i.  Class indices follow the mapping's iteration order.
    """
    examples: List[LabeledExample] = []
    class_names: List[str] = []
    for class_index, (name, histograms) in enumerate(dataset.items()):
        class_names.append(str(name))
        for hist in histograms:
            arr = check_histogram(hist, feature_count)
            examples.append(LabeledExample(histogram=tuple(int(v) for v in arr), class_index=class_index))
    return examples, class_names


def to_arrays(examples: Sequence[LabeledExample], feature_count: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Stack examples into X: (n_examples, feature_count) int64, y: (n_examples,) int.
    """
    if not examples:
        return np.zeros((0, feature_count), dtype=np.int64), np.zeros(0, dtype=int)
    X = np.array([ex.histogram for ex in examples], dtype=np.int64)
    y = np.array([ex.class_index for ex in examples], dtype=int)
    return X, y


# ------------------------------- CSV loading --------------------------------- #

def load_csv(path: Union[str, Path], label_col: str = "label") -> Dict[str, List[List[int]]]:
    """
    Load a histogram dataset from CSV.

    One row per histogram: a label column plus one integer column per feature
    (feature order = column order in the file).  Classes are returned in
    order of first appearance.  Empty, non-numeric or fractional count cells
    raise ConfigurationError.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset file not found: {path}")

    df = pd.read_csv(path)
    if label_col not in df.columns:
        raise ConfigurationError(f"Missing label column '{label_col}' in {path}.")

    feature_cols = [c for c in df.columns if c != label_col]
    if not feature_cols:
        raise ConfigurationError(f"No feature columns in {path}.")

    numeric = df[feature_cols].apply(pd.to_numeric, errors="coerce")
    bad = numeric.isna() | (numeric % 1 != 0)
    if bad.to_numpy().any():
        # header is line 1
        lines = [int(i) + 2 for i in df.index[bad.any(axis=1)]]
        raise ConfigurationError(f"Missing or non-integer counts in {path} on line(s) {lines}.")
    counts = numeric.astype(np.int64)
    labels = df[label_col].astype(str)

    data: Dict[str, List[List[int]]] = {}
    for label, row in zip(labels, counts.to_numpy()):
        data.setdefault(label, []).append([int(v) for v in row])
    return data
