# histoclass/base.py
# -----------------------------------------------------------------------------
# Common contract for every histogram classifier:
#
#   clf = SomeClassifier(feature_count=K, ...)
#   clf.learn({"cars": [hist, ...], "faces": [hist, ...]})
#   clf.classify(hist)  -> "cars"
#
# Subclasses implement `_fit(examples, class_names)` (returning the new model
# state) and `_classify_index(x)`.  Model state is only installed after `_fit`
# returns, so a failed `learn` leaves any previous model in place.
# -----------------------------------------------------------------------------

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from .dataset import Dataset, Histogram, LabeledExample, check_feature_count, check_histogram, to_labeled
from .errors import NotTrainedError


class HistogramClassifier(ABC):
    """
    Base class for classifiers over fixed-length count histograms.

    Parameters
    ----------
    feature_count : int
        Length of every histogram (vocabulary size).

    Attributes
    ----------
    class_names_ : Optional[List[str]]
        Class index -> class name, set by a successful `learn`.
    """

    def __init__(self, feature_count: int):
        self.feature_count = check_feature_count(feature_count)
        self.class_names_: Optional[List[str]] = None

    # ------------------------------- public API ---------------------------- #

    @property
    def is_trained(self) -> bool:
        return self.class_names_ is not None

    @property
    def class_count(self) -> int:
        return len(self.class_names_) if self.class_names_ is not None else 0

    def learn(self, dataset: Dataset) -> None:
        """
        Build a new model from {class name: histograms}, replacing any old one.
        """
        examples, class_names = to_labeled(dataset, self.feature_count)
        state = self._fit(examples, class_names)
        # install only once everything succeeded
        for name, value in state.items():
            setattr(self, name, value)
        self.class_names_ = class_names

    def classify(self, histogram: Histogram) -> str:
        """
        Predict the class name of a single histogram.
        """
        if not self.is_trained:
            raise NotTrainedError(f"{type(self).__name__} has not been trained; call learn() first.")
        x = check_histogram(histogram, self.feature_count)
        return self.class_names_[self._classify_index(x)]

    def classify_many(self, histograms: Iterable[Histogram]) -> List[str]:
        return [self.classify(h) for h in histograms]

    # ---------------------------- subclass hooks --------------------------- #

    @abstractmethod
    def _fit(self, examples: List[LabeledExample], class_names: List[str]) -> Dict[str, Any]:
        """Train on `examples`; return the fitted attributes to install."""

    @abstractmethod
    def _classify_index(self, x: np.ndarray) -> int:
        """Return the class index predicted for a validated histogram."""
