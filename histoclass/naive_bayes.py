# histoclass/naive_bayes.py
# -----------------------------------------------------------------------------
# Laplace-smoothed Naive Bayes over count histograms.
#
# Learning only aggregates counts per class:
#   * document count             (number of histograms)
#   * summed count per feature
#   * total feature mass         (sum over all features)
# from which:
#   prior(c)         = documents(c) / documents(all)
#   likelihood(c, f) = (summed(c, f) + 1) / mass(c)
#
# Scoring multiplies the prior by  likelihood(c, f) * x[f]  for every feature
# with a non-zero count, i.e. repeated occurrences scale the score linearly
# instead of entering as an exponent.  The product is evaluated as a sum of
# logarithms so long histograms do not underflow; the argmax is unchanged.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from .base import HistogramClassifier
from .dataset import LabeledExample, to_arrays
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class NaiveBayesClassifier(HistogramClassifier):
    """
    Multinomial-style Naive Bayes with add-one smoothing.

    Attributes
    ----------
    document_counts_ : np.ndarray
        (class_count,) number of training histograms per class.
    feature_counts_ : np.ndarray
        (class_count, feature_count) summed counts per class and feature.
    feature_mass_ : np.ndarray
        (class_count,) total counts per class.
    priors_ : np.ndarray
        (class_count,) class priors, summing to 1.
    likelihoods_ : np.ndarray
        (class_count, feature_count) smoothed likelihoods, all > 0.
    """

    def __init__(self, feature_count: int):
        super().__init__(feature_count)
        self.document_counts_: Optional[np.ndarray] = None
        self.feature_counts_: Optional[np.ndarray] = None
        self.feature_mass_: Optional[np.ndarray] = None
        self.priors_: Optional[np.ndarray] = None
        self.likelihoods_: Optional[np.ndarray] = None

    # ------------------------------ training ------------------------------ #

    def _fit(self, examples: List[LabeledExample], class_names: List[str]) -> Dict[str, Any]:
        if not examples:
            raise ConfigurationError("Naive Bayes needs at least one training histogram.")

        X, y = to_arrays(examples, self.feature_count)
        class_count = len(class_names)

        document_counts = np.bincount(y, minlength=class_count)
        feature_counts = np.zeros((class_count, self.feature_count), dtype=np.int64)
        np.add.at(feature_counts, y, X)
        feature_mass = feature_counts.sum(axis=1)

        priors = document_counts / document_counts.sum()
        # a class without any counts keeps a denominator of 1 (entries stay finite, > 0)
        denom = np.maximum(feature_mass, 1).astype(np.float64)
        likelihoods = (feature_counts + 1) / denom[:, None]

        logger.info("naive bayes learned from %d examples, %d classes", y.size, class_count)
        return {
            "document_counts_": document_counts,
            "feature_counts_": feature_counts,
            "feature_mass_": feature_mass,
            "priors_": priors,
            "likelihoods_": likelihoods,
        }

    # ------------------------------ inference ----------------------------- #

    def log_scores(self, x: np.ndarray) -> np.ndarray:
        """
        Log of  prior(c) * prod_{x[f] != 0} likelihood(c, f) * x[f]  per class.
        Classes with a zero prior score -inf.
        """
        nz = np.flatnonzero(x)
        with np.errstate(divide="ignore"):
            log_prior = np.log(self.priors_)
        terms = np.log(self.likelihoods_[:, nz]) + np.log(x[nz].astype(np.float64))[None, :]
        return log_prior + terms.sum(axis=1)

    def _classify_index(self, x: np.ndarray) -> int:
        return int(np.argmax(self.log_scores(x)))
