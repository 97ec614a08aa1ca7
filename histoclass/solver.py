# histoclass/solver.py
# -----------------------------------------------------------------------------
# Kernel-SVM solver capability used by the SVM classifier.
#
# The classifier never talks to an optimizer directly; it goes through an
# object exposing
#
#   train(problem, params)               -> model
#   predict(model, vector)               -> float label (0.0 / 1.0)
#   cross_validate(problem, params, k)   -> per-example predicted labels
#
# `LibSVMSolver` implements it on top of scikit-learn's libsvm-backed SVC.
# Tests can inject any object with the same three methods.
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

import numpy as np
from scipy.sparse import csr_matrix
from sklearn.model_selection import StratifiedKFold, cross_val_predict
from sklearn.svm import SVC

from .errors import ConfigurationError


# ------------------------------- data classes -------------------------------- #

@dataclass(frozen=True)
class SVMParameters:
    """
    C-SVC settings.  gamma == 0 means 1 / n_features (libsvm convention).
    """
    C: float = 128.0
    gamma: float = 0.0
    kernel: str = "rbf"
    degree: int = 3
    coef0: float = 0.0
    cache_size: float = 100.0
    tol: float = 1e-3
    shrinking: bool = False
    probability: bool = False


@dataclass(frozen=True, eq=False)
class SVMProblem:
    """
    Labeled sparse vectors: labels[i] in {0.0, 1.0} for row i of `vectors`.
    """
    labels: np.ndarray
    vectors: csr_matrix

    @property
    def size(self) -> int:
        return int(self.labels.shape[0])

    @property
    def n_features(self) -> int:
        return int(self.vectors.shape[1])

    def subset(self, indices: np.ndarray) -> "SVMProblem":
        indices = np.asarray(indices, dtype=int)
        return SVMProblem(labels=self.labels[indices], vectors=self.vectors[indices])

    def class_counts(self) -> np.ndarray:
        return np.bincount(self.labels.astype(int), minlength=2)


# ------------------------------- capability ---------------------------------- #

@runtime_checkable
class SVMSolver(Protocol):
    """Numerical optimizer used by SVMClassifier."""

    def train(self, problem: SVMProblem, params: SVMParameters) -> Any:
        """Fit a model on the whole problem."""

    def predict(self, model: Any, vector: csr_matrix) -> float:
        """Predicted label for a single (1, n_features) row."""

    def cross_validate(self, problem: SVMProblem, params: SVMParameters, folds: int) -> np.ndarray:
        """Out-of-fold predicted label for every example of the problem."""


# ------------------------------- libsvm adapter ------------------------------ #

class LibSVMSolver:
    """
    SVMSolver backed by sklearn.svm.SVC.

    Parameters
    ----------
    random_state : Optional[int]
        Seed for the cross-validation fold shuffle.
    """

    def __init__(self, random_state: Optional[int] = None):
        self.random_state = random_state

    def _estimator(self, params: SVMParameters) -> SVC:
        return SVC(
            C=params.C,
            kernel=params.kernel,
            degree=params.degree,
            gamma=params.gamma if params.gamma > 0 else "auto",
            coef0=params.coef0,
            shrinking=params.shrinking,
            probability=params.probability,
            tol=params.tol,
            cache_size=params.cache_size,
        )

    def train(self, problem: SVMProblem, params: SVMParameters) -> SVC:
        model = self._estimator(params)
        model.fit(problem.vectors, problem.labels)
        return model

    def predict(self, model: SVC, vector: csr_matrix) -> float:
        return float(model.predict(vector)[0])

    def cross_validate(self, problem: SVMProblem, params: SVMParameters, folds: int) -> np.ndarray:
        # stratified folds cannot outnumber the smaller class
        smallest = int(problem.class_counts().min())
        n_splits = min(int(folds), smallest)
        if n_splits < 2:
            raise ConfigurationError(
                f"Cross-validation needs at least 2 examples per class, smallest class has {smallest}."
            )
        cv = StratifiedKFold(n_splits=n_splits, shuffle=True, random_state=self.random_state)
        return cross_val_predict(self._estimator(params), problem.vectors, problem.labels, cv=cv)
