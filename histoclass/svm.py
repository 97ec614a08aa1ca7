# histoclass/svm.py
# -----------------------------------------------------------------------------
# Binary RBF-kernel SVM over count histograms.
#
# • Exactly two classes: the first class name (mapping order) is the negative
#   label 0, the second the positive label 1.
# • Histograms become sparse rows scaled by one global factor: the largest
#   count seen in the training set.  The same factor is applied to every
#   query histogram later on.
# • (C, gamma) come from SVMGridSearch unless tuning is switched off; the
#   final model is then trained once on the full training set.
# • The optimizer itself is an injected SVMSolver (LibSVMSolver by default).
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

import numpy as np
from scipy.sparse import csr_matrix

from .base import HistogramClassifier
from .dataset import LabeledExample, to_arrays
from .errors import ConfigurationError
from .grid_search import GridSearchConfig, GridSearchResult, SVMGridSearch
from .solver import LibSVMSolver, SVMParameters, SVMProblem, SVMSolver

logger = logging.getLogger(__name__)


class SVMClassifier(HistogramClassifier):
    """
    Two-class kernel SVM with automatic (C, gamma) selection.

    Parameters
    ----------
    feature_count : int
        Histogram length.
    solver : Optional[SVMSolver]
        Optimizer used for training, prediction and cross-validation.
    tune : bool
        Run the grid search; otherwise train with `C` / `gamma` as given.
    C, gamma : float
        Fixed parameters when `tune` is False (gamma 0 = 1 / feature_count).
    grid : Optional[GridSearchConfig]
        Grid search settings.
    random_state : Optional[int]
        Seed for the grid search shuffles and the default solver's CV folds.
    n_jobs : int
        Parallel grid evaluations.

    Attributes
    ----------
    model_ : Any
        Trained solver model.
    C_, gamma_ : float
        Parameters the final model was trained with.
    max_value_ : int
        Global scale factor (largest training count, 1 if all counts are 0).
    search_ : Optional[GridSearchResult]
        Outcome of the grid search, None when tuning is off.
    """

    def __init__(
        self,
        feature_count: int,
        solver: Optional[SVMSolver] = None,
        tune: bool = True,
        C: float = 128.0,
        gamma: float = 0.0,
        grid: Optional[GridSearchConfig] = None,
        random_state: Optional[int] = None,
        n_jobs: int = 1,
    ):
        super().__init__(feature_count)
        self.solver = solver if solver is not None else LibSVMSolver(random_state=random_state)
        self.tune = bool(tune)
        self.C = float(C)
        self.gamma = float(gamma)
        self.grid = grid
        self.random_state = random_state
        self.n_jobs = n_jobs

        self.model_: Any = None
        self.C_: Optional[float] = None
        self.gamma_: Optional[float] = None
        self.max_value_: Optional[int] = None
        self.search_: Optional[GridSearchResult] = None

    @property
    def negative_class(self) -> Optional[str]:
        return self.class_names_[0] if self.class_names_ else None

    @property
    def positive_class(self) -> Optional[str]:
        return self.class_names_[1] if self.class_names_ else None

    # ------------------------------ training ------------------------------ #

    def _fit(self, examples: List[LabeledExample], class_names: List[str]) -> Dict[str, Any]:
        if len(class_names) != 2:
            raise ConfigurationError(
                f"SVMClassifier only supports binary classification, got {len(class_names)} classes."
            )

        X, y = to_arrays(examples, self.feature_count)
        per_class = np.bincount(y, minlength=2)
        if per_class.min() == 0:
            raise ConfigurationError("SVMClassifier needs at least one histogram per class.")

        max_value = int(X.max()) or 1
        problem = SVMProblem(labels=y.astype(np.float64), vectors=csr_matrix(X / max_value))
        params = SVMParameters(C=self.C, gamma=self.gamma)

        search = None
        if self.tune:
            searcher = SVMGridSearch(self.solver, config=self.grid,
                                     random_state=self.random_state, n_jobs=self.n_jobs)
            search = searcher.estimate_parameters(problem, params)
            params = replace(params, C=search.C, gamma=search.gamma)

        model = self.solver.train(problem, params)
        logger.info("svm learned from %d examples (C=%g gamma=%g scale=%d)",
                    problem.size, params.C, params.gamma, max_value)
        return {
            "model_": model,
            "C_": params.C,
            "gamma_": params.gamma,
            "max_value_": max_value,
            "search_": search,
        }

    # ------------------------------ inference ----------------------------- #

    def to_vector(self, x: np.ndarray) -> csr_matrix:
        """Scale a validated histogram into a (1, feature_count) sparse row."""
        return csr_matrix(np.asarray(x, dtype=np.float64).reshape(1, -1) / self.max_value_)

    def _classify_index(self, x: np.ndarray) -> int:
        result = self.solver.predict(self.model_, self.to_vector(x))
        return 1 if result > 0.5 else 0
