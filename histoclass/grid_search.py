# histoclass/grid_search.py
# -----------------------------------------------------------------------------
# Automated grid search for the (C, gamma) parameters of an RBF-kernel SVM.
#
# Adapted from the classic libsvm "grid" tool: a brute-force search over
#   C     = 2^c,  c in [-5, 15]  step 2
#   gamma = 2^g,  g in [-15, 3]  step 2
# where every pair is scored by k-fold cross-validation accuracy.
#
# To keep it cheap:
#   • both exponent lists are shuffled, so an early stop samples the grid
#     instead of always exploring the same corner;
#   • only a random subset of at most MAX_VECTORS training vectors is used;
#   • the search stops once accuracy reaches ACCURACY_THRESHOLD or after
#     MAX_ITERATIONS evaluated pairs, returning the best pair seen so far.
# The result can be a local best; it is never worse than the first pair
# evaluated.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

import numpy as np
from joblib import Parallel, delayed, effective_n_jobs

from .solver import SVMParameters, SVMProblem, SVMSolver

logger = logging.getLogger(__name__)

# ------------------------------- configuration ------------------------------ #

MAX_VECTORS = 2000
MAX_ITERATIONS = 200
ACCURACY_THRESHOLD = 0.90
FOLDS = 5

C_BEGIN, C_END, C_STEP = -5, 15, 2
G_BEGIN, G_END, G_STEP = -15, 3, 2


def exponent_range(begin: int, end: int, step: int) -> List[int]:
    """Inclusive integer range [begin, end] with the given step."""
    return list(range(begin, end + 1, step))


@dataclass(frozen=True)
class GridSearchConfig:
    c_exponents: Tuple[int, ...] = tuple(exponent_range(C_BEGIN, C_END, C_STEP))
    gamma_exponents: Tuple[int, ...] = tuple(exponent_range(G_BEGIN, G_END, G_STEP))
    max_vectors: int = MAX_VECTORS
    max_iterations: int = MAX_ITERATIONS
    accuracy_threshold: float = ACCURACY_THRESHOLD
    folds: int = FOLDS


@dataclass(frozen=True)
class GridSearchResult:
    C: float
    gamma: float
    accuracy: float      # cross-validation accuracy of (C, gamma); 0.0 if not searched
    evaluations: int     # number of (C, gamma) pairs evaluated
    searched: bool = True


# ------------------------------- helpers ------------------------------------ #

def cv_accuracy(solver: SVMSolver, problem: SVMProblem, params: SVMParameters, folds: int) -> float:
    """Fraction of examples whose out-of-fold prediction matches the label."""
    target = np.asarray(solver.cross_validate(problem, params, folds), dtype=np.float64)
    if problem.size == 0:
        return 0.0
    return float(np.mean(target == problem.labels))


# ------------------------------- searcher ----------------------------------- #

class SVMGridSearch:
    """
    Cross-validated grid search over (C, gamma).

    Parameters
    ----------
    solver : SVMSolver
        Provides `cross_validate`.
    config : Optional[GridSearchConfig]
        Grid and stopping settings (defaults above).
    random_state : Optional[int]
        Seed for the exponent shuffles and the training-vector subset.
    n_jobs : int
        Pairs evaluated concurrently (joblib threads).  The best-pair update
        stays sequential in grid order, so results do not depend on n_jobs.
    """

    def __init__(
        self,
        solver: SVMSolver,
        config: Optional[GridSearchConfig] = None,
        random_state: Optional[int] = None,
        n_jobs: int = 1,
    ):
        self.solver = solver
        self.config = config or GridSearchConfig()
        self.random_state = random_state
        self.n_jobs = n_jobs

    # ------------------------------- public API ---------------------------- #

    def candidate_pairs(self, rng: np.random.Generator) -> List[Tuple[int, int]]:
        """
        (c, g) exponent pairs in evaluation order: each list shuffled
        independently, then crossed with c as the outer loop.
        """
        c_values = list(self.config.c_exponents)
        g_values = list(self.config.gamma_exponents)
        rng.shuffle(c_values)
        rng.shuffle(g_values)
        return [(int(c), int(g)) for c in c_values for g in g_values]

    def estimate_parameters(self, problem: SVMProblem, params: Optional[SVMParameters] = None) -> GridSearchResult:
        """
        Pick (C, gamma) for `problem`.  `problem` itself is never modified;
        the search runs on a capped subset of it.
        """
        params = params or SVMParameters()
        rng = np.random.default_rng(self.random_state)
        cfg = self.config

        pairs = self.candidate_pairs(rng)[: cfg.max_iterations]
        search_problem = self._search_subset(problem, rng)

        if not pairs or int(search_problem.class_counts().min()) < 2:
            gamma = params.gamma if params.gamma > 0 else 1.0 / max(problem.n_features, 1)
            logger.warning("grid search skipped (too few examples per class); using C=%g gamma=%g",
                           params.C, gamma)
            return GridSearchResult(C=params.C, gamma=gamma, accuracy=0.0, evaluations=0, searched=False)

        batch_size = max(1, effective_n_jobs(self.n_jobs))

        best: Optional[Tuple[int, int]] = None
        best_acc = 0.0
        evaluations = 0
        for start in range(0, len(pairs), batch_size):
            chunk = pairs[start:start + batch_size]
            accuracies = self._evaluate(search_problem, params, chunk)

            for (c, g), acc in zip(chunk, accuracies):
                evaluations += 1
                logger.debug("C=2^%d gamma=2^%d -> acc=%.4f", c, g, acc)
                if best is None or acc > best_acc:
                    best, best_acc = (c, g), acc
                if best_acc >= cfg.accuracy_threshold or evaluations >= cfg.max_iterations:
                    return self._result(best, best_acc, evaluations)

        return self._result(best, best_acc, evaluations)

    # ------------------------------ internals ------------------------------ #

    def _search_subset(self, problem: SVMProblem, rng: np.random.Generator) -> SVMProblem:
        if problem.size <= self.config.max_vectors:
            return problem
        idx = np.sort(rng.choice(problem.size, size=self.config.max_vectors, replace=False))
        return problem.subset(idx)

    def _evaluate(self, problem: SVMProblem, params: SVMParameters,
                  chunk: Sequence[Tuple[int, int]]) -> List[float]:
        candidates = [replace(params, C=2.0 ** c, gamma=2.0 ** g) for c, g in chunk]
        if len(candidates) == 1:
            return [cv_accuracy(self.solver, problem, candidates[0], self.config.folds)]
        return Parallel(n_jobs=self.n_jobs, prefer="threads")(
            delayed(cv_accuracy)(self.solver, problem, p, self.config.folds) for p in candidates
        )

    @staticmethod
    def _result(best: Tuple[int, int], accuracy: float, evaluations: int) -> GridSearchResult:
        c, g = best
        logger.info("grid search: C=2^%d gamma=2^%d acc=%.4f after %d evaluations", c, g, accuracy, evaluations)
        return GridSearchResult(C=2.0 ** c, gamma=2.0 ** g, accuracy=accuracy, evaluations=evaluations)
