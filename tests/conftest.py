import numpy as np
import pytest


# -------------------------
# Fake solver
# -------------------------

class CentroidModel:
    """Nearest class-mean model over the scaled training rows."""

    def __init__(self, problem):
        dense = problem.vectors.toarray()
        self.centroids = np.vstack([dense[problem.labels == k].mean(axis=0) for k in (0.0, 1.0)])

    def predict(self, vector):
        row = vector.toarray().ravel()
        dists = ((self.centroids - row) ** 2).sum(axis=1)
        return float(np.argmin(dists))


class ScriptedSolver:
    """
    SVMSolver stand-in.  cross_validate() returns predictions whose accuracy
    is accuracy_for(C, gamma); train()/predict() use a nearest-centroid model.
    """

    def __init__(self, accuracy_for=None):
        self.accuracy_for = accuracy_for or (lambda C, gamma: 0.5)
        self.cv_calls = []
        self.train_calls = []

    def train(self, problem, params):
        self.train_calls.append((problem, params))
        return CentroidModel(problem)

    def predict(self, model, vector):
        return model.predict(vector)

    def cross_validate(self, problem, params, folds):
        self.cv_calls.append((params.C, params.gamma, problem.size))
        acc = self.accuracy_for(params.C, params.gamma)
        n_correct = int(round(acc * problem.size))
        preds = problem.labels.copy()
        preds[n_correct:] = 1.0 - preds[n_correct:]
        return preds


@pytest.fixture
def scripted_solver():
    return ScriptedSolver()


@pytest.fixture
def make_solver():
    return ScriptedSolver


# -------------------------
# Datasets
# -------------------------

@pytest.fixture
def toy_dataset():
    return {"A": [[5, 0], [4, 0]], "B": [[0, 5], [0, 4]]}


@pytest.fixture
def separable_dataset():
    # class A: feature 0 < 5, class B: feature 0 >= 5; other features are noise
    rng = np.random.default_rng(0)
    a = [[int(rng.integers(0, 5))] + rng.integers(0, 10, size=5).tolist() for _ in range(30)]
    b = [[int(rng.integers(5, 12))] + rng.integers(0, 10, size=5).tolist() for _ in range(30)]
    return {"A": a, "B": b}


@pytest.fixture
def noisy_dataset():
    rng = np.random.default_rng(1)
    return {
        name: rng.integers(0, 4, size=(25, 4)).tolist()
        for name in ("red", "green", "blue")
    }
