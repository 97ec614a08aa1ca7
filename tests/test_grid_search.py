import numpy as np
import pytest
from scipy.sparse import csr_matrix

from histoclass.grid_search import (
    GridSearchConfig,
    SVMGridSearch,
    cv_accuracy,
    exponent_range,
)
from histoclass.solver import SVMParameters, SVMProblem


def _problem(n_per_class=10, n_features=3, seed=0):
    rng = np.random.default_rng(seed)
    X = rng.random((2 * n_per_class, n_features))
    y = np.array([0.0] * n_per_class + [1.0] * n_per_class)
    return SVMProblem(labels=y, vectors=csr_matrix(X))


def test_exponent_ranges_are_inclusive():
    assert exponent_range(-5, 15, 2) == [-5, -3, -1, 1, 3, 5, 7, 9, 11, 13, 15]
    assert exponent_range(-15, 3, 2)[-1] == 3
    cfg = GridSearchConfig()
    assert len(cfg.c_exponents) == 11
    assert len(cfg.gamma_exponents) == 10


def test_candidate_pairs_are_a_shuffled_full_grid(scripted_solver):
    search = SVMGridSearch(scripted_solver)
    pairs = search.candidate_pairs(np.random.default_rng(4))

    cfg = GridSearchConfig()
    full = {(c, g) for c in cfg.c_exponents for g in cfg.gamma_exponents}
    assert set(pairs) == full
    assert len(pairs) == len(full)


def test_seed_makes_search_order_reproducible(make_solver):
    a, b = make_solver(), make_solver()
    SVMGridSearch(a, random_state=11).estimate_parameters(_problem())
    SVMGridSearch(b, random_state=11).estimate_parameters(_problem())
    assert a.cv_calls == b.cv_calls


def test_whole_grid_is_searched_below_threshold(scripted_solver):
    result = SVMGridSearch(scripted_solver, random_state=0).estimate_parameters(_problem())

    assert result.evaluations == 110
    assert len(scripted_solver.cv_calls) == 110
    assert result.accuracy == pytest.approx(0.5)


def test_iteration_cap_bounds_evaluations(scripted_solver):
    cfg = GridSearchConfig(c_exponents=tuple(range(30)), gamma_exponents=tuple(range(10)))
    result = SVMGridSearch(scripted_solver, config=cfg, random_state=0).estimate_parameters(_problem())

    assert result.evaluations == 200
    assert len(scripted_solver.cv_calls) == 200


def test_stops_once_accuracy_threshold_reached(make_solver):
    solver = make_solver(lambda C, gamma: 0.95 if C == 2.0 ** 3 else 0.5)
    result = SVMGridSearch(solver, random_state=1).estimate_parameters(_problem())

    assert result.C == 2.0 ** 3
    assert result.accuracy >= 0.9
    assert solver.cv_calls[-1][0] == 2.0 ** 3
    assert result.evaluations == len(solver.cv_calls)


def test_result_never_worse_than_first_pair(make_solver):
    rng = np.random.default_rng(9)
    table = {}

    def accuracy_for(C, gamma):
        return table.setdefault((C, gamma), float(rng.integers(0, 9)) / 10)

    solver = make_solver(accuracy_for)
    result = SVMGridSearch(solver, random_state=3).estimate_parameters(_problem())

    first_C, first_gamma, _ = solver.cv_calls[0]
    assert result.accuracy >= table[(first_C, first_gamma)]
    assert result.accuracy == max(table.values())


def test_zero_accuracy_everywhere_returns_first_pair(make_solver):
    solver = make_solver(lambda C, gamma: 0.0)
    result = SVMGridSearch(solver, random_state=2).estimate_parameters(_problem())

    first_C, first_gamma, _ = solver.cv_calls[0]
    assert (result.C, result.gamma) == (first_C, first_gamma)
    assert result.accuracy == 0.0


def test_search_runs_on_capped_subset(scripted_solver):
    problem = _problem(n_per_class=1250)
    SVMGridSearch(scripted_solver, random_state=0).estimate_parameters(problem)

    assert {size for _, _, size in scripted_solver.cv_calls} == {2000}
    assert problem.size == 2500


def test_too_small_problem_skips_search(scripted_solver):
    problem = SVMProblem(labels=np.array([0.0, 1.0]), vectors=csr_matrix(np.eye(2, 4)))
    result = SVMGridSearch(scripted_solver).estimate_parameters(problem, SVMParameters(C=128.0))

    assert not result.searched
    assert result.evaluations == 0
    assert result.C == 128.0
    assert result.gamma == pytest.approx(1 / 4)
    assert scripted_solver.cv_calls == []


def test_parallel_search_matches_sequential(make_solver):
    def accuracy_for(C, gamma):
        return 0.92 if (C, gamma) == (2.0 ** 7, 2.0 ** -3) else 0.6

    seq, par = make_solver(accuracy_for), make_solver(accuracy_for)
    r1 = SVMGridSearch(seq, random_state=5, n_jobs=1).estimate_parameters(_problem())
    r2 = SVMGridSearch(par, random_state=5, n_jobs=4).estimate_parameters(_problem())

    assert (r1.C, r1.gamma, r1.accuracy, r1.evaluations) == (r2.C, r2.gamma, r2.accuracy, r2.evaluations)


def test_cv_accuracy_counts_matching_labels(make_solver):
    solver = make_solver(lambda C, gamma: 0.75)
    acc = cv_accuracy(solver, _problem(n_per_class=10), SVMParameters(), folds=5)
    assert acc == pytest.approx(0.75)
