import numpy as np
import pytest

from histoclass.dataset import to_arrays, to_labeled
from histoclass.decision_tree import (
    DecisionTreeClassifier,
    Leaf,
    Split,
    best_split,
    build_tree,
    count_leaves,
    merge_gain,
    prune_tree,
    tree_depth,
)
from histoclass.errors import ConfigurationError, DimensionError, NotTrainedError


def _arrays(dataset, feature_count):
    examples, names = to_labeled(dataset, feature_count)
    X, y = to_arrays(examples, feature_count)
    return X, y, len(names)


def _leaves(node):
    if isinstance(node, Leaf):
        return [node]
    return _leaves(node.left) + _leaves(node.right)


# -------------------------
# Induction
# -------------------------

def test_toy_dataset_splits_on_first_feature(toy_dataset):
    tree = DecisionTreeClassifier(feature_count=2)
    tree.learn(toy_dataset)

    root = tree.root_
    assert isinstance(root, Split)
    assert root.feature == 0
    assert 0 < root.threshold <= 4
    assert tree.classify([5, 0]) == "A"
    assert tree.classify([0, 5]) == "B"


def test_separable_data_fits_training_set_before_pruning(separable_dataset):
    tree = DecisionTreeClassifier(feature_count=6, prune=False)
    tree.learn(separable_dataset)

    for name, hists in separable_dataset.items():
        for h in hists:
            assert tree.classify(h) == name


def test_best_split_partitions_are_complete_and_non_empty(noisy_dataset):
    X, y, k = _arrays(noisy_dataset, 4)
    feature, threshold, gain = best_split(X, y, k)

    assert feature is not None
    go_left = X[:, feature] < threshold
    n_left, n_right = int(go_left.sum()), int((~go_left).sum())
    assert n_left + n_right == y.size
    assert n_left > 0 and n_right > 0
    assert gain > 0


def test_split_children_are_never_none(noisy_dataset):
    X, y, k = _arrays(noisy_dataset, 4)

    def walk(node):
        if isinstance(node, Split):
            assert node.left is not None and node.right is not None
            walk(node.left)
            walk(node.right)
        else:
            assert node.n_samples > 0

    walk(build_tree(X, y, k))


def test_identical_histograms_make_a_single_leaf():
    X = np.array([[1, 1], [1, 1], [1, 1]])
    y = np.array([0, 1, 1])
    node = build_tree(X, y, class_count=2)
    assert isinstance(node, Leaf)
    assert node.n_samples == 3


def test_max_depth_limits_growth(noisy_dataset):
    tree = DecisionTreeClassifier(feature_count=4, prune=False, max_depth=2)
    tree.learn(noisy_dataset)
    assert tree.depth() <= 2


def test_learning_is_deterministic(noisy_dataset):
    a = DecisionTreeClassifier(feature_count=4, prune=False)
    b = DecisionTreeClassifier(feature_count=4, prune=False)
    a.learn(noisy_dataset)
    b.learn(noisy_dataset)

    queries = np.random.default_rng(5).integers(0, 4, size=(50, 4))
    assert a.classify_many(queries) == b.classify_many(queries)
    assert a.depth() == b.depth()


# -------------------------
# Pruning
# -------------------------

def test_pruning_never_deepens_or_grows_tree(noisy_dataset):
    X, y, k = _arrays(noisy_dataset, 4)
    raw = build_tree(X, y, k)

    for rule in ("weighted", "legacy"):
        pruned = prune_tree(raw, k, min_gain=0.1, rule=rule)
        assert tree_depth(pruned) <= tree_depth(raw)
        assert count_leaves(pruned) <= count_leaves(raw)


def test_pruning_keeps_leaves_as_leaves():
    leaf = Leaf(labels=np.array([0, 1]))
    assert prune_tree(leaf, class_count=2) is leaf


def test_pruning_does_not_mutate_input_tree(noisy_dataset):
    X, y, k = _arrays(noisy_dataset, 4)
    raw = build_tree(X, y, k)
    depth_before, leaves_before = tree_depth(raw), count_leaves(raw)

    prune_tree(raw, k, min_gain=10.0)

    assert tree_depth(raw) == depth_before
    assert count_leaves(raw) == leaves_before


def test_pruning_cascades_to_root(noisy_dataset):
    X, y, k = _arrays(noisy_dataset, 4)
    pruned = prune_tree(build_tree(X, y, k), k, min_gain=10.0)

    assert isinstance(pruned, Leaf)
    assert sorted(pruned.labels.tolist()) == sorted(y.tolist())


def test_pruning_keeps_informative_split(toy_dataset):
    tree = DecisionTreeClassifier(feature_count=2, min_gain=0.1)
    tree.learn(toy_dataset)
    assert tree.n_leaves() == 2


def test_pruned_leaves_hold_every_training_example(noisy_dataset):
    X, y, k = _arrays(noisy_dataset, 4)
    pruned = prune_tree(build_tree(X, y, k), k, min_gain=0.3)
    held = np.concatenate([leaf.labels for leaf in _leaves(pruned)])
    assert held.size == y.size


def test_merge_gain_formulas():
    left = np.array([0, 1])    # H = 1
    right = np.array([0, 0])   # H = 0
    merged_h = -(0.75 * np.log2(0.75) + 0.25 * np.log2(0.25))

    assert merge_gain(left, right, 2, "weighted") == pytest.approx(merged_h - 0.5)
    assert merge_gain(left, right, 2, "legacy") == pytest.approx(merged_h - 1.0)


# -------------------------
# Inference
# -------------------------

def test_majority_vote_supports_more_than_two_classes():
    tree = DecisionTreeClassifier(feature_count=1)
    tree.learn({"a": [[1]], "b": [[1]], "c": [[1], [1]]})
    assert tree.classify([1]) == "c"


def test_majority_tie_goes_to_lowest_class_index():
    tree = DecisionTreeClassifier(feature_count=1)
    tree.learn({"a": [[1]], "b": [[1]]})
    assert tree.classify([1]) == "a"


def test_explain_one_ends_with_prediction(toy_dataset):
    tree = DecisionTreeClassifier(feature_count=2)
    tree.learn(toy_dataset)

    path = tree.explain_one([5, 0], feature_names=["word0", "word1"])
    assert path[0].startswith("word0 <")
    assert path[-1] == "→ predict: A"


# -------------------------
# Errors
# -------------------------

def test_classify_before_learn_raises():
    with pytest.raises(NotTrainedError):
        DecisionTreeClassifier(feature_count=2).classify([1, 2])


def test_classify_on_empty_dataset_tree_raises():
    tree = DecisionTreeClassifier(feature_count=2)
    tree.learn({"a": []})
    assert isinstance(tree.root_, Leaf)
    with pytest.raises(NotTrainedError):
        tree.classify([0, 0])


def test_wrong_histogram_length_raises(toy_dataset):
    tree = DecisionTreeClassifier(feature_count=2)
    tree.learn(toy_dataset)
    with pytest.raises(DimensionError):
        tree.classify([1, 2, 3])


def test_bad_configuration_raises():
    with pytest.raises(ConfigurationError):
        DecisionTreeClassifier(feature_count=0)
    with pytest.raises(ConfigurationError):
        DecisionTreeClassifier(feature_count=2, prune_rule="median")


def test_relearn_replaces_model(toy_dataset):
    tree = DecisionTreeClassifier(feature_count=2)
    tree.learn(toy_dataset)
    tree.learn({"X": [[1, 1]], "Y": [[9, 9]]})
    assert tree.class_names_ == ["X", "Y"]
    assert tree.classify([9, 9]) == "Y"


def test_split_records_node_entropy_for_explanations(toy_dataset):
    tree = DecisionTreeClassifier(feature_count=2)
    tree.learn(toy_dataset)

    assert isinstance(tree.root_, Split)
    assert tree.root_.impurity == pytest.approx(1.0)
    assert "H=1.000" in tree.explain_one([0, 5])[0]


def test_best_split_accepts_any_positive_gain(monkeypatch):
    def tiny_gains(column, labels, class_count, parent_entropy=None):
        return np.array([1, 2]), np.array([1e-13, -np.inf]), np.array([1, 2])

    monkeypatch.setattr("histoclass.decision_tree.split_gains", tiny_gains)
    X = np.array([[1, 1], [2, 2]])
    y = np.array([0, 1])

    # the second feature ties the first and does not displace it
    assert best_split(X, y, class_count=2, parent_entropy=1.0) == (0, 1, 1e-13)
