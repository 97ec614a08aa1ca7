# histoclass/decision_tree.py
# -----------------------------------------------------------------------------
# From-scratch decision tree over count histograms (entropy + pruning).
#
# Notes
# -----
# • Splits are binary:  x[feature] < threshold -> left, else right.
# • Candidate thresholds are the distinct values observed for a feature in
#   the current node, scanned in ascending feature / ascending value order.
#   The first candidate with the strictly greatest gain wins, so ties are
#   deterministic.  Any gain > 0 qualifies; once a split is held, another
#   feature replaces it only when its gain is higher by more than 1e-12.
# • After induction the tree is pruned bottom-up: a split whose children are
#   both leaves collapses into one leaf when merging them loses less than
#   `min_gain` bits.  Pruning rewrites the tree (new nodes), it never mutates.
# • A leaf predicts the majority class of the training examples it holds
#   (tally sized to the number of classes, ties -> lowest class index).
# • Explainability: `explain_one(x)` returns the decision path for a row,
#   with the entropy of each split node it passes through.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from .base import HistogramClassifier
from .dataset import Histogram, LabeledExample, check_histogram, to_arrays
from .entropy import class_counts, entropy, information_gain, split_gains
from .errors import ConfigurationError, NotTrainedError

logger = logging.getLogger(__name__)

MIN_GAIN = 0.1
PRUNE_RULES = ("weighted", "legacy")

# gains closer than this are treated as equal (first candidate kept)
_GAIN_EPS = 1e-12


# ------------------------------ tree structures ---------------------------- #

@dataclass(frozen=True, eq=False)
class Leaf:
    """
    Terminal node holding the class indices of the training examples that
    reached it.  Empty only for a tree learned from an empty dataset.
    """
    labels: np.ndarray
    depth: int = 0

    @property
    def n_samples(self) -> int:
        return int(self.labels.size)


@dataclass(frozen=True, eq=False)
class Split:
    """
    Internal node: x[feature] < threshold -> left, else right.
    """
    feature: int
    threshold: int
    left: "Node"
    right: "Node"
    depth: int = 0
    n_samples: int = 0
    impurity: float = 0.0          # entropy (bits) of the examples reaching this node


Node = Union[Leaf, Split]


def majority_class(labels: np.ndarray, class_count: int) -> int:
    """
    Most frequent class index in `labels` (ties broken by smallest index).
    """
    return int(np.argmax(class_counts(labels, class_count)))


def tree_depth(node: Node) -> int:
    if isinstance(node, Leaf):
        return 0
    return 1 + max(tree_depth(node.left), tree_depth(node.right))


def count_leaves(node: Node) -> int:
    if isinstance(node, Leaf):
        return 1
    return count_leaves(node.left) + count_leaves(node.right)


# ------------------------------ building logic ------------------------ #

def best_split(X: np.ndarray, y: np.ndarray, class_count: int,
               parent_entropy: Optional[float] = None) -> Tuple[Optional[int], Optional[int], float]:
    """
    Search all features for the (feature, threshold) with max information gain.

    Returns (feature, threshold, gain), or (None, None, 0.0) when no split has
    positive gain with both sides non-empty.
    """
    if parent_entropy is None:
        parent_entropy = entropy(y, class_count)

    best_gain = 0.0
    best_feature = None
    best_threshold = None

    for f in range(X.shape[1]):
        thresholds, gains, _ = split_gains(X[:, f], y, class_count, parent_entropy)
        if thresholds.size <= 1:
            continue
        j = int(np.argmax(gains))
        # any positive gain opens the search; later features must beat it by _GAIN_EPS
        floor = 0.0 if best_feature is None else best_gain + _GAIN_EPS
        if gains[j] > floor:
            best_gain = float(gains[j])
            best_feature = f
            best_threshold = int(thresholds[j])

    return best_feature, best_threshold, best_gain


def build_tree(X: np.ndarray, y: np.ndarray, class_count: int, depth: int = 0,
               max_depth: Optional[int] = None, min_samples_split: int = 2) -> Node:
    """
    Recursively grow a tree on (X, y).
    """
    if y.size == 0:
        return Leaf(labels=np.zeros(0, dtype=int), depth=depth)

    impurity = entropy(y, class_count)

    # Stopping criteria: pure, size, or depth
    if impurity == 0.0 or y.size < min_samples_split or (max_depth is not None and depth >= max_depth):
        return Leaf(labels=y, depth=depth)

    feature, threshold, _gain = best_split(X, y, class_count, impurity)
    if feature is None:
        return Leaf(labels=y, depth=depth)

    go_left = X[:, feature] < threshold
    left = build_tree(X[go_left], y[go_left], class_count, depth + 1, max_depth, min_samples_split)
    right = build_tree(X[~go_left], y[~go_left], class_count, depth + 1, max_depth, min_samples_split)
    return Split(feature=feature, threshold=threshold, left=left, right=right,
                 depth=depth, n_samples=int(y.size), impurity=impurity)


# ------------------------------- pruning ------------------------------------ #

def merge_gain(left: np.ndarray, right: np.ndarray, class_count: int, rule: str = "weighted") -> float:
    """
    Entropy lost by merging two sibling leaves back into one.

    "weighted": information gain of the split (size-weighted child entropies).
    "legacy":   H(L+R) - (H(L) + H(R) / 2), the older formula in which only
                the right child's entropy is halved.
    """
    merged = np.concatenate([left, right])
    if rule == "legacy":
        return entropy(merged, class_count) - (entropy(left, class_count) + entropy(right, class_count) / 2)
    return information_gain(merged, left, right, class_count)


def prune_tree(node: Node, class_count: int, min_gain: float = MIN_GAIN, rule: str = "weighted") -> Node:
    """
    Return a pruned copy of `node`.  Children are pruned first so collapses
    can cascade upward; untouched subtrees are shared, not copied.
    """
    if isinstance(node, Leaf):
        return node

    left = prune_tree(node.left, class_count, min_gain, rule)
    right = prune_tree(node.right, class_count, min_gain, rule)

    if isinstance(left, Leaf) and isinstance(right, Leaf):
        if merge_gain(left.labels, right.labels, class_count, rule) < min_gain:
            return Leaf(labels=np.concatenate([left.labels, right.labels]), depth=node.depth)

    if left is node.left and right is node.right:
        return node
    return replace(node, left=left, right=right)


# --------------------------------- classifier ------------------------------- #

class DecisionTreeClassifier(HistogramClassifier):
    """
    Entropy decision tree with post-hoc pruning.

    Parameters
    ----------
    feature_count : int
        Histogram length.
    min_gain : float
        Merging two sibling leaves that lose less than this many bits of
        information collapses their split.
    prune : bool
        Run the pruning pass after induction.
    prune_rule : {"weighted", "legacy"}
        Merge-gain formula used while pruning (see `merge_gain`).
    max_depth : Optional[int]
        Maximum tree depth (None = grow until leaves are pure or unsplittable).
    min_samples_split : int
        Minimum number of examples required to split a node.

    Attributes
    ----------
    root_ : Node
        Root of the trained (and pruned) tree.
    """

    def __init__(
        self,
        feature_count: int,
        min_gain: float = MIN_GAIN,
        prune: bool = True,
        prune_rule: str = "weighted",
        max_depth: Optional[int] = None,
        min_samples_split: int = 2,
    ):
        super().__init__(feature_count)
        if prune_rule not in PRUNE_RULES:
            raise ConfigurationError(f"prune_rule must be one of {PRUNE_RULES}, got {prune_rule!r}.")
        if max_depth is not None and int(max_depth) < 0:
            raise ConfigurationError("max_depth must be >= 0.")
        self.min_gain = float(min_gain)
        self.prune = bool(prune)
        self.prune_rule = prune_rule
        self.max_depth = None if max_depth is None else int(max_depth)
        self.min_samples_split = max(2, int(min_samples_split))

        self.root_: Optional[Node] = None

    # ------------------------------- public API ---------------------------- #

    def depth(self) -> int:
        self._check_trained()
        return tree_depth(self.root_)

    def n_leaves(self) -> int:
        self._check_trained()
        return count_leaves(self.root_)

    def explain_one(self, histogram: Histogram, feature_names: Optional[Sequence[str]] = None) -> List[str]:
        """
        Return a human-readable path explanation for a single histogram.
        """
        self._check_trained()
        x = check_histogram(histogram, self.feature_count)
        path = []
        node = self.root_
        while isinstance(node, Split):
            fname = f"f{node.feature}"
            if feature_names is not None and 0 <= node.feature < len(feature_names):
                fname = feature_names[node.feature]
            value = int(x[node.feature])
            path.append(f"{fname} < {node.threshold} (x={value}, H={node.impurity:.3f})")
            node = node.left if value < node.threshold else node.right
        if node.n_samples:
            path.append(f"→ predict: {self.class_names_[majority_class(node.labels, self.class_count)]}")
        return path

    # ------------------------------ training ------------------------------ #

    def _fit(self, examples: List[LabeledExample], class_names: List[str]) -> Dict[str, Any]:
        X, y = to_arrays(examples, self.feature_count)
        class_count = len(class_names)

        root = build_tree(X, y, class_count, max_depth=self.max_depth,
                          min_samples_split=self.min_samples_split)
        logger.debug("grown tree: depth=%d leaves=%d", tree_depth(root), count_leaves(root))

        if self.prune:
            root = prune_tree(root, class_count, self.min_gain, self.prune_rule)
            logger.debug("pruned tree: depth=%d leaves=%d", tree_depth(root), count_leaves(root))

        logger.info("decision tree learned from %d examples, %d classes", y.size, class_count)
        return {"root_": root}

    # ------------------------------ inference ----------------------------- #

    def _classify_index(self, x: np.ndarray) -> int:
        node = self.root_
        while isinstance(node, Split):
            node = node.left if x[node.feature] < node.threshold else node.right
        if node.n_samples == 0:
            raise NotTrainedError("Decision tree was learned from an empty dataset.")
        return majority_class(node.labels, self.class_count)

    def _check_trained(self) -> None:
        if self.root_ is None:
            raise NotTrainedError("DecisionTreeClassifier has not been trained; call learn() first.")


# ------------------------------- quick example ----------------------------- #
if __name__ == "__main__":
    demo = {
        "A": [[5, 0], [4, 0], [6, 1]],
        "B": [[0, 5], [0, 4], [1, 6]],
    }
    tree = DecisionTreeClassifier(feature_count=2)
    tree.learn(demo)
    for name, hists in demo.items():
        for h in hists:
            print(name, h, "->", tree.classify(h), " | ", "  >  ".join(tree.explain_one(h)))
