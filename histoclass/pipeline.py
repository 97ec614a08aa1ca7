# histoclass/pipeline.py
# -----------------------------------------------------------------------------
# Training & evaluation pipeline for histogram classifiers.
#
# - Loads train/test histograms from CSV (label column + one column per
#   visual word, see dataset.load_csv)
# - Trains one of:
#     * tree   – entropy decision tree with pruning (decision_tree.py)
#     * bayes  – Laplace-smoothed Naive Bayes (naive_bayes.py)
#     * svm    – binary RBF SVM with grid search (svm.py)
# - Evaluates on the test split, saves:
#     * metrics JSON (accuracy, macro-F1)
#     * confusion matrix PNG
# - Saves the fitted classifier with joblib under artifacts/models/
#
# Usage (from repo root):
#   python -m histoclass.pipeline --train data/train.csv --test data/test.csv --model tree
#   python -m histoclass.pipeline --train data/train.csv --test data/test.csv --model svm --seed 7
# -----------------------------------------------------------------------------

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import joblib
import matplotlib.pyplot as plt
from sklearn.metrics import accuracy_score, confusion_matrix, f1_score

from .base import HistogramClassifier
from .dataset import load_csv
from .decision_tree import MIN_GAIN, DecisionTreeClassifier
from .errors import ConfigurationError
from .naive_bayes import NaiveBayesClassifier
from .svm import SVMClassifier

ART_OUT = Path("artifacts")

MODEL_TYPES = ("tree", "bayes", "svm")


# ----------------------------- model factory ------------------------------ #

def build_classifier(
    model_type: str,
    feature_count: int,
    min_gain: float = MIN_GAIN,
    prune: bool = True,
    prune_rule: str = "weighted",
    max_depth: Optional[int] = None,
    tune: bool = True,
    C: float = 128.0,
    gamma: float = 0.0,
    seed: Optional[int] = None,
    n_jobs: int = 1,
) -> HistogramClassifier:
    """
    Construct an untrained classifier of the given type.
    """
    if model_type == "tree":
        return DecisionTreeClassifier(feature_count, min_gain=min_gain, prune=prune,
                                      prune_rule=prune_rule, max_depth=max_depth)
    if model_type == "bayes":
        return NaiveBayesClassifier(feature_count)
    if model_type == "svm":
        return SVMClassifier(feature_count, tune=tune, C=C, gamma=gamma,
                             random_state=seed, n_jobs=n_jobs)
    raise ConfigurationError(f"model_type must be one of {MODEL_TYPES}, got {model_type!r}")


def model_name_for(model_type: str, prune: bool = True, tune: bool = True) -> str:
    if model_type == "tree":
        return "tree_pruned" if prune else "tree"
    if model_type == "svm":
        return "svm_grid" if tune else "svm"
    return model_type


# ----------------------------- eval utilities ----------------------------- #

def save_confusion_png(y_true: Sequence[str], y_pred: Sequence[str], labels: List[str],
                       out_path: Path, title: str):
    """
    Save a basic confusion matrix plot as a PNG.
    """
    cm = confusion_matrix(y_true, y_pred, labels=labels)
    plt.figure()
    plt.imshow(cm, interpolation='nearest')
    plt.title(title)
    plt.xticks(range(len(labels)), labels, rotation=45, ha="right")
    plt.yticks(range(len(labels)), labels)
    plt.xlabel("Predicted")
    plt.ylabel("True")
    plt.colorbar()
    plt.tight_layout()
    plt.savefig(out_path, dpi=140)
    plt.close()


# ------------------------------ train & eval ------------------------------ #

def train_and_eval(
    train_csv: str,
    test_csv: str,
    model_type: str,
    label_col: str = "label",
    out_dir: Path = ART_OUT,
    min_gain: float = MIN_GAIN,
    prune: bool = True,
    prune_rule: str = "weighted",
    max_depth: Optional[int] = None,
    tune: bool = True,
    C: float = 128.0,
    gamma: float = 0.0,
    seed: Optional[int] = None,
    n_jobs: int = 1,
) -> Dict[str, Any]:
    """
    Train the chosen classifier on the train CSV and evaluate on the test CSV.
    Returns a dict of metrics and file paths.
    """
    train = load_csv(train_csv, label_col=label_col)
    test = load_csv(test_csv, label_col=label_col)
    if not train:
        raise ConfigurationError(f"No training rows in {train_csv}.")

    feature_count = len(next(iter(train.values()))[0])

    model = build_classifier(model_type, feature_count, min_gain=min_gain, prune=prune,
                             prune_rule=prune_rule, max_depth=max_depth, tune=tune,
                             C=C, gamma=gamma, seed=seed, n_jobs=n_jobs)
    model_name = model_name_for(model_type, prune=prune, tune=tune)

    # Fit
    model.learn(train)

    # Predict
    y_true = [name for name, hists in test.items() for _ in hists]
    y_pred = model.classify_many(h for hists in test.values() for h in hists)

    labels = list(model.class_names_) + [n for n in test if n not in model.class_names_]

    metrics: Dict[str, Any] = {
        "model": model_name,
        "classes": list(model.class_names_),
        "n_train": sum(len(h) for h in train.values()),
        "n_test": len(y_true),
        "acc_test": float(accuracy_score(y_true, y_pred)) if y_true else 0.0,
        "macro_f1_test": float(f1_score(y_true, y_pred, labels=labels, average="macro", zero_division=0))
        if y_true else 0.0,
    }
    if isinstance(model, SVMClassifier):
        metrics["C"] = model.C_
        metrics["gamma"] = model.gamma_
        if model.search_ is not None:
            metrics["cv_accuracy"] = model.search_.accuracy
            metrics["grid_evaluations"] = model.search_.evaluations
    if isinstance(model, DecisionTreeClassifier):
        metrics["tree_depth"] = model.depth()
        metrics["tree_leaves"] = model.n_leaves()

    out_dir = Path(out_dir)
    model_dir = out_dir / "models"
    model_dir.mkdir(parents=True, exist_ok=True)

    # Save confusion matrix
    cm_path = out_dir / f"confusion_{model_name}_test.png"
    save_confusion_png(y_true, y_pred, labels, cm_path, f"Confusion (test) — {model_name}")

    # Save metrics JSON
    metrics_path = out_dir / f"metrics_{model_name}.json"
    metrics_path.write_text(json.dumps(metrics, indent=2))

    # Save model
    model_path = model_dir / f"{model_name}.joblib"
    joblib.dump(model, model_path)

    return {
        "metrics_path": str(metrics_path),
        "cm_test_path": str(cm_path),
        "model_path": str(model_path),
        "metrics": metrics,
    }


# ---------------------------------- CLI ---------------------------------- #

def parse_args(argv: Optional[Sequence[str]] = None):
    p = argparse.ArgumentParser(description="Train & evaluate a histogram classifier.")
    p.add_argument("--train", required=True, help="Training CSV (label column + feature columns).")
    p.add_argument("--test", required=True, help="Test CSV with the same columns.")
    p.add_argument("--model", choices=list(MODEL_TYPES), default="tree", help="Classifier to train.")
    p.add_argument("--label_col", default="label", help="Name of the class label column.")
    p.add_argument("--out_dir", default=str(ART_OUT), help="Where metrics, plots and models go.")
    # tree params
    p.add_argument("--min_gain", type=float, default=MIN_GAIN, help="Pruning threshold (bits).")
    p.add_argument("--no_prune", action="store_true", help="Skip the pruning pass.")
    p.add_argument("--prune_rule", choices=["weighted", "legacy"], default="weighted",
                   help="Merge-gain formula used while pruning.")
    p.add_argument("--max_depth", type=int, default=None, help="Optional max tree depth.")
    # svm params
    p.add_argument("--no_tune", action="store_true", help="Skip the SVM grid search.")
    p.add_argument("--C", type=float, default=128.0, help="SVM C when not tuning.")
    p.add_argument("--gamma", type=float, default=0.0, help="SVM gamma when not tuning (0 = 1/features).")
    p.add_argument("--n_jobs", type=int, default=1, help="Parallel grid-search evaluations.")
    p.add_argument("--seed", type=int, default=None, help="Random seed.")
    p.add_argument("--verbose", action="store_true", help="Debug logging.")
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s - %(levelname)s - %(message)s")

    # Train + evaluate
    summary = train_and_eval(
        train_csv=args.train,
        test_csv=args.test,
        model_type=args.model,
        label_col=args.label_col,
        out_dir=Path(args.out_dir),
        min_gain=args.min_gain,
        prune=not args.no_prune,
        prune_rule=args.prune_rule,
        max_depth=args.max_depth,
        tune=not args.no_tune,
        C=args.C,
        gamma=args.gamma,
        seed=args.seed,
        n_jobs=args.n_jobs,
    )

    # Console summary
    print("\n=== Training complete ===")
    for k, v in summary["metrics"].items():
        if isinstance(v, float):
            print(f"{k}: {v:.4f}")
        else:
            print(f"{k}: {v}")
    print("\nSaved:")
    print("  metrics:", summary["metrics_path"])
    print("  confusion (test):", summary["cm_test_path"])
    print("  model:", summary["model_path"])


if __name__ == "__main__":
    main()
