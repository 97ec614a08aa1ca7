# histoclass/cli.py
# -----------------------------------------------------------------------------
# CLI predictor: saved classifier + one histogram -> class name
#
#   python -m histoclass.cli --model artifacts/models/tree_pruned.joblib \
#                            --histogram "3,0,1,7,0,2"
# -----------------------------------------------------------------------------
import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

import joblib

from .base import HistogramClassifier
from .decision_tree import DecisionTreeClassifier


def parse_histogram(text: str) -> List[int]:
    """Parse "3, 0, 1" -> [3, 0, 1]."""
    parts = [t.strip() for t in str(text).split(",") if t.strip()]
    try:
        return [int(t) for t in parts]
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"histogram must be comma-separated integers: {e}") from e


def load_model(path: Path) -> HistogramClassifier:
    if not path.exists():
        raise FileNotFoundError(f"Model not found: {path}. Run `python -m histoclass.pipeline` first.")
    model = joblib.load(path)
    if not isinstance(model, HistogramClassifier):
        raise TypeError(f"{path} does not contain a histogram classifier.")
    return model


def parse_args(argv: Optional[Sequence[str]] = None):
    p = argparse.ArgumentParser("Classify one histogram with a saved model")
    p.add_argument("--model", required=True, help="Path to saved model .joblib")
    p.add_argument("--histogram", required=True, type=parse_histogram,
                   help="Comma-separated feature counts")
    p.add_argument("--explain", action="store_true", help="Print the decision path (tree models).")
    p.add_argument("--verbose", action="store_true")
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None):
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    model_path = Path(args.model)
    model = load_model(model_path)
    label = model.classify(args.histogram)

    print(f"\n[using] model={model_path.name}")
    print(f"Prediction: {label}")

    if args.explain and isinstance(model, DecisionTreeClassifier):
        print("\nPath:")
        for step in model.explain_one(args.histogram):
            print(f"  - {step}")


if __name__ == "__main__":
    main()
