# histoclass/errors.py
# -----------------------------------------------------------------------------
# Error types shared by all classifiers.
# -----------------------------------------------------------------------------

from __future__ import annotations


class ConfigurationError(ValueError):
    """Dataset or constructor arguments violate a classifier precondition."""


class NotTrainedError(RuntimeError):
    """`classify` was called before a successful `learn`."""


class DimensionError(ValueError):
    """A histogram does not have the feature count fixed at construction."""
