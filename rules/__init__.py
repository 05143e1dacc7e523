"""Condition rules deciding which banners, cards and tags apply to a record."""

# Package exports should be side-effect free.

from . import (
    models,
    conditions,
    evaluator,
    loader,
)

__all__ = [
    "models",
    "conditions",
    "evaluator",
    "loader",
]
