"""
Model Factory
=============

Responsibility:
- Construction of scikit-learn estimators by name with parameter filtering.
- Model adapters: one per model family, each declaring its hyperparameter space.
"""

from .model_factory import ModelFactory
from .adapters import (
    ModelAdapter,
    LinearRegressionAdapter,
    RandomForestAdapter,
    GradientBoostingAdapter,
)

__all__ = [
    'ModelFactory',
    'ModelAdapter',
    'LinearRegressionAdapter',
    'RandomForestAdapter',
    'GradientBoostingAdapter',
]
