"""
Evaluation Engine
=================

Responsibility:
- Regression metrics (rmse, r_squared, mae) with explicit undefined cases.
- Single evaluation of the final model on the untouched test partition.
- Row-aligned prediction table over the full dataset.
"""

from .metrics import METRIC_DIRECTIONS, METRIC_FUNCTIONS, compute_metric, compute_metrics
from .evaluation_engine import EvaluationEngine

__all__ = [
    'METRIC_DIRECTIONS',
    'METRIC_FUNCTIONS',
    'compute_metric',
    'compute_metrics',
    'EvaluationEngine',
]
