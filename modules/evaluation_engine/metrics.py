import numpy as np
from typing import Dict, Iterable
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

from utils.exceptions import MetricUndefinedError

# Natural optimisation direction of each supported metric
METRIC_DIRECTIONS = {
    'rmse': 'minimize',
    'mae': 'minimize',
    'r_squared': 'maximize',
}


def _rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def _mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    return float(mean_absolute_error(y_true, y_pred))


def _r_squared(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    if len(y_true) < 2:
        raise MetricUndefinedError(f"r_squared needs at least 2 observations, got {len(y_true)}")
    if np.allclose(y_true, y_true[0]):
        raise MetricUndefinedError("r_squared is undefined for a constant target")
    return float(r2_score(y_true, y_pred))


METRIC_FUNCTIONS = {
    'rmse': _rmse,
    'mae': _mae,
    'r_squared': _r_squared,
}


def compute_metric(name: str, y_true, y_pred) -> float:
    """Compute a single named metric between observed and predicted values."""
    if name not in METRIC_FUNCTIONS:
        raise MetricUndefinedError(f"Unknown metric '{name}'. Available: {sorted(METRIC_FUNCTIONS)}")

    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if y_true.size == 0:
        raise MetricUndefinedError(f"{name} is undefined for zero observations")
    if y_true.shape != y_pred.shape:
        raise MetricUndefinedError(f"Shape mismatch: y_true {y_true.shape} vs y_pred {y_pred.shape}")
    if not (np.all(np.isfinite(y_true)) and np.all(np.isfinite(y_pred))):
        raise MetricUndefinedError(f"{name} is undefined for non-finite values")

    return METRIC_FUNCTIONS[name](y_true, y_pred)


def compute_metrics(names: Iterable[str], y_true, y_pred) -> Dict[str, float]:
    """Compute several metrics; any undefined metric raises."""
    return {name: compute_metric(name, y_true, y_pred) for name in names}
