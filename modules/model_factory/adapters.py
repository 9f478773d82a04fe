"""
Model adapters.

An adapter wraps one model family behind a uniform fit/predict interface and
declares the hyperparameter space the search may tune. The search engine only
talks to adapters, so a new family is added by registering one more adapter.
"""
import abc
import math
import numpy as np
import pandas as pd
from typing import Any, Dict, Mapping, Optional

from modules.model_factory.model_factory import ModelFactory
from modules.hpo_search_engine.search_space import Configuration, HyperParameter, HyperparameterSpace
from utils.exceptions import ConfigurationError, TrainingFailedError, PredictionError


class ModelAdapter(abc.ABC):
    """Uniform interface over a trainable regression family."""

    name: str = ""
    estimator_name: str = ""

    def __init__(self, tree_count: int = 500, random_state: Optional[int] = None,
                 space_overrides: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self.tree_count = tree_count
        self.random_state = random_state
        self.space_overrides = dict(space_overrides or {})

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(tree_count={self.tree_count}, random_state={self.random_state})"

    @abc.abstractmethod
    def default_space(self) -> HyperparameterSpace:
        """Ranges used when the configuration does not override them."""

    @abc.abstractmethod
    def default_params(self) -> Dict[str, Any]:
        """Untuned values used when families are compared before the search."""

    @abc.abstractmethod
    def estimator_params(self, params: Mapping[str, Any], n_features: int) -> Dict[str, Any]:
        """Translate tunable parameter names into estimator constructor arguments."""

    def space(self) -> HyperparameterSpace:
        space = self.default_space()
        if self.space_overrides:
            space = space.override(self.space_overrides)
        return space

    def default_configuration(self) -> Configuration:
        return Configuration(self.name, self.default_params(), 0)

    def build(self, config: Configuration, n_features: int) -> Any:
        if config.model_name != self.name:
            raise ConfigurationError(f"Configuration for '{config.model_name}' passed to adapter '{self.name}'")
        params = self.estimator_params(config.params, n_features)
        params.setdefault('random_state', self.random_state)
        return ModelFactory.create(self.estimator_name, params)

    def fit(self, X: pd.DataFrame, y: pd.Series, config: Configuration) -> Any:
        """Fit a fresh estimator for `config` on the (already transformed) rows."""
        if len(X) == 0:
            raise TrainingFailedError(f"{self.name}: zero training rows")
        if X.shape[1] == 0:
            raise TrainingFailedError(f"{self.name}: no predictor columns after preprocessing")
        if not np.all(np.isfinite(np.asarray(y, dtype=float))):
            raise TrainingFailedError(f"{self.name}: target contains non-finite values")

        estimator = self.build(config, X.shape[1])
        try:
            estimator.fit(X, y)
        except Exception as e:
            raise TrainingFailedError(f"{self.name} fit failed for {dict(config.params)}: {e}") from e
        return estimator

    def predict(self, trained: Any, X: pd.DataFrame) -> np.ndarray:
        try:
            preds = np.asarray(trained.predict(X), dtype=float)
        except Exception as e:
            raise PredictionError(f"{self.name} prediction failed: {e}") from e

        if not np.all(np.isfinite(preds)):
            raise TrainingFailedError(f"{self.name} produced non-finite predictions (diverged fit)")
        return preds


class LinearRegressionAdapter(ModelAdapter):
    """Ordinary least squares; nothing to tune."""

    name = 'linear_regression'
    estimator_name = 'LinearRegression'

    def default_space(self) -> HyperparameterSpace:
        return HyperparameterSpace()

    def default_params(self) -> Dict[str, Any]:
        return {}

    def estimator_params(self, params, n_features):
        return {}


class RandomForestAdapter(ModelAdapter):
    """Bagged regression forest."""

    name = 'random_forest'
    estimator_name = 'RandomForestRegressor'

    def default_space(self) -> HyperparameterSpace:
        return HyperparameterSpace((
            HyperParameter('sampled_features_per_split', 'int', 1, 10),
            HyperParameter('tree_count', 'int', 50, 1000),
            HyperParameter('min_leaf_size', 'int', 2, 40),
        ))

    def default_params(self) -> Dict[str, Any]:
        return {'tree_count': self.tree_count, 'min_leaf_size': 5}

    def estimator_params(self, params, n_features):
        mtry = params.get('sampled_features_per_split')
        return {
            # Unset means sqrt(p); a tuned count is clamped to the predictors available
            'max_features': max(1, int(math.sqrt(n_features))) if mtry is None else min(int(mtry), n_features),
            'n_estimators': int(params.get('tree_count', self.tree_count)),
            'min_samples_leaf': int(params.get('min_leaf_size', 5)),
            'n_jobs': 1,
        }


class GradientBoostingAdapter(ModelAdapter):
    """Gradient-boosted trees with a fixed number of boosting rounds."""

    name = 'gradient_boosting'
    estimator_name = 'GradientBoostingRegressor'

    def default_space(self) -> HyperparameterSpace:
        return HyperparameterSpace((
            HyperParameter('max_tree_depth', 'int', 1, 15),
            HyperParameter('learning_rate', 'float', 1e-3, 0.3, 'log'),
            HyperParameter('loss_reduction_threshold', 'float', 1e-8, 1e-1, 'log'),
        ))

    def default_params(self) -> Dict[str, Any]:
        return {'max_tree_depth': 3, 'learning_rate': 0.1, 'loss_reduction_threshold': 0.0}

    def estimator_params(self, params, n_features):
        return {
            'n_estimators': self.tree_count,
            'max_depth': int(params.get('max_tree_depth', 3)),
            'learning_rate': float(params.get('learning_rate', 0.1)),
            'min_impurity_decrease': float(params.get('loss_reduction_threshold', 0.0)),
        }


ADAPTERS = {
    LinearRegressionAdapter.name: LinearRegressionAdapter,
    RandomForestAdapter.name: RandomForestAdapter,
    GradientBoostingAdapter.name: GradientBoostingAdapter,
}
