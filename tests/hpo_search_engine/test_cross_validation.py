import pytest
import logging
import numpy as np
import pandas as pd
from unittest.mock import MagicMock

from modules.feature_pipeline import FeaturePipeline
from modules.model_factory import LinearRegressionAdapter, GradientBoostingAdapter
from modules.hpo_search_engine.cross_validation import CrossValidationEvaluator, run_fold
from modules.hpo_search_engine.search_space import Configuration
from modules.split_engine import SplitEngine
from utils.exceptions import DataValidationError, MetricUndefinedError, TrainingFailedError
from utils import constants

@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)

@pytest.fixture
def train():
    rng = np.random.default_rng(11)
    df = pd.DataFrame({
        'p_mean': rng.gamma(2.0, size=80),
        'aridity': rng.uniform(0.2, 3.0, size=80),
    }, index=np.arange(100, 180))
    df['q_mean'] = 0.6 * df['p_mean'] - 0.3 * df['aridity'] + rng.normal(scale=0.05, size=80)
    return df

@pytest.fixture
def folds(train):
    return SplitEngine.make_folds(train, 4, seed=3)

@pytest.fixture
def pipeline():
    return FeaturePipeline(target='q_mean')

METRICS = ['rmse', 'r_squared', 'mae']

class FailingOnRowAdapter(LinearRegressionAdapter):
    """Fails whenever a chosen row is held out, for one chosen configuration."""

    def __init__(self, poisoned_rows, generation_index=0):
        super().__init__()
        self.poisoned_rows = set(poisoned_rows)
        self.failing_generation = generation_index

    def fit(self, X, y, config):
        if config.generation_index == self.failing_generation and not self.poisoned_rows & set(X.index):
            raise TrainingFailedError("injected failure")
        return super().fit(X, y, config)

def test_one_result_per_fold(mock_logger, train, folds, pipeline):
    adapter = LinearRegressionAdapter()
    evaluator = CrossValidationEvaluator(mock_logger)
    results = evaluator.evaluate(adapter, adapter.default_configuration(), pipeline, train, folds, METRICS)

    assert [r.fold_id for r in results] == [1, 2, 3, 4]
    assert all(r.ok for r in results)
    assert sum(r.n_holdout for r in results) == len(train)
    for r in results:
        assert set(r.metrics) == set(METRICS)
        assert r.metrics['rmse'] >= 0
        assert r.n_train + r.n_holdout == len(train)

def test_fold_failure_is_isolated(mock_logger, train, folds, pipeline):
    poisoned = folds.index[folds == 2][0]
    adapter = FailingOnRowAdapter([poisoned])
    configs = [Configuration('linear_regression', {}, 0), Configuration('linear_regression', {'fit_intercept': True}, 1)]

    results = CrossValidationEvaluator(mock_logger).evaluate_many(adapter, configs, pipeline, train, folds, METRICS)

    assert len(results) == 8
    failed = [r for r in results if not r.ok]
    assert len(failed) == 1
    assert failed[0].fold_id == 2
    assert failed[0].generation_index == 0
    assert failed[0].status == constants.STATUS_FAILED
    assert "TrainingFailedError: injected failure" in failed[0].error
    assert failed[0].metrics == {}
    mock_logger.warning.assert_called()

def test_results_ordered_by_config_then_fold(mock_logger, train, folds, pipeline):
    adapter = GradientBoostingAdapter(tree_count=5, random_state=0)
    configs = [
        Configuration('gradient_boosting', {'max_tree_depth': d, 'learning_rate': 0.1}, i)
        for i, d in enumerate((1, 2, 3))
    ]
    results = CrossValidationEvaluator(mock_logger).evaluate_many(adapter, configs, pipeline, train, folds, ['mae'])
    assert [(r.generation_index, r.fold_id) for r in results] == [(i, f) for i in range(3) for f in range(1, 5)]

def test_parallel_matches_sequential(mock_logger, train, folds, pipeline):
    adapter = GradientBoostingAdapter(tree_count=5, random_state=0)
    config = Configuration('gradient_boosting', {'max_tree_depth': 2, 'learning_rate': 0.2}, 0)

    sequential = CrossValidationEvaluator(mock_logger, n_jobs=1).evaluate(adapter, config, pipeline, train, folds, METRICS)
    parallel = CrossValidationEvaluator(mock_logger, n_jobs=2).evaluate(adapter, config, pipeline, train, folds, METRICS)
    assert [r.metrics for r in sequential] == [r.metrics for r in parallel]

def test_global_fit_mode_warns(mock_logger, train, folds, pipeline):
    adapter = LinearRegressionAdapter()
    evaluator = CrossValidationEvaluator(mock_logger, refit_pipeline_per_fold=False)
    results = evaluator.evaluate(adapter, adapter.default_configuration(), pipeline, train, folds, ['rmse'])

    assert all(r.ok for r in results)
    mock_logger.warning.assert_any_call(
        "Feature pipeline fitted once on the full training set and shared by all folds."
    )

def test_unknown_metric_raises_before_fitting(mock_logger, train, folds, pipeline):
    adapter = LinearRegressionAdapter()
    with pytest.raises(MetricUndefinedError):
        CrossValidationEvaluator(mock_logger).evaluate(adapter, adapter.default_configuration(), pipeline, train, folds, ['mape'])

def test_fold_assignment_must_match_rows(mock_logger, train, folds, pipeline):
    adapter = LinearRegressionAdapter()
    with pytest.raises(DataValidationError):
        CrossValidationEvaluator(mock_logger).evaluate(
            adapter, adapter.default_configuration(), pipeline, train, folds.iloc[:-1], METRICS
        )

def test_run_fold_fits_pipeline_on_training_rows_only(train, folds, pipeline):
    """An extreme value in the held-out fold must not reach the preprocessing statistics."""
    spiked = train.copy()
    holdout = folds.index[folds == 1]
    spiked.loc[holdout, 'p_mean'] = 1e6

    adapter = LinearRegressionAdapter()
    config = adapter.default_configuration()
    result = run_fold(adapter, config, pipeline, spiked, folds, 1, METRICS)

    # Same computation done by hand with a pipeline fitted on folds 2..4 only
    fit_rows = spiked.loc[folds.index[folds != 1]]
    fitted = pipeline.fit(fit_rows)
    model = adapter.fit(*fitted.split_xy(fit_rows), config)
    X_holdout, y_holdout = fitted.split_xy(spiked.loc[holdout])
    preds = adapter.predict(model, X_holdout)

    assert result.ok
    assert result.metrics['mae'] == pytest.approx(np.mean(np.abs(y_holdout.to_numpy() - preds)))
    scaler = fitted.stages[3].scaler_
    assert dict(zip(scaler.feature_names_in_, scaler.mean_))['p_mean'] < 1e3

def test_r_squared_with_single_row_folds_raises_before_fitting(mock_logger, train, pipeline):
    small = train.iloc[:24]
    folds = SplitEngine.make_folds(small, 24, seed=3)
    adapter = LinearRegressionAdapter()

    with pytest.raises(MetricUndefinedError, match="r_squared"):
        CrossValidationEvaluator(mock_logger).evaluate(
            adapter, adapter.default_configuration(), pipeline, small, folds, METRICS
        )

def test_single_row_folds_allowed_without_r_squared(mock_logger, train, pipeline):
    small = train.iloc[:24]
    folds = SplitEngine.make_folds(small, 24, seed=3)
    adapter = LinearRegressionAdapter()

    results = CrossValidationEvaluator(mock_logger).evaluate(
        adapter, adapter.default_configuration(), pipeline, small, folds, ['rmse', 'mae']
    )
    assert len(results) == 24
    assert all(r.ok for r in results)

def test_undefined_metric_in_fold_is_not_recorded_as_failure(train, folds, pipeline):
    """A constant held-out target makes r_squared undefined; the error surfaces instead of a failed fold."""
    flat = train.copy()
    flat.loc[folds.index[folds == 2], 'q_mean'] = 1.5

    adapter = LinearRegressionAdapter()
    with pytest.raises(MetricUndefinedError, match="constant target"):
        run_fold(adapter, adapter.default_configuration(), pipeline, flat, folds, 2, METRICS)
