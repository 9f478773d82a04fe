import pytest
import logging
import numpy as np
import pandas as pd
from unittest.mock import MagicMock

from modules.search_controller import SearchController
from utils.exceptions import ConfigurationError, InvalidFoldCountError

@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)

def make_attributes(n=500, seed=0):
    """Catchment-attribute style table with a smooth q_mean signal."""
    rng = np.random.default_rng(seed)
    df = pd.DataFrame({
        'gauge_id': [f"{i:08d}" for i in range(n)],
        'p_mean': rng.gamma(3.0, 1.0, size=n),
        'pet_mean': rng.uniform(1.5, 5.0, size=n),
        'frac_snow': rng.uniform(0.0, 0.8, size=n),
        'elev_mean': rng.normal(800, 400, size=n),
        'slope_mean': rng.gamma(2.0, 30.0, size=n),
        'geol_class': rng.choice(['carbonate', 'siliciclastic', 'metamorphics'], size=n),
    })
    df.loc[rng.choice(n, size=20, replace=False), 'slope_mean'] = np.nan
    aridity = df['pet_mean'] / df['p_mean']
    df['q_mean'] = np.clip(df['p_mean'] * np.exp(-aridity) + 0.3 * df['frac_snow']
                           + rng.normal(scale=0.05, size=n), 0.0, None)
    return df

@pytest.fixture
def e2e_config(tmp_path):
    return {
        'data': {'target': 'q_mean', 'drop_columns': ['gauge_id'], 'id_columns': ['gauge_id']},
        'splitting': {'train_fraction': 0.8, 'seed': 123},
        'cross_validation': {'fold_count': 5},
        'models': {'compare': ['linear_regression', 'gradient_boosting'], 'tune': 'gradient_boosting',
                   'fixed_tree_count': 20},
        'hyperparameters': {'candidate_count': 10},
        'outputs': {'base_results_dir': str(tmp_path), 'save_artifacts': False},
    }

def test_end_to_end_scenario(e2e_config, mock_logger):
    data = make_attributes()
    result = SearchController(e2e_config, mock_logger).run(data, run_id="e2e")

    assert len(result.train) == 400
    assert len(result.test) == 100
    assert set(result.train.index).isdisjoint(result.test.index)

    assert sorted(result.folds.unique()) == [1, 2, 3, 4, 5]
    assert result.folds.index.equals(result.train.index)
    assert len(result.outcome.aggregated) == 10
    assert len(result.ranked_table) == 10
    assert result.selected_configuration.model_name == 'gradient_boosting'
    assert result.selected_configuration.config_id == result.ranked_table.iloc[0]['config_id']

    assert result.test_metrics['rmse'] >= 0
    assert result.test_metrics['rmse'] >= result.test_metrics['mae']

    predictions = result.predictions
    assert len(predictions) == 500
    assert (predictions['split'] == 'test').sum() == 100
    np.testing.assert_allclose(predictions['residual'], predictions['actual'] - predictions['prediction'])
    assert "Selected configuration" in result.summary

def test_full_search_is_deterministic(e2e_config, mock_logger):
    e2e_config['hyperparameters']['candidate_count'] = 4
    e2e_config['models']['compare'] = []
    data = make_attributes(n=150, seed=3)

    first = SearchController(e2e_config, mock_logger).run(data)
    second = SearchController(e2e_config, mock_logger).run(data)

    pd.testing.assert_frame_equal(first.ranked_table, second.ranked_table)
    assert first.selected_configuration == second.selected_configuration
    assert first.test_metrics == second.test_metrics

def test_auto_tune_with_empty_space(e2e_config, mock_logger):
    e2e_config['models'] = {'compare': ['linear_regression'], 'tune': 'auto'}
    result = SearchController(e2e_config, mock_logger).run(make_attributes(n=100))

    assert result.comparison['model'].tolist() == ['linear_regression']
    assert len(result.outcome.candidates) == 1
    assert result.selected_configuration.model_name == 'linear_regression'

def test_invalid_configuration_rejected_up_front(e2e_config, mock_logger):
    e2e_config['cross_validation']['fold_count'] = 1
    with pytest.raises(InvalidFoldCountError):
        SearchController(e2e_config, mock_logger)

def test_unknown_selection_metric(e2e_config, mock_logger):
    e2e_config['metrics'] = {'names': ['rmse'], 'selection_metric': 'mae'}
    with pytest.raises(ConfigurationError):
        SearchController(e2e_config, mock_logger)

def test_artifacts_layout(e2e_config, mock_logger, tmp_path):
    e2e_config['outputs']['save_artifacts'] = True
    e2e_config['hyperparameters']['candidate_count'] = 2
    SearchController(e2e_config, mock_logger).run(make_attributes(n=80), run_id="layout")

    for sub in ("02_DataQualityChecks", "03_MasterDataSplits", "04_ModelFamilyComparison",
                "05_HyperparameterSearch", "06_TrainedModel", "07_TestEvaluation", "08_FinalReports"):
        assert (tmp_path / sub).is_dir(), sub
    assert (tmp_path / "07_TestEvaluation" / "predictions_full_dataset.parquet").exists()
    assert (tmp_path / "08_FinalReports" / "search_summary.txt").exists()
