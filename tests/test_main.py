import json
import logging
import numpy as np
import pandas as pd
import pytest
from pathlib import Path

import main

SCHEMA_PATH = Path(__file__).parents[1] / "config" / "schema.json"

@pytest.fixture
def cli_files(tmp_path):
    rng = np.random.default_rng(4)
    data = pd.DataFrame({'p_mean': rng.gamma(2.0, size=60), 'aridity': rng.uniform(0.3, 2.0, size=60)})
    data['q_mean'] = data['p_mean'] / (1 + data['aridity'])
    data_path = tmp_path / "attributes.csv"
    data.to_csv(data_path, index=False)

    config = {
        'data': {'file_path': str(data_path), 'target': 'q_mean'},
        'splitting': {'train_fraction': 0.8, 'seed': 1},
        'cross_validation': {'fold_count': 3},
        'models': {'compare': ['linear_regression'], 'tune': 'gradient_boosting', 'fixed_tree_count': 5},
        'hyperparameters': {'candidate_count': 2},
        'logging': {'log_to_file': False, 'colorful_console': False},
        'outputs': {'base_results_dir': str(tmp_path / "results")},
    }
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(config))
    yield config_path, tmp_path
    logging.getLogger().handlers = []

def test_dry_run(cli_files):
    config_path, tmp_path = cli_files
    code = main.main(["--config", str(config_path), "--schema", str(SCHEMA_PATH), "--dry-run"])

    assert code == 0
    assert (tmp_path / "results" / "01_RunConfiguration" / "config_used.json").exists()
    assert not (tmp_path / "results" / "05_HyperparameterSearch").exists()

def test_full_run_with_run_id(cli_files):
    config_path, tmp_path = cli_files
    code = main.main(["--config", str(config_path), "--schema", str(SCHEMA_PATH), "--run-id", "abc"])

    assert code == 0
    run_dir = tmp_path / "results_abc"
    assert (run_dir / "05_HyperparameterSearch" / "best_configuration.json").exists()
    assert (run_dir / "08_FinalReports" / "search_summary.txt").exists()

def test_configuration_error_exit_code(tmp_path):
    code = main.main(["--config", str(tmp_path / "missing.json"), "--schema", str(SCHEMA_PATH)])
    assert code == 1
