# utils/constants.py

# --- Top-Level Result Directories ---
# Sequentially numbered so the run folder sorts in pipeline order

CONFIG_DIR = "01_RunConfiguration"                 # Run config, metadata, seeds
DATA_INTEGRITY_DIR = "02_DataQualityChecks"        # Loaded data, column stats
MASTER_SPLITS_DIR = "03_MasterDataSplits"          # Train/test partitions
MODEL_COMPARISON_DIR = "04_ModelFamilyComparison"  # Default config per family, CV
HPO_SEARCH_DIR = "05_HyperparameterSearch"         # Candidates, fold results, ranking
FINAL_MODEL_DIR = "06_TrainedModel"                # Refit on full training set
EVALUATION_DIR = "07_TestEvaluation"               # Test metrics, predictions
REPORTING_DIR = "08_FinalReports"                  # Text summary

# --- File Names ---
CONFIG_USED_FILE = "config_used.json"
CONFIG_HASH_FILE = "config_hash.txt"
RUN_METADATA_FILE = "run_metadata.json"
RANKED_CONFIGS_FILE = "ranked_configurations.parquet"
FOLD_RESULTS_FILE = "fold_results.parquet"
BEST_CONFIG_FILE = "best_configuration.json"
FINAL_MODEL_FILE = "final_model.pkl"
PREDICTIONS_FILE = "predictions_full_dataset.parquet"
TEST_METRICS_FILE = "test_metrics.json"
SUMMARY_FILE = "search_summary.txt"

# --- Split labels ---
SPLIT_TRAIN = "train"
SPLIT_TEST = "test"

# --- Search vocabulary ---
METRIC_NAMES = ("rmse", "r_squared", "mae")
DIRECTIONS = ("minimize", "maximize")
STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
