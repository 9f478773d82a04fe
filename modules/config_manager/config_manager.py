import copy
import json
import os
import hashlib
import sys
import logging
import jsonschema
import psutil  # Required for memory awareness
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

from utils.exceptions import ConfigurationError, InvalidFractionError, InvalidFoldCountError
from utils import constants

DEFAULT_CONFIG: Dict[str, Any] = {
    'data': {
        'target': 'q_mean',
        'drop_columns': [],
        'id_columns': [],
        'categorical_columns': None,
    },
    'splitting': {
        'train_fraction': 0.8,
        'seed': 123,
    },
    'cross_validation': {
        'fold_count': 10,
        'refit_pipeline_per_fold': True,
    },
    'models': {
        'compare': ['linear_regression', 'random_forest', 'gradient_boosting'],
        'tune': 'gradient_boosting',
        'fixed_tree_count': 500,
    },
    'hyperparameters': {
        'enabled': True,
        'candidate_count': 25,
        'spaces': {},
    },
    'metrics': {
        'names': ['rmse', 'r_squared', 'mae'],
        'selection_metric': 'mae',
        'direction': 'minimize',
    },
    'execution': {'n_jobs': 1},
    'resources': {'max_candidates': 1000},
    'logging': {
        'level': 'INFO',
        'log_to_console': True,
        'log_to_file': True,
        'colorful_console': True,
        'log_dir': 'logs',
    },
    'reporting': {'top_n': 10},
    'outputs': {
        'base_results_dir': 'results',
        'save_artifacts': True,
        'save_models': True,
        'save_excel_copy': False,
    },
}


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def apply_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a new configuration with every recognised option filled in.
    The input dictionary is left untouched.
    """
    hydrated = _merge(DEFAULT_CONFIG, config or {})
    if '_internal_seeds' not in hydrated:
        propagate_seeds(hydrated)
    return hydrated


def propagate_seeds(config: Dict[str, Any]) -> Dict[str, int]:
    """
    Derive per-component seeds from the master seed.
    Uses large, non-overlapping offsets to avoid correlation between components.
    """
    master_seed = config.get('splitting', {}).get('seed', DEFAULT_CONFIG['splitting']['seed'])
    config['_internal_seeds'] = {
        'split': master_seed,
        'cv': master_seed + 1000,
        'model': master_seed + 2000,
        'candidates': master_seed + 3000,
    }
    return config['_internal_seeds']


class ConfigurationManager:
    """
    Manages system configuration loading, validation, and access.
    Acts as the single source of truth and safety guard for the pipeline.
    """

    DEFAULT_MAX_CANDIDATES = 1000  # Prevent accidental evaluation explosions
    KNOWN_MODELS = ('linear_regression', 'random_forest', 'gradient_boosting')

    def __init__(self, config_path: str = "config/config.json",
                 schema_path: str = "config/schema.json"):
        """
        Initialize the ConfigurationManager.

        Args:
            config_path (str): Path to the user configuration JSON.
            schema_path (str): Path to the JSON schema definition.
        """
        self.config_path = config_path
        self.schema_path = schema_path
        self.config: Dict[str, Any] = {}
        self.schema: Dict[str, Any] = {}
        self.run_id: Optional[str] = None
        self.logger = logging.getLogger("config_manager")

    def load_and_validate(self) -> Dict[str, Any]:
        """
        Main entry point. Loads config, validates schema/logic/resources,
        applies defaults, and propagates seeds.

        Returns:
            Dict[str, Any]: The fully validated and hydrated configuration.

        Raises:
            ConfigurationError: If any validation step fails.
        """
        raw = self._load_json(self.config_path)
        self.schema = self._load_json(self.schema_path)

        self._validate_schema(raw)

        self.config = apply_defaults(raw)
        self.validate_logic(self.config)
        self._validate_resources()
        propagate_seeds(self.config)
        self.logger.debug(f"Seeds propagated: {self.config['_internal_seeds']}")

        return self.config

    def generate_run_id(self) -> str:
        """
        Generate or retrieve a unique run identifier based on timestamp.
        """
        if not self.run_id:
            self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.run_id

    def save_artifacts(self, output_dir: str) -> None:
        """
        Save configuration artifacts to the run directory for full reproducibility.

        Saves:
        1. config_used.json: The exact config object in memory.
        2. config_hash.txt: SHA256 hash for versioning.
        3. run_metadata.json: Environment details (Python version, Platform, etc.).
        """
        config_dir = Path(output_dir) / constants.CONFIG_DIR
        config_dir.mkdir(parents=True, exist_ok=True)

        with open(config_dir / constants.CONFIG_USED_FILE, 'w') as f:
            json.dump(self.config, f, indent=2)

        config_str = json.dumps(self.config, sort_keys=True)
        config_hash = hashlib.sha256(config_str.encode()).hexdigest()

        with open(config_dir / constants.CONFIG_HASH_FILE, 'w') as f:
            f.write(config_hash)

        metadata = {
            'run_id': self.run_id,
            'start_time': datetime.now().isoformat(),
            'python_version': sys.version,
            'platform': sys.platform,
            'config_hash': config_hash,
            'working_directory': os.getcwd()
        }

        with open(config_dir / constants.RUN_METADATA_FILE, 'w') as f:
            json.dump(metadata, f, indent=2)

    def _load_json(self, path: str) -> Dict[str, Any]:
        """Safely load a JSON file."""
        if not os.path.exists(path):
            raise ConfigurationError(f"File not found: {path}")
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {str(e)}")

    def _validate_schema(self, instance: Dict[str, Any]) -> None:
        """Validate config structure against JSON schema."""
        try:
            jsonschema.validate(instance=instance, schema=self.schema)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Schema validation failed: {e.message}")

    @classmethod
    def validate_logic(cls, config: Dict[str, Any]) -> None:
        """
        Logical validation of a hydrated configuration.
        Raised eagerly so that no bad option reaches the evaluation loop.
        """
        # --- Data Section ---
        data = config.get('data', {})
        if not data.get('target'):
            raise ConfigurationError("Data 'target' must be specified and non-empty.")
        if data['target'] in data.get('drop_columns', []):
            raise ConfigurationError(f"Target column '{data['target']}' cannot be listed in drop_columns.")

        # --- Splitting Section ---
        split = config.get('splitting', {})
        train_fraction = split.get('train_fraction', 0.8)
        if not (0.0 < train_fraction < 1.0):
            raise InvalidFractionError(f"train_fraction must be between 0 and 1 (exclusive), got {train_fraction}")
        if split.get('seed', 0) < 0:
            raise ConfigurationError("Splitting seed must be non-negative.")

        # --- Cross-Validation Section ---
        fold_count = config.get('cross_validation', {}).get('fold_count', 10)
        if fold_count < 2:
            raise InvalidFoldCountError(f"fold_count must be >= 2, got {fold_count}.")

        # --- Models Section ---
        models = config.get('models', {})
        compare = models.get('compare', [])
        unknown = [m for m in compare if m not in cls.KNOWN_MODELS]
        if unknown:
            raise ConfigurationError(f"Unknown model families in models.compare: {unknown}. Available: {list(cls.KNOWN_MODELS)}")
        tune = models.get('tune', 'auto')
        if tune != 'auto' and tune not in cls.KNOWN_MODELS:
            raise ConfigurationError(f"models.tune must be 'auto' or one of {list(cls.KNOWN_MODELS)}, got '{tune}'.")
        if tune == 'auto' and not compare:
            raise ConfigurationError("models.tune='auto' requires at least one family in models.compare.")
        if models.get('fixed_tree_count', 500) < 1:
            raise ConfigurationError("models.fixed_tree_count must be >= 1.")

        # --- HPO Section ---
        hpo = config.get('hyperparameters', {})
        if hpo.get('candidate_count', 25) < 1:
            raise ConfigurationError(f"candidate_count must be >= 1, got {hpo.get('candidate_count')}.")

        # --- Metrics Section ---
        metrics = config.get('metrics', {})
        names = metrics.get('names', [])
        if not names:
            raise ConfigurationError("metrics.names cannot be empty.")
        bad = [m for m in names if m not in constants.METRIC_NAMES]
        if bad:
            raise ConfigurationError(f"Unknown metrics {bad}. Available: {list(constants.METRIC_NAMES)}")
        selection = metrics.get('selection_metric', 'mae')
        if selection not in names:
            raise ConfigurationError(f"selection_metric '{selection}' must be one of metrics.names {names}.")
        if metrics.get('direction', 'minimize') not in constants.DIRECTIONS:
            raise ConfigurationError(f"direction must be one of {list(constants.DIRECTIONS)}, got '{metrics.get('direction')}'.")

        # --- Execution Section ---
        n_jobs = config.get('execution', {}).get('n_jobs', 1)
        if n_jobs == 0 or n_jobs < -1:
            raise ConfigurationError(f"execution.n_jobs must be -1 (all cores) or a positive integer, got {n_jobs}")

    def _validate_resources(self) -> None:
        """
        Guard the candidate budget and memory settings before any work starts.
        """
        resources = self.config.setdefault('resources', {})

        max_candidates = resources.get('max_candidates', self.DEFAULT_MAX_CANDIDATES)
        if max_candidates < 1:
            raise ConfigurationError(f"resources.max_candidates must be >= 1, got {max_candidates}")

        requested = self.config['hyperparameters']['candidate_count']
        if requested > max_candidates:
            self.logger.warning(
                f"candidate_count ({requested}) exceeds resources.max_candidates ({max_candidates}); "
                "the search will be capped."
            )

        system_ram_mb = int(psutil.virtual_memory().total / (1024 * 1024))
        safe_ram_limit = int(system_ram_mb * 0.8)
        config_max_ram = resources.get('max_memory_mb', safe_ram_limit)

        if config_max_ram > system_ram_mb:
            self.logger.warning(
                f"Configured max_memory_mb ({config_max_ram}MB) exceeds physical system RAM ({system_ram_mb}MB). "
                "This may lead to instability."
            )

        resources['max_memory_mb'] = config_max_ram
