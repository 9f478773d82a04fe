import pytest
from unittest.mock import Mock
from modules.base.base_engine import BaseEngine

# Concrete implementation for testing purposes
class ConcreteTestEngine(BaseEngine):
    def __init__(self, config, logger, engine_dir_name):
        self._engine_dir_name_value = engine_dir_name
        super().__init__(config, logger)

    def _get_engine_directory_name(self) -> str:
        return self._engine_dir_name_value

    def execute(self, *args, **kwargs):
        pass # Not relevant for BaseEngine tests

@pytest.fixture
def mock_logger():
    """Provides a mock logger instance."""
    return Mock()

@pytest.fixture
def base_config(tmp_path):
    """Provides a base configuration dictionary with a temporary results directory."""
    return {
        'outputs': {
            'base_results_dir': str(tmp_path)
        }
    }

def test_base_engine_directory_creation(base_config, mock_logger, tmp_path):
    engine = ConcreteTestEngine(base_config, mock_logger, "05_HyperparameterSearch")

    expected_dir = tmp_path / "05_HyperparameterSearch"
    assert engine.output_dir == expected_dir
    assert expected_dir.is_dir()
    mock_logger.debug.assert_called_with(f"Output directory for ConcreteTestEngine: {expected_dir}")

def test_base_engine_compute_only_mode(mock_logger, tmp_path):
    """With save_artifacts off nothing is created on disk."""
    config = {'outputs': {'base_results_dir': str(tmp_path), 'save_artifacts': False}}
    engine = ConcreteTestEngine(config, mock_logger, "X_ENGINE")

    assert engine.save_artifacts is False
    assert not (tmp_path / "X_ENGINE").exists()

def test_base_engine_skip_dir_creation(mock_logger, tmp_path):
    config = {'outputs': {'base_results_dir': str(tmp_path), 'skip_dir_creation': True}}
    ConcreteTestEngine(config, mock_logger, "Y_ENGINE")
    assert not (tmp_path / "Y_ENGINE").exists()

def test_base_engine_is_abstract(base_config, mock_logger):
    with pytest.raises(TypeError):
        BaseEngine(base_config, mock_logger)
