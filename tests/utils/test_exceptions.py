import pytest
from unittest.mock import MagicMock
import logging

from utils.exceptions import (
    StreamflowMLException,
    ConfigurationError,
    InvalidFractionError,
    InvalidFoldCountError,
    EmptySpaceError,
    DataValidationError,
    UnknownColumnError,
    ModelTrainingError,
    TrainingFailedError,
    MetricUndefinedError,
    NoViableConfigurationError,
)
from utils.error_handling import handle_engine_errors

def test_exception_inheritance():
    err = ConfigurationError("Test error")
    assert isinstance(err, StreamflowMLException)
    assert isinstance(err, Exception)
    assert str(err) == "Test error"

@pytest.mark.parametrize("exc, parent", [
    (InvalidFractionError, ConfigurationError),
    (InvalidFoldCountError, ConfigurationError),
    (EmptySpaceError, ConfigurationError),
    (UnknownColumnError, DataValidationError),
    (TrainingFailedError, ModelTrainingError),
    (MetricUndefinedError, StreamflowMLException),
    (NoViableConfigurationError, StreamflowMLException),
])
def test_taxonomy(exc, parent):
    assert issubclass(exc, parent)

class _Engine:
    def __init__(self):
        self.logger = MagicMock(spec=logging.Logger)

    @handle_engine_errors("Domain Step")
    def domain_failure(self):
        raise InvalidFoldCountError("v=1")

    @handle_engine_errors("Unexpected Step")
    def unexpected_failure(self):
        raise KeyError("missing")

def test_handle_engine_errors_passes_domain_errors_through():
    engine = _Engine()
    with pytest.raises(InvalidFoldCountError):
        engine.domain_failure()
    engine.logger.error.assert_not_called()

def test_handle_engine_errors_wraps_unexpected_errors():
    engine = _Engine()
    with pytest.raises(StreamflowMLException, match="Unexpected Step failed") as exc_info:
        engine.unexpected_failure()
    assert isinstance(exc_info.value.__cause__, KeyError)
    engine.logger.error.assert_called_once()
