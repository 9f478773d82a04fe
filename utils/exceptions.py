"""
Custom exception hierarchy for the Streamflow HPO pipeline.
"""

class StreamflowMLException(Exception):
    """Base exception for all system errors."""
    pass

class ConfigurationError(StreamflowMLException):
    """Configuration validation failed."""
    pass

class InvalidFractionError(ConfigurationError):
    """Train fraction outside the open interval (0, 1)."""
    pass

class InvalidFoldCountError(ConfigurationError):
    """Fold count below 2 or larger than the training set."""
    pass

class EmptySpaceError(ConfigurationError):
    """More than one candidate requested from a space with no tunable parameters."""
    pass

class DataValidationError(StreamflowMLException):
    """Data validation failed."""
    pass

class UnknownColumnError(DataValidationError):
    """A column referenced by the feature pipeline is absent."""
    pass

class ModelTrainingError(StreamflowMLException):
    """Model training failed."""
    pass

class TrainingFailedError(ModelTrainingError):
    """The underlying estimator diverged or received degenerate input."""
    pass

class MetricUndefinedError(StreamflowMLException):
    """A requested metric cannot be computed for the given predictions."""
    pass

class NoViableConfigurationError(StreamflowMLException):
    """Every candidate configuration failed during the search."""
    pass

class PredictionError(StreamflowMLException):
    """Prediction generation failed."""
    pass
