"""
Training Engine Module
======================

Responsibility:
- Fits a fresh feature pipeline on the full training partition.
- Fits the selected configuration through its model adapter.
- Persists the final model (.pkl) and training metadata (.json).
"""

from .training_engine import TrainingEngine, FinalModel

__all__ = ['TrainingEngine', 'FinalModel']
