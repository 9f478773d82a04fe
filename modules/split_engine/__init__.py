"""
Split Engine
============

Responsibility:
- Deterministic train/test partitioning of the validated dataset.
- Deterministic k-fold assignment of training rows for cross-validation.
"""

from .split_engine import SplitEngine

__all__ = ['SplitEngine']
