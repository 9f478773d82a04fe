"""
Feature Pipeline
================

Responsibility:
- Ordered preprocessing stages (drop, one-hot encode, median impute, standardize).
- Statistics learned once per fit from training rows only and reused verbatim.
"""

from .stages import DropColumns, OneHotEncodeCategorical, MedianImputeNumeric, StandardizeNumeric
from .feature_pipeline import FeaturePipeline, FittedFeaturePipeline

__all__ = [
    'FeaturePipeline',
    'FittedFeaturePipeline',
    'DropColumns',
    'OneHotEncodeCategorical',
    'MedianImputeNumeric',
    'StandardizeNumeric',
]
