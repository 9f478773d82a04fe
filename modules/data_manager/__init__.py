"""
Data Manager Module
===================

Responsibility:
- Loading of the prepared tabular dataset (CSV, Parquet, Excel).
- Validation of the target column and column-level NaN/Inf statistics.
- Removal of rows whose target is missing before they reach the search.
"""

from .data_manager import DataManager

__all__ = ['DataManager']
