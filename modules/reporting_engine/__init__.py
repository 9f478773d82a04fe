"""
Reporting Engine
================

Responsibility:
- Plain-text summary of a completed search (comparison, ranking, selection, test scores).
- Fold consistency and cross-validation vs test gap tables.
"""

from .reporting_engine import ReportingEngine

__all__ = ['ReportingEngine']
