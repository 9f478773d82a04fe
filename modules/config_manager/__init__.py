"""
Configuration Manager Module
============================

Responsibility:
- Centralized loading and validation of JSON configuration files.
- Enforcement of schema constraints and logical rules (fractions, folds, metrics).
- Candidate budget and memory guardrails.
- Deterministic seed propagation for reproducibility.
"""

from .config_manager import ConfigurationManager, apply_defaults, propagate_seeds, DEFAULT_CONFIG

__all__ = ['ConfigurationManager', 'apply_defaults', 'propagate_seeds', 'DEFAULT_CONFIG']
