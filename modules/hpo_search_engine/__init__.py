"""
HPO Search Engine
=================

Responsibility:
- Hyperparameter spaces and immutable candidate configurations.
- Space-filling (Latin hypercube) candidate generation.
- Fail-soft k-fold cross-validation of candidates.
- Aggregation, ranking and selection of the best configuration.
"""

from .search_space import HyperParameter, HyperparameterSpace, Configuration
from .candidate_generator import CandidateGenerator
from .cross_validation import CrossValidationEvaluator, FoldResult, run_fold
from .ranking import AggregatedResult, aggregate, rank, select_best, to_frame, fold_results_frame
from .hpo_search_engine import HPOSearchEngine, SearchOutcome

__all__ = [
    'HyperParameter',
    'HyperparameterSpace',
    'Configuration',
    'CandidateGenerator',
    'CrossValidationEvaluator',
    'FoldResult',
    'run_fold',
    'AggregatedResult',
    'aggregate',
    'rank',
    'select_best',
    'to_frame',
    'fold_results_frame',
    'HPOSearchEngine',
    'SearchOutcome',
]
