"""
Aggregation of fold results and ranking of configurations.

Everything here is a pure function of its inputs: the same fold results
always produce the same aggregates, the same order and the same winner.
"""
import logging
import math
import numpy as np
import pandas as pd
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from modules.hpo_search_engine.cross_validation import FoldResult
from modules.hpo_search_engine.search_space import Configuration
from utils.exceptions import ConfigurationError, NoViableConfigurationError
from utils import constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregatedResult:
    """Mean and sample standard deviation of every metric across successful folds."""
    config_id: str
    generation_index: int
    model_name: str
    params: Mapping[str, Any]
    summary: Dict[str, Dict[str, float]] = field(default_factory=dict)
    n_folds: int = 0
    n_failed_folds: int = 0

    def mean(self, metric: str) -> Optional[float]:
        stats = self.summary.get(metric)
        return None if stats is None else stats['mean']

    def configuration(self) -> Configuration:
        return Configuration(self.model_name, dict(self.params), self.generation_index)


def aggregate(fold_results: Sequence[FoldResult],
              configs: Optional[Sequence[Configuration]] = None) -> List[AggregatedResult]:
    """
    Reduce fold results to one AggregatedResult per configuration, in generation order.

    `configs` supplies the parameter values; without it the params are left empty.
    Configurations whose folds all failed are dropped with a warning.
    """
    params_by_id = {c.config_id: dict(c.params) for c in (configs or [])}

    grouped: "OrderedDict[str, List[FoldResult]]" = OrderedDict()
    for res in sorted(fold_results, key=lambda r: (r.generation_index, r.fold_id)):
        grouped.setdefault(res.config_id, []).append(res)

    aggregated = []
    for config_id, results in grouped.items():
        ok = [r for r in results if r.ok]
        failed = len(results) - len(ok)
        head = results[0]

        if not ok:
            logger.warning(
                f"Config #{head.generation_index} ({head.model_name}, {config_id[:8]}) dropped: "
                f"all {len(results)} folds failed. First error: {results[0].error}"
            )
            continue

        metric_names = sorted({name for r in ok for name in r.metrics})
        summary = {}
        for name in metric_names:
            values = np.array([r.metrics[name] for r in ok if name in r.metrics], dtype=float)
            summary[name] = {
                'mean': float(np.mean(values)),
                'std': float(np.std(values, ddof=1)) if len(values) > 1 else float('nan'),
            }

        aggregated.append(AggregatedResult(
            config_id=config_id,
            generation_index=head.generation_index,
            model_name=head.model_name,
            params=params_by_id.get(config_id, {}),
            summary=summary,
            n_folds=len(ok),
            n_failed_folds=failed,
        ))

    return aggregated


def rank(aggregated: Sequence[AggregatedResult], metric: str, direction: str = 'minimize') -> List[AggregatedResult]:
    """
    Order configurations by the mean of `metric`.

    Ascending for 'minimize', descending for 'maximize'; ties go to the
    earliest generation index. Results without a finite mean are left out.
    """
    if direction not in constants.DIRECTIONS:
        raise ConfigurationError(f"direction must be one of {list(constants.DIRECTIONS)}, got '{direction}'")

    sign = 1.0 if direction == 'minimize' else -1.0
    rankable = [r for r in aggregated if r.mean(metric) is not None and math.isfinite(r.mean(metric))]
    return sorted(rankable, key=lambda r: (sign * r.mean(metric), r.generation_index))


def select_best(aggregated: Sequence[AggregatedResult], metric: str, direction: str = 'minimize') -> AggregatedResult:
    """First configuration of the ranking."""
    ranked = rank(aggregated, metric, direction)
    if not ranked:
        raise NoViableConfigurationError(
            f"No configuration produced a usable '{metric}' estimate ({len(aggregated)} aggregated results)."
        )
    return ranked[0]


def to_frame(ranked: Sequence[AggregatedResult], metrics: Sequence[str]) -> pd.DataFrame:
    """Ranked table: one row per configuration with cv_<metric>_mean / cv_<metric>_std columns."""
    rows = []
    for position, res in enumerate(ranked, start=1):
        row: Dict[str, Any] = {
            'rank': position,
            'config_id': res.config_id,
            'generation_index': res.generation_index,
            'model': res.model_name,
        }
        for name, value in res.params.items():
            row[f'param_{name}'] = value
        for name in metrics:
            stats = res.summary.get(name, {})
            row[f'cv_{name}_mean'] = stats.get('mean', float('nan'))
            row[f'cv_{name}_std'] = stats.get('std', float('nan'))
        row['n_folds'] = res.n_folds
        row['n_failed_folds'] = res.n_failed_folds
        rows.append(row)
    return pd.DataFrame(rows)


def fold_results_frame(fold_results: Sequence[FoldResult]) -> pd.DataFrame:
    """Long table of every fold evaluation, failed ones included."""
    rows = []
    for res in fold_results:
        row = {
            'config_id': res.config_id,
            'generation_index': res.generation_index,
            'model': res.model_name,
            'fold': res.fold_id,
            'status': res.status,
            'error': res.error,
            'n_train': res.n_train,
            'n_holdout': res.n_holdout,
        }
        row.update(res.metrics)
        rows.append(row)
    return pd.DataFrame(rows)
