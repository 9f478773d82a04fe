import logging
import pandas as pd
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from joblib import Parallel, delayed

from modules.hpo_search_engine.search_space import Configuration
from modules.feature_pipeline import FeaturePipeline, FittedFeaturePipeline
from modules.evaluation_engine.metrics import compute_metrics, METRIC_FUNCTIONS
from utils.exceptions import DataValidationError, MetricUndefinedError
from utils import constants


@dataclass(frozen=True)
class FoldResult:
    """Metrics of one configuration on one held-out fold."""
    config_id: str
    generation_index: int
    model_name: str
    fold_id: int
    metrics: Dict[str, float] = field(default_factory=dict)
    status: str = constants.STATUS_SUCCESS
    error: Optional[str] = None
    n_train: int = 0
    n_holdout: int = 0

    @property
    def ok(self) -> bool:
        return self.status == constants.STATUS_SUCCESS


def run_fold(adapter: Any, config: Configuration, pipeline: FeaturePipeline, train: pd.DataFrame,
             fold_assignment: pd.Series, fold_id: int, metrics: Sequence[str],
             fitted_global: Optional[FittedFeaturePipeline] = None) -> FoldResult:
    """
    Train on every fold except `fold_id` and score the held-out fold.

    The feature pipeline is fitted on the fold's training rows unless a
    globally fitted pipeline is supplied. A training or prediction failure is
    returned as a failed FoldResult so one bad fold never aborts the search;
    a metric that cannot be computed raises MetricUndefinedError.
    """
    in_holdout = fold_assignment == fold_id
    fit_rows = train.loc[fold_assignment.index[~in_holdout]]
    holdout_rows = train.loc[fold_assignment.index[in_holdout]]
    common = dict(
        config_id=config.config_id,
        generation_index=config.generation_index,
        model_name=config.model_name,
        fold_id=int(fold_id),
        n_train=len(fit_rows),
        n_holdout=len(holdout_rows),
    )

    try:
        fitted = fitted_global if fitted_global is not None else pipeline.fit(fit_rows)
        X_fit, y_fit = fitted.split_xy(fit_rows)
        model = adapter.fit(X_fit, y_fit, config)

        X_holdout, y_holdout = fitted.split_xy(holdout_rows)
        preds = adapter.predict(model, X_holdout)
    except Exception as e:
        return FoldResult(status=constants.STATUS_FAILED, error=f"{type(e).__name__}: {e}", **common)

    values = compute_metrics(metrics, y_holdout.to_numpy(), preds)
    return FoldResult(metrics=values, **common)


class CrossValidationEvaluator:
    """
    Resampling estimate of a configuration's performance.

    Folds (and configurations, through `evaluate_many`) are independent tasks
    dispatched with joblib; each task fits its own pipeline and estimator, and
    only reads the shared training frame and fold assignment.
    """

    def __init__(self, logger: logging.Logger, n_jobs: int = 1, refit_pipeline_per_fold: bool = True):
        self.logger = logger
        self.n_jobs = n_jobs
        self.refit_pipeline_per_fold = refit_pipeline_per_fold

    def evaluate(self, adapter: Any, config: Configuration, pipeline: FeaturePipeline, train: pd.DataFrame,
                 fold_assignment: pd.Series, metrics: Sequence[str]) -> List[FoldResult]:
        """Per-fold results of one configuration, in fold order."""
        return self.evaluate_many(adapter, [config], pipeline, train, fold_assignment, metrics)

    def evaluate_many(self, adapter: Any, configs: Sequence[Configuration], pipeline: FeaturePipeline,
                      train: pd.DataFrame, fold_assignment: pd.Series,
                      metrics: Sequence[str]) -> List[FoldResult]:
        """Per-fold results of several configurations, ordered by configuration then fold."""
        self._validate_inputs(train, fold_assignment, metrics)
        fold_ids = sorted(int(f) for f in fold_assignment.unique())

        fitted_global = None
        if not self.refit_pipeline_per_fold:
            # Reproduces the single global fit; held-out folds then influence preprocessing statistics
            self.logger.warning("Feature pipeline fitted once on the full training set and shared by all folds.")
            fitted_global = pipeline.fit(train)

        tasks = [(config, fold_id) for config in configs for fold_id in fold_ids]
        self.logger.info(
            f"Cross-validating {len(configs)} configuration(s) of '{adapter.name}' "
            f"over {len(fold_ids)} folds ({len(tasks)} fits, n_jobs={self.n_jobs})"
        )

        results = Parallel(n_jobs=self.n_jobs)(
            delayed(run_fold)(adapter, config, pipeline, train, fold_assignment, fold_id, list(metrics), fitted_global)
            for config, fold_id in tasks
        )

        for res in results:
            if not res.ok:
                self.logger.warning(
                    f"Fold {res.fold_id} failed for config #{res.generation_index} "
                    f"({res.model_name}, {res.config_id[:8]}): {res.error}"
                )
        return list(results)

    @staticmethod
    def _validate_inputs(train: pd.DataFrame, fold_assignment: pd.Series, metrics: Sequence[str]) -> None:
        if not metrics:
            raise MetricUndefinedError("At least one metric must be requested.")
        unknown = [m for m in metrics if m not in METRIC_FUNCTIONS]
        if unknown:
            raise MetricUndefinedError(f"Unknown metrics {unknown}. Available: {sorted(METRIC_FUNCTIONS)}")
        if len(fold_assignment) != len(train) or not fold_assignment.index.isin(train.index).all():
            raise DataValidationError("Fold assignment does not cover exactly the training rows.")

        smallest_fold = int(fold_assignment.value_counts().min())
        if 'r_squared' in metrics and smallest_fold < 2:
            raise MetricUndefinedError(
                f"r_squared needs at least 2 held-out rows per fold; the smallest fold has {smallest_fold}."
            )
