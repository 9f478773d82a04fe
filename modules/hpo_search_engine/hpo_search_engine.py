import logging
import pandas as pd
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from modules.base import BaseEngine
from modules.model_factory.model_factory import ModelFactory
from modules.feature_pipeline import FeaturePipeline
from modules.hpo_search_engine.search_space import Configuration
from modules.hpo_search_engine.candidate_generator import CandidateGenerator
from modules.hpo_search_engine.cross_validation import CrossValidationEvaluator, FoldResult
from modules.hpo_search_engine.ranking import (
    AggregatedResult,
    aggregate,
    rank,
    select_best,
    to_frame,
    fold_results_frame,
)
from utils.error_handling import handle_engine_errors
from utils.exceptions import NoViableConfigurationError
from utils.file_io import save_dataframe, save_json
from utils import constants


@dataclass
class SearchOutcome:
    """Everything the search produced for one model family."""
    model_name: str
    candidates: List[Configuration]
    fold_results: List[FoldResult]
    aggregated: List[AggregatedResult]
    ranked: List[AggregatedResult]
    ranked_table: pd.DataFrame
    best: AggregatedResult
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def selected_configuration(self) -> Configuration:
        return self.best.configuration()


class HPOSearchEngine(BaseEngine):
    """
    Hyperparameter Optimization Engine.

    - Model family comparison: each family's untuned configuration, cross-validated.
    - Space-filling candidate generation for the tuned family.
    - Fail-soft cross-validation of every candidate (joblib across configurations x folds).
    - Aggregation, ranking and deterministic winner selection.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        self.hpo_config = config.get('hyperparameters', {})
        self.metrics_config = config['metrics']
        self.metrics = list(self.metrics_config['names'])
        self.selection_metric = self.metrics_config['selection_metric']
        self.direction = self.metrics_config['direction']

        cv_config = config.get('cross_validation', {})
        self.evaluator = CrossValidationEvaluator(
            logger,
            n_jobs=config.get('execution', {}).get('n_jobs', 1),
            refit_pipeline_per_fold=cv_config.get('refit_pipeline_per_fold', True),
        )
        self.generator = CandidateGenerator(
            logger,
            max_candidates=config.get('resources', {}).get('max_candidates'),
        )
        seeds = config.get('_internal_seeds', {})
        self.candidate_seed = seeds.get('candidates', config['splitting']['seed'] + 3000)

    def _get_engine_directory_name(self) -> str:
        return constants.HPO_SEARCH_DIR

    @handle_engine_errors("Model Comparison")
    def compare_models(self, train: pd.DataFrame, fold_assignment: pd.Series,
                       pipeline: FeaturePipeline) -> pd.DataFrame:
        """
        Cross-validate the untuned configuration of every family in models.compare.

        Returns:
            Ranked comparison table (best family first).
        """
        families = self.config['models']['compare']
        self.logger.info(f"Comparing model families: {families}")

        fold_results: List[FoldResult] = []
        configs: List[Configuration] = []
        for order, name in enumerate(families):
            adapter = ModelFactory.get_adapter(name, self.config)
            # Family order doubles as generation order for tie-breaks
            config = Configuration(name, adapter.default_params(), order)
            configs.append(config)
            fold_results.extend(self.evaluator.evaluate(adapter, config, pipeline, train, fold_assignment, self.metrics))

        ranked = rank(aggregate(fold_results, configs), self.selection_metric, self.direction)
        if not ranked:
            raise NoViableConfigurationError(f"Every model family failed cross-validation: {families}")

        table = to_frame(ranked, self.metrics)
        for _, row in table.iterrows():
            self.logger.info(
                f"  #{row['rank']} {row['model']}: "
                f"cv_{self.selection_metric}={row[f'cv_{self.selection_metric}_mean']:.4f}"
            )

        if self.save_artifacts:
            comparison_dir = self.base_dir / constants.MODEL_COMPARISON_DIR
            save_dataframe(table, comparison_dir / "model_comparison.parquet", excel_copy=self.excel_copy)
            save_dataframe(fold_results_frame(fold_results), comparison_dir / constants.FOLD_RESULTS_FILE)

        return table

    @handle_engine_errors("Hyperparameter Search")
    def execute(self, train: pd.DataFrame, fold_assignment: pd.Series, pipeline: FeaturePipeline,
                model_name: str, run_id: str, candidate_count: Optional[int] = None) -> SearchOutcome:
        """
        Generate candidates for `model_name`, cross-validate them, rank and select.

        Args:
            train: Training partition (raw rows; the pipeline is fitted per fold).
            fold_assignment: Fold id per training row.
            pipeline: Unfitted feature pipeline template.
            model_name: Adapter name of the tuned family.
            run_id: Run identifier.
            candidate_count: Overrides hyperparameters.candidate_count.

        Returns:
            SearchOutcome with the ranked table and the selected configuration.
        """
        adapter = ModelFactory.get_adapter(model_name, self.config)
        space = adapter.space()

        if not self.hpo_config.get('enabled', True):
            self.logger.info("HPO disabled. Evaluating the default configuration only.")
            count = 1
            space = type(space)()
        else:
            count = candidate_count if candidate_count is not None else self.hpo_config.get('candidate_count', 25)

        self.logger.info(
            f"Starting Hyperparameter Optimization for '{model_name}' "
            f"({count} candidates, params={list(space.names)}, run={run_id})..."
        )

        candidates = self.generator.generate(
            space, count, self.candidate_seed, model_name=model_name, fixed_params=adapter.default_params()
        )
        fold_results = self.evaluator.evaluate_many(adapter, candidates, pipeline, train, fold_assignment, self.metrics)

        aggregated = aggregate(fold_results, candidates)
        dropped = len(candidates) - len(aggregated)
        if dropped:
            self.logger.warning(f"{dropped} of {len(candidates)} candidates failed on every fold and were excluded.")
        if not aggregated:
            raise NoViableConfigurationError(f"All {len(candidates)} candidates for '{model_name}' failed.")

        ranked = rank(aggregated, self.selection_metric, self.direction)
        best = select_best(aggregated, self.selection_metric, self.direction)
        table = to_frame(ranked, self.metrics)

        self.logger.info(
            f"Best Config Found: {model_name} #{best.generation_index} {dict(best.params)} "
            f"(CV {self.selection_metric}: {best.mean(self.selection_metric):.4f})"
        )

        outcome = SearchOutcome(
            model_name=model_name,
            candidates=candidates,
            fold_results=fold_results,
            aggregated=aggregated,
            ranked=ranked,
            ranked_table=table,
            best=best,
        )
        if self.save_artifacts:
            self._save_results(outcome)
        return outcome

    def _save_results(self, outcome: SearchOutcome) -> None:
        candidates_df = pd.DataFrame([c.as_dict() for c in outcome.candidates])
        candidates_df['params'] = candidates_df['params'].astype(str)
        save_dataframe(candidates_df, self.output_dir / "candidates.parquet")
        save_dataframe(fold_results_frame(outcome.fold_results), self.output_dir / constants.FOLD_RESULTS_FILE)
        save_dataframe(outcome.ranked_table, self.output_dir / constants.RANKED_CONFIGS_FILE, excel_copy=self.excel_copy)

        best = outcome.best
        save_json({
            'model': best.model_name,
            'config_id': best.config_id,
            'generation_index': best.generation_index,
            'params': dict(best.params),
            'selection_metric': self.selection_metric,
            'direction': self.direction,
            'metrics': best.summary,
        }, self.output_dir / constants.BEST_CONFIG_FILE)
