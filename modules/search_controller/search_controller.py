import logging
import pandas as pd
from dataclasses import dataclass
from typing import Dict, Optional

from modules.config_manager.config_manager import ConfigurationManager, apply_defaults
from modules.data_manager import DataManager
from modules.split_engine import SplitEngine
from modules.feature_pipeline import FeaturePipeline
from modules.model_factory import ModelFactory
from modules.hpo_search_engine import HPOSearchEngine, SearchOutcome, Configuration
from modules.training_engine import TrainingEngine, FinalModel
from modules.evaluation_engine import EvaluationEngine
from modules.reporting_engine import ReportingEngine


@dataclass
class SearchResult:
    """Outputs of one complete run."""
    run_id: str
    train: pd.DataFrame
    test: pd.DataFrame
    folds: pd.Series
    comparison: Optional[pd.DataFrame]
    outcome: SearchOutcome
    final_model: FinalModel
    test_metrics: Dict[str, float]
    predictions: pd.DataFrame
    summary: str

    @property
    def ranked_table(self) -> pd.DataFrame:
        return self.outcome.ranked_table

    @property
    def selected_configuration(self) -> Configuration:
        return self.outcome.selected_configuration


class SearchController:
    """
    Orchestrates the model selection run.

    Every intermediate value is passed explicitly from one engine to the next;
    the controller holds nothing but the configuration and the logger.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = apply_defaults(config)
        ConfigurationManager.validate_logic(self.config)
        self.logger = logger

    def run(self, df: Optional[pd.DataFrame] = None, run_id: str = "run") -> SearchResult:
        """
        Execute the full search.

        Args:
            df: In-memory dataset; data.file_path is read when omitted.
            run_id: Run identifier used in logs and artifacts.
        """
        config = self.config

        self._phase("DATA INGESTION & SPLITTING")
        data = DataManager(config, self.logger).execute(run_id, df)
        train, test, folds = SplitEngine(config, self.logger).execute(data, run_id)
        pipeline = FeaturePipeline.from_config(config)

        hpo = HPOSearchEngine(config, self.logger)
        comparison = None
        if config['models']['compare']:
            self._phase("MODEL FAMILY COMPARISON")
            comparison = hpo.compare_models(train, folds, pipeline)

        self._phase("HYPERPARAMETER SEARCH")
        model_name, candidate_count = self._resolve_tuned_family(comparison)
        outcome = hpo.execute(train, folds, pipeline, model_name, run_id, candidate_count=candidate_count)

        self._phase("FINAL FIT & TEST EVALUATION")
        adapter = ModelFactory.get_adapter(model_name, config)
        final_model = TrainingEngine(config, self.logger).execute(
            adapter, outcome.selected_configuration, pipeline, train, run_id
        )
        test_metrics, predictions = EvaluationEngine(config, self.logger).execute(
            final_model, data, test, train.index, run_id
        )

        summary = ReportingEngine(config, self.logger).execute(outcome, test_metrics, run_id, comparison)

        return SearchResult(
            run_id=run_id,
            train=train,
            test=test,
            folds=folds,
            comparison=comparison,
            outcome=outcome,
            final_model=final_model,
            test_metrics=test_metrics,
            predictions=predictions,
            summary=summary,
        )

    def _resolve_tuned_family(self, comparison: Optional[pd.DataFrame]):
        """
        Family to tune and an optional candidate count override.
        'auto' picks the comparison winner; a winner with nothing to tune gets a single candidate.
        """
        tune = self.config['models']['tune']
        if tune != 'auto':
            return tune, None

        winner = comparison.iloc[0]['model']
        self.logger.info(f"models.tune='auto': tuning comparison winner '{winner}'")
        if len(ModelFactory.get_adapter(winner, self.config).space()) == 0:
            self.logger.info(f"'{winner}' has no tunable parameters; evaluating its default configuration only.")
            return winner, 1
        return winner, None

    def _phase(self, title: str) -> None:
        self.logger.info("=" * 60)
        self.logger.info(title)
        self.logger.info("=" * 60)
