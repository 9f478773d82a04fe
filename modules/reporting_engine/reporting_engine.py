import logging
import pandas as pd
from datetime import datetime
from typing import Dict, Optional

from modules.base.base_engine import BaseEngine
from modules.evaluation_engine.cv_analysis import cv_fold_consistency, generalization_gaps
from modules.hpo_search_engine.hpo_search_engine import SearchOutcome
from utils.error_handling import handle_engine_errors
from utils.file_io import save_dataframe
from utils import constants


class ReportingEngine(BaseEngine):
    """
    Writes the human-readable summary of a run.
    The text is returned as well, so callers running without artifacts can still log it.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        self.metrics = list(config['metrics']['names'])
        self.selection_metric = config['metrics']['selection_metric']
        self.direction = config['metrics']['direction']
        self.top_n = config.get('reporting', {}).get('top_n', 10)

    def _get_engine_directory_name(self) -> str:
        return constants.REPORTING_DIR

    @handle_engine_errors("Reporting")
    def execute(self, outcome: SearchOutcome, test_metrics: Dict[str, float], run_id: str,
                comparison: Optional[pd.DataFrame] = None) -> str:
        """
        Build the text summary and the supporting tables.

        Returns:
            The summary text.
        """
        best_results = [r for r in outcome.fold_results if r.config_id == outcome.best.config_id]
        consistency = cv_fold_consistency(best_results, self.metrics)
        gaps = generalization_gaps(outcome.best.summary, test_metrics)

        text = self.render_summary(outcome, test_metrics, run_id, comparison, consistency, gaps)

        if self.save_artifacts:
            save_dataframe(consistency, self.output_dir / "cv_fold_consistency.parquet", excel_copy=self.excel_copy)
            save_dataframe(gaps, self.output_dir / "generalization_gaps.parquet", excel_copy=self.excel_copy)
            summary_path = self.output_dir / constants.SUMMARY_FILE
            summary_path.write_text(text, encoding='utf-8')
            self.logger.info(f"Summary written to {summary_path}")

        return text

    def render_summary(self, outcome: SearchOutcome, test_metrics: Dict[str, float], run_id: str,
                       comparison: Optional[pd.DataFrame], consistency: pd.DataFrame,
                       gaps: pd.DataFrame) -> str:
        best = outcome.best
        lines = [
            "=" * 70,
            "HYPERPARAMETER SEARCH SUMMARY",
            "=" * 70,
            f"Run ID:           {run_id}",
            f"Generated:        {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"Selection:        {self.selection_metric} ({self.direction})",
            "",
        ]

        if comparison is not None and not comparison.empty:
            lines.append("Model family comparison (default configurations)")
            lines.append("-" * 70)
            for _, row in comparison.iterrows():
                lines.append(f"  {int(row['rank']):>3}. {row['model']:<24} "
                             f"cv_{self.selection_metric}={row[f'cv_{self.selection_metric}_mean']:.4f}")
            lines.append("")

        lines.append(f"Tuned family: {outcome.model_name}")
        lines.append(f"  candidates generated: {len(outcome.candidates)}")
        lines.append(f"  candidates aggregated: {len(outcome.aggregated)}")
        failed = sum(1 for r in outcome.fold_results if not r.ok)
        lines.append(f"  failed fold fits: {failed} of {len(outcome.fold_results)}")
        lines.append("")

        lines.append(f"Top {min(self.top_n, len(outcome.ranked))} configurations")
        lines.append("-" * 70)
        for position, res in enumerate(outcome.ranked[:self.top_n], start=1):
            params = ", ".join(f"{k}={_fmt(v)}" for k, v in res.params.items()) or "(defaults)"
            lines.append(f"  {position:>3}. #{res.generation_index:<4} "
                         f"{self.selection_metric}={res.mean(self.selection_metric):.4f}  {params}")
        lines.append("")

        lines.append("Selected configuration")
        lines.append("-" * 70)
        lines.append(f"  model:     {best.model_name}")
        lines.append(f"  config_id: {best.config_id}")
        for name, value in best.params.items():
            lines.append(f"  {name}: {_fmt(value)}")
        for name in self.metrics:
            stats = best.summary.get(name)
            if stats is not None:
                lines.append(f"  cv_{name}: {stats['mean']:.4f} +/- {stats['std']:.4f}")
        lines.append("")

        lines.append("Test evaluation")
        lines.append("-" * 70)
        for name, value in test_metrics.items():
            lines.append(f"  {name}: {value:.4f}")
        for _, row in gaps.iterrows():
            lines.append(f"  {row['metric']} gap (test - cv): {row['gap']:+.4f}")
        lines.append("")

        if not consistency.empty:
            lines.append("Fold consistency of the selected configuration")
            lines.append("-" * 70)
            for _, row in consistency.iterrows():
                lines.append(f"  {row['metric']}: min={row['min']:.4f} max={row['max']:.4f} "
                             f"range={row['range']:.4f} ({int(row['folds'])} folds)")
            lines.append("")

        return "\n".join(lines)


def _fmt(value) -> str:
    if isinstance(value, float):
        return f"{value:.4g}"
    return str(value)
