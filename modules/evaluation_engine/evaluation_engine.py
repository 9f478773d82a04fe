import logging
import numpy as np
import pandas as pd
from typing import Any, Dict, Sequence, Tuple

from modules.base.base_engine import BaseEngine
from modules.evaluation_engine.metrics import compute_metric, compute_metrics
from utils.error_handling import handle_engine_errors
from utils.exceptions import DataValidationError, MetricUndefinedError, UnknownColumnError
from utils.file_io import save_dataframe, save_json
from utils import constants


class EvaluationEngine(BaseEngine):
    """
    Scores the final model exactly once on the held-out test partition and
    produces the prediction table over every row of the dataset.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        data_cfg = config['data']
        self.target = data_cfg['target']
        self.id_columns = list(data_cfg.get('id_columns', []))
        self.metrics = list(config['metrics']['names'])

    def _get_engine_directory_name(self) -> str:
        return constants.EVALUATION_DIR

    @handle_engine_errors("Evaluation")
    def execute(self, final_model: Any, dataset: pd.DataFrame, test: pd.DataFrame,
                train_index: pd.Index, run_id: str) -> Tuple[Dict[str, float], pd.DataFrame]:
        """
        Evaluate on the test partition and build the full-dataset prediction table.

        Returns:
            (test metrics, prediction table)
        """
        self.logger.info(f"Starting Evaluation on {len(test)} test rows (run {run_id})...")
        metrics, _ = self.evaluate_once(final_model, test)
        table = self.predict_full(final_model, dataset, train_index)

        if self.save_artifacts:
            save_json(metrics, self.output_dir / constants.TEST_METRICS_FILE)
            save_dataframe(table, self.output_dir / constants.PREDICTIONS_FILE, excel_copy=self.excel_copy)
            save_dataframe(self.split_summary(table), self.output_dir / "metrics_by_split.parquet")

        return metrics, table

    def evaluate_once(self, final_model: Any, test: pd.DataFrame) -> Tuple[Dict[str, float], np.ndarray]:
        """Metrics of the final model on `test` together with its predictions."""
        if test.empty:
            raise DataValidationError("Test partition is empty; nothing to evaluate.")
        if self.target not in test.columns:
            raise UnknownColumnError(f"Target column '{self.target}' not found in test rows.")

        preds = final_model.predict(test)
        metrics = compute_metrics(self.metrics, test[self.target].to_numpy(dtype=float), preds)

        summary = ", ".join(f"{name}={value:.4f}" for name, value in metrics.items())
        self.logger.info(f"Test metrics: {summary}")
        return metrics, preds

    def predict_full(self, final_model: Any, dataset: pd.DataFrame, train_index: Sequence) -> pd.DataFrame:
        """
        One row per dataset row, in dataset order: id columns, split label,
        prediction, actual and residual (actual - prediction).
        """
        missing = [c for c in self.id_columns + [self.target] if c not in dataset.columns]
        if missing:
            raise UnknownColumnError(f"Columns {missing} not found in dataset.")

        preds = final_model.predict(dataset)
        is_train = dataset.index.isin(pd.Index(train_index))

        table = dataset.loc[:, self.id_columns].copy()
        table['split'] = np.where(is_train, constants.SPLIT_TRAIN, constants.SPLIT_TEST)
        table['prediction'] = preds
        table['actual'] = dataset[self.target].to_numpy(dtype=float)
        table['residual'] = table['actual'] - table['prediction']
        return table.reset_index(drop=True)

    def split_summary(self, table: pd.DataFrame) -> pd.DataFrame:
        """Metrics of the prediction table per split label; undefined metrics are NaN."""
        rows = []
        for split_name, part in table.groupby('split', sort=True):
            row = {'split': split_name, 'rows': len(part)}
            for name in self.metrics:
                try:
                    row[name] = compute_metric(name, part['actual'].to_numpy(), part['prediction'].to_numpy())
                except MetricUndefinedError as e:
                    self.logger.warning(f"{name} undefined on {split_name} rows: {e}")
                    row[name] = float('nan')
            rows.append(row)
        return pd.DataFrame(rows)
