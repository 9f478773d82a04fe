import gc
import logging
import time
import joblib
import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Any

from modules.base.base_engine import BaseEngine
from modules.feature_pipeline import FeaturePipeline, FittedFeaturePipeline
from modules.hpo_search_engine.search_space import Configuration
from utils.error_handling import handle_engine_errors
from utils.exceptions import ModelTrainingError
from utils.file_io import save_json
from utils import constants


@dataclass(frozen=True)
class FinalModel:
    """Selected configuration refit on the full training partition. Holds no fold data."""
    adapter: Any
    configuration: Configuration
    pipeline: FittedFeaturePipeline
    estimator: Any

    def predict(self, rows: pd.DataFrame) -> np.ndarray:
        X = self.pipeline.transform(rows)
        return self.adapter.predict(self.estimator, X)


class TrainingEngine(BaseEngine):
    """
    Trains the final model using the selected configuration.

    The pipeline is fitted once more from scratch on the whole training
    partition; no pipeline or estimator from cross-validation is reused.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        self.save_models = config.get('outputs', {}).get('save_models', True)

    def _get_engine_directory_name(self) -> str:
        return constants.FINAL_MODEL_DIR

    def execute(self, adapter: Any, selected_config: Configuration, pipeline: FeaturePipeline,
                full_train: pd.DataFrame, run_id: str) -> FinalModel:
        self.logger.info(f"Final fit for run {run_id}")
        return self.finalize(adapter, selected_config, pipeline, full_train)

    @handle_engine_errors("Training")
    def finalize(self, adapter: Any, selected_config: Configuration, pipeline: FeaturePipeline,
                 full_train: pd.DataFrame) -> FinalModel:
        """
        Fit the feature pipeline and the selected configuration on `full_train`.

        Args:
            adapter: Model adapter of the selected family.
            selected_config: Winning configuration of the search.
            pipeline: Unfitted feature pipeline template.
            full_train: Entire training partition.

        Returns:
            FinalModel ready for prediction on unseen rows.
        """
        if full_train.empty:
            raise ModelTrainingError("Cannot train the final model on an empty training partition.")

        self.logger.info(
            f"Training final {selected_config.model_name} #{selected_config.generation_index} "
            f"on {len(full_train)} rows: {dict(selected_config.params)}"
        )

        start_time = time.time()
        fitted = pipeline.fit(full_train)
        X, y = fitted.split_xy(full_train)
        estimator = adapter.fit(X, y, selected_config)
        duration = time.time() - start_time

        self.logger.info(f"Training completed in {duration:.2f} seconds ({X.shape[1]} features).")
        final_model = FinalModel(adapter=adapter, configuration=selected_config, pipeline=fitted, estimator=estimator)

        if self.save_artifacts and self.save_models:
            self._save_model(final_model, X, duration)

        del X, y
        gc.collect()
        return final_model

    def _save_model(self, final_model: FinalModel, X: pd.DataFrame, duration: float) -> None:
        try:
            model_path = self.output_dir / constants.FINAL_MODEL_FILE
            joblib.dump(final_model, model_path)
            self.logger.info(f"Model saved to {model_path}")

            save_json({
                'model': final_model.configuration.model_name,
                'config_id': final_model.configuration.config_id,
                'params': dict(final_model.configuration.params),
                'features': list(final_model.pipeline.feature_names),
                'input_shape': list(X.shape),
                'training_time_sec': duration,
                'timestamp': time.strftime("%Y-%m-%d %H:%M:%S"),
            }, self.output_dir / "training_metadata.json")
        except OSError as e:
            self.logger.warning(f"Failed to save model artifacts. Error: {e}")
