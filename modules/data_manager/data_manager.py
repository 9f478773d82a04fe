import pandas as pd
import numpy as np
import logging
from pathlib import Path
from typing import Optional

from modules.base import BaseEngine
from utils.exceptions import DataValidationError, UnknownColumnError
from utils.file_io import save_dataframe, read_dataframe
from utils.error_handling import handle_engine_errors
from utils import constants


class DataManager(BaseEngine):
    """
    Loads and validates the modelling table handed over by upstream data preparation.

    Joining and cleaning of raw attribute files happens upstream; this engine only
    checks the contract the search relies on: a numeric target column without
    missing values and the presence of every configured identifier column.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)
        self.target = self.config['data']['target']
        self.data: Optional[pd.DataFrame] = None

    def _get_engine_directory_name(self) -> str:
        return constants.DATA_INTEGRITY_DIR

    @handle_engine_errors("Data Management")
    def execute(self, run_id: str, df: Optional[pd.DataFrame] = None) -> pd.DataFrame:
        """
        Load (unless a frame is given) and validate the dataset.

        Args:
            run_id: Unique identifier for the run.
            df: Optional in-memory dataset; when omitted data.file_path is read.

        Returns:
            pd.DataFrame: The validated dataset with a clean RangeIndex.
        """
        self.logger.info("Starting Data Manager execution...")

        self.data = df.copy() if df is not None else self.load_data()
        self.validate_columns()
        stats_df = self.column_stats()
        self.data = self.drop_missing_target(self.data)

        if self.save_artifacts:
            save_dataframe(stats_df, self.output_dir / "column_stats.parquet", excel_copy=self.excel_copy)

        self.logger.info(f"Dataset ready for run {run_id}: {len(self.data)} rows, {self.data.shape[1]} columns")
        return self.data

    def load_data(self) -> pd.DataFrame:
        """Load data from the file path specified in config."""
        file_path_str = self.config['data'].get('file_path')
        if not file_path_str:
            raise DataValidationError("No in-memory dataset given and data.file_path is not set.")

        file_path = Path(file_path_str)
        if not file_path.exists():
            raise DataValidationError(f"Data file not found: {file_path.absolute()}")

        self.logger.info(f"Loading data from {file_path}")
        try:
            data = read_dataframe(file_path)
        except ValueError as e:
            raise DataValidationError(str(e)) from e

        if data.empty:
            raise DataValidationError("Loaded dataframe is empty.")

        self.logger.info(f"Data loaded successfully. Shape: {data.shape}")
        return data

    def validate_columns(self) -> None:
        """Ensure the target and identifier columns exist and the target is numeric."""
        if self.data is None or self.data.empty:
            raise DataValidationError("Dataframe is empty or None.")

        if self.target not in self.data.columns:
            raise UnknownColumnError(f"Target column '{self.target}' not found in dataset.")

        if not pd.api.types.is_numeric_dtype(self.data[self.target]):
            raise DataValidationError(f"Target column '{self.target}' must be numeric, got {self.data[self.target].dtype}.")

        missing_ids = [c for c in self.config['data'].get('id_columns', []) if c not in self.data.columns]
        if missing_ids:
            raise UnknownColumnError(f"Missing id columns in dataset: {missing_ids}")

    def column_stats(self) -> pd.DataFrame:
        """Check numeric columns for NaN and Inf values and return statistics."""
        stats = []
        for col in self.data.columns:
            if pd.api.types.is_numeric_dtype(self.data[col]):
                nan_count = int(self.data[col].isna().sum())
                inf_count = int(np.isinf(self.data[col]).sum())

                stats.append({
                    'column': col,
                    'nan_count': nan_count,
                    'inf_count': inf_count,
                    'min': self.data[col].min(),
                    'max': self.data[col].max(),
                    'mean': self.data[col].mean()
                })

                if nan_count > 0:
                    self.logger.warning(f"Column '{col}' contains {nan_count} NaNs.")
                if inf_count > 0:
                    self.logger.warning(f"Column '{col}' contains {inf_count} infinite values.")

        return pd.DataFrame(stats)

    def drop_missing_target(self, df: pd.DataFrame) -> pd.DataFrame:
        """Remove rows whose target is NaN or infinite and reset the row index."""
        target = df[self.target].replace([np.inf, -np.inf], np.nan)
        bad = target.isna()
        if bad.any():
            self.logger.warning(f"Dropping {int(bad.sum())} rows with missing target '{self.target}'.")
        clean = df.loc[~bad].reset_index(drop=True)
        if clean.empty:
            raise DataValidationError(f"No rows left after removing missing '{self.target}' values.")
        return clean
