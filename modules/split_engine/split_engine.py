"""
SplitEngine for the Streamflow HPO pipeline.

Splits the validated dataset into a training and a held-out test partition and
assigns every training row to exactly one cross-validation fold. Both steps are
pure functions of their inputs and an explicit seed, so the same seed always
reproduces the same partitions.
"""
import math
import logging
import numbers
import pandas as pd
from typing import Tuple
from sklearn.model_selection import train_test_split, KFold

from modules.base import BaseEngine
from utils.error_handling import handle_engine_errors
from utils.exceptions import InvalidFractionError, InvalidFoldCountError, DataValidationError
from utils.file_io import save_dataframe
from utils import constants


class SplitEngine(BaseEngine):
    """
    Train/test splitting and fold assignment.

    `split` and `make_folds` are static so they can be called without a run
    configuration; `execute` wires them to the configured fractions and seeds.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        super().__init__(config, logger)

    def _get_engine_directory_name(self) -> str:
        return constants.MASTER_SPLITS_DIR

    @handle_engine_errors("Data Splitting")
    def execute(self, df: pd.DataFrame, run_id: str) -> Tuple[pd.DataFrame, pd.DataFrame, pd.Series]:
        """
        Execute the splitting workflow.

        Returns:
            train, test DataFrames and the fold assignment of the training rows.
        """
        self.logger.info("Starting Split Engine execution...")
        seeds = self.config.get('_internal_seeds', {})
        split_seed = seeds.get('split', self.config['splitting']['seed'])
        cv_seed = seeds.get('cv', split_seed + 1000)
        train_fraction = self.config['splitting']['train_fraction']
        fold_count = self.config['cross_validation']['fold_count']

        train, test = self.split(df, train_fraction, split_seed)
        folds = self.make_folds(train, fold_count, cv_seed)

        if self.save_artifacts:
            save_dataframe(train, self.output_dir / "train.parquet", excel_copy=self.excel_copy, index=True)
            save_dataframe(test, self.output_dir / "test.parquet", excel_copy=self.excel_copy, index=True)
            save_dataframe(folds.to_frame(), self.output_dir / "fold_assignment.parquet", index=True)

        sizes = folds.value_counts().sort_index().tolist()
        self.logger.info(f"Splits created for {run_id}: Train={len(train)}, Test={len(test)}, Fold sizes={sizes}")
        return train, test, folds

    @staticmethod
    def split(df: pd.DataFrame, train_fraction: float, seed: int) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Shuffle and partition rows into disjoint, exhaustive train and test frames.

        The training side holds floor(train_fraction * n) rows; original row labels
        are preserved so downstream tables stay aligned with the full dataset.
        """
        if isinstance(train_fraction, bool) or not isinstance(train_fraction, numbers.Real) \
                or not (0.0 < train_fraction < 1.0):
            raise InvalidFractionError(f"train_fraction must be between 0 and 1 (exclusive), got {train_fraction}")

        n_rows = len(df)
        n_train = math.floor(train_fraction * n_rows)
        if n_train == 0 or n_train == n_rows:
            raise DataValidationError(
                f"train_fraction={train_fraction} on {n_rows} rows leaves an empty train or test partition."
            )

        train, test = train_test_split(df, train_size=n_train, random_state=seed, shuffle=True)
        return train, test

    @staticmethod
    def make_folds(train: pd.DataFrame, v: int, seed: int) -> pd.Series:
        """
        Assign every training row to one of `v` folds (labelled 1..v).

        Fold sizes differ by at most one row.
        """
        if isinstance(v, bool) or not isinstance(v, numbers.Integral):
            raise InvalidFoldCountError(f"Fold count must be an integer, got {v!r}")
        if v < 2 or v > len(train):
            raise InvalidFoldCountError(f"Fold count must be in [2, {len(train)}], got {v}")

        assignment = pd.Series(0, index=train.index, name='fold', dtype='int64')
        kfold = KFold(n_splits=int(v), shuffle=True, random_state=seed)
        for fold_id, (_, held_out) in enumerate(kfold.split(train), start=1):
            assignment.iloc[held_out] = fold_id
        return assignment
