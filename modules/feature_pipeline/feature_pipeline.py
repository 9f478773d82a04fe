import pandas as pd
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from sklearn.base import clone

from modules.feature_pipeline.stages import (
    DropColumns,
    OneHotEncodeCategorical,
    MedianImputeNumeric,
    StandardizeNumeric,
)
from utils.exceptions import UnknownColumnError


@dataclass(frozen=True)
class FittedFeaturePipeline:
    """
    A feature pipeline whose statistics have been learned.

    There is no way to refit it: a new fit always goes through
    `FeaturePipeline.fit`, which returns a new instance.
    """
    target: str
    stages: Tuple[Any, ...]
    feature_names: Tuple[str, ...]
    n_fit_rows: int

    def transform(self, rows: pd.DataFrame) -> pd.DataFrame:
        """Apply the stored stages to `rows`; the target column is never part of the output."""
        X = rows.drop(columns=[self.target], errors='ignore')
        for stage in self.stages:
            X = stage.transform(X)

        missing = [c for c in self.feature_names if c not in X.columns]
        if missing:
            raise UnknownColumnError(f"Transformed rows lack learned features: {missing}")
        return X.loc[:, list(self.feature_names)]

    def split_xy(self, rows: pd.DataFrame) -> Tuple[pd.DataFrame, pd.Series]:
        """Transform predictors and return them together with the raw target."""
        if self.target not in rows.columns:
            raise UnknownColumnError(f"Target column '{self.target}' not found in rows.")
        return self.transform(rows), rows[self.target]


@dataclass(frozen=True)
class FeaturePipeline:
    """
    Unfitted pipeline template: drop -> one-hot encode -> median impute -> standardize.

    The template itself is never fitted, so the same value can be handed to every
    fold, to the final refit, and to parallel workers.
    """
    target: str
    drop_columns: Tuple[str, ...] = ()
    categorical_columns: Optional[Tuple[str, ...]] = None
    stage_templates: Tuple[Any, ...] = field(default=(), compare=False)

    def __post_init__(self):
        if not self.stage_templates:
            object.__setattr__(self, 'stage_templates', (
                DropColumns(columns=tuple(self.drop_columns)),
                OneHotEncodeCategorical(columns=self.categorical_columns),
                MedianImputeNumeric(),
                StandardizeNumeric(),
            ))

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "FeaturePipeline":
        data = config['data']
        categorical = data.get('categorical_columns')
        return cls(
            target=data['target'],
            drop_columns=tuple(data.get('drop_columns', [])),
            categorical_columns=tuple(categorical) if categorical is not None else None,
        )

    def fit(self, train_rows: pd.DataFrame) -> FittedFeaturePipeline:
        """Learn every stage's statistics from `train_rows` only."""
        X = train_rows.drop(columns=[self.target], errors='ignore')
        fitted: List[Any] = []
        for template in self.stage_templates:
            stage = clone(template)
            X = stage.fit(X).transform(X)
            fitted.append(stage)

        return FittedFeaturePipeline(
            target=self.target,
            stages=tuple(fitted),
            feature_names=tuple(X.columns),
            n_fit_rows=len(train_rows),
        )

    @staticmethod
    def transform(fitted: FittedFeaturePipeline, rows: pd.DataFrame) -> pd.DataFrame:
        return fitted.transform(rows)
