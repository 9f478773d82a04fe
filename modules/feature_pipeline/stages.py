"""
Preprocessing stages.

Each stage is a scikit-learn transformer working on DataFrames: `fit` learns
its statistics from the rows it is given, `transform` applies them unchanged
and never looks at the statistics of the rows being transformed. The row index
is preserved by every stage.
"""
import numpy as np
import pandas as pd
from typing import Iterable, List, Optional
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.impute import SimpleImputer
from sklearn.preprocessing import OneHotEncoder, StandardScaler
from sklearn.utils.validation import check_is_fitted

from utils.exceptions import UnknownColumnError


def _require_columns(X: pd.DataFrame, columns: Iterable[str], stage: str) -> None:
    missing = [c for c in columns if c not in X.columns]
    if missing:
        raise UnknownColumnError(f"{stage}: columns not found in input: {missing}")


def _numeric_columns(X: pd.DataFrame) -> List[str]:
    return [c for c in X.columns if pd.api.types.is_numeric_dtype(X[c])]


def _as_float(X: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
    return X[columns].astype('float64').replace([np.inf, -np.inf], np.nan)


class DropColumns(BaseEstimator, TransformerMixin):
    """Remove identifier or otherwise excluded columns."""

    def __init__(self, columns: Iterable[str] = ()):
        self.columns = columns

    def fit(self, X: pd.DataFrame, y=None):
        self.columns_ = list(self.columns)
        _require_columns(X, self.columns_, "DropColumns")
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, 'columns_')
        _require_columns(X, self.columns_, "DropColumns")
        return X.drop(columns=self.columns_)


class OneHotEncodeCategorical(BaseEstimator, TransformerMixin):
    """
    Indicator columns for every level seen during fit.

    Levels are the sorted non-missing values of each column, so the output
    layout does not depend on row order. Values are matched by equality, not by
    their text form. Unseen and missing levels at transform time get all
    indicators set to 0; a column with no observed level is dropped.
    """

    def __init__(self, columns: Optional[Iterable[str]] = None):
        self.columns = columns

    def fit(self, X: pd.DataFrame, y=None):
        if self.columns is None:
            columns = [c for c in X.columns if not pd.api.types.is_numeric_dtype(X[c])]
        else:
            columns = list(self.columns)
            _require_columns(X, columns, "OneHotEncodeCategorical")

        levels = {col: np.sort(X[col].dropna().unique()) for col in columns}
        self.columns_ = columns
        self.encoded_columns_ = [col for col in columns if len(levels[col])]

        self.encoder_ = None
        if self.encoded_columns_:
            # Missing values are left out of the categories so they encode as all zeros
            self.encoder_ = OneHotEncoder(
                categories=[levels[col] for col in self.encoded_columns_],
                handle_unknown='ignore',
                sparse_output=False,
            ).set_output(transform='pandas')
            self.encoder_.fit(X[self.encoded_columns_])
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, 'columns_')
        _require_columns(X, self.columns_, "OneHotEncodeCategorical")

        kept = X.drop(columns=self.columns_)
        if self.encoder_ is None:
            return kept
        encoded = self.encoder_.transform(X[self.encoded_columns_])
        return pd.concat([kept, encoded.astype('float64')], axis=1)


class MedianImputeNumeric(BaseEstimator, TransformerMixin):
    """Replace missing (and infinite) numeric values with training medians."""

    def fit(self, X: pd.DataFrame, y=None):
        self.columns_ = _numeric_columns(X)
        self.imputer_ = None
        if self.columns_:
            # keep_empty_features: an all-missing column is imputed with zero instead of dropped
            self.imputer_ = SimpleImputer(strategy='median', keep_empty_features=True).set_output(transform='pandas')
            self.imputer_.fit(_as_float(X, self.columns_))
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, 'columns_')
        _require_columns(X, self.columns_, "MedianImputeNumeric")
        if self.imputer_ is None:
            return X

        out = X.copy()
        out[self.columns_] = self.imputer_.transform(_as_float(X, self.columns_))
        return out


class StandardizeNumeric(BaseEstimator, TransformerMixin):
    """Center and scale numeric predictors to zero mean and unit variance."""

    def fit(self, X: pd.DataFrame, y=None):
        self.columns_ = _numeric_columns(X)
        self.scaler_ = None
        if self.columns_:
            # Constant columns get a unit scale and keep their centred value of zero
            self.scaler_ = StandardScaler().set_output(transform='pandas')
            self.scaler_.fit(X[self.columns_].astype('float64'))
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, 'columns_')
        _require_columns(X, self.columns_, "StandardizeNumeric")
        if self.scaler_ is None:
            return X

        out = X.copy()
        out[self.columns_] = self.scaler_.transform(X[self.columns_].astype('float64'))
        return out
