import numpy as np
import pandas as pd
from typing import Dict, Mapping, Sequence

from modules.hpo_search_engine.cross_validation import FoldResult


def cv_fold_consistency(fold_results: Sequence[FoldResult], metrics: Sequence[str]) -> pd.DataFrame:
    """
    Summarize how much a configuration's score moves between folds.
    Only successful folds count.
    """
    rows = []
    for metric in metrics:
        scores = np.asarray([r.metrics[metric] for r in fold_results if r.ok and metric in r.metrics], dtype=float)
        if scores.size == 0:
            continue
        rows.append({
            "metric": metric,
            "folds": len(scores),
            "mean": float(np.mean(scores)),
            "std": float(np.std(scores, ddof=1)) if scores.size > 1 else float("nan"),
            "min": float(np.min(scores)),
            "max": float(np.max(scores)),
            "range": float(np.max(scores) - np.min(scores)),
        })
    return pd.DataFrame(rows)


def generalization_gaps(cv_summary: Mapping[str, Mapping[str, float]], test_scores: Dict[str, float]) -> pd.DataFrame:
    """
    Gap between the cross-validated estimate and the single test evaluation.
    """
    rows = []
    for metric in sorted(set(cv_summary) & set(test_scores)):
        cv_val = cv_summary[metric]['mean']
        test_val = test_scores[metric]
        rows.append({
            "metric": metric,
            "cv_mean": cv_val,
            "test": test_val,
            "gap": test_val - cv_val,
        })
    return pd.DataFrame(rows)
