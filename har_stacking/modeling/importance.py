from __future__ import annotations

from typing import Dict, List, Sequence

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator


def feature_importance(model: BaseEstimator, feature_cols: Sequence[str]) -> pd.DataFrame:
    """
    Impurity importance rescaled so the top feature scores 100.
    """
    raw = getattr(model, "feature_importances_", None)
    if raw is None:
        raise ValueError(f"{model.__class__.__name__} exposes no feature_importances_ (is it fitted?)")
    raw = np.asarray(raw, dtype=float)
    if raw.shape[0] != len(feature_cols):
        raise ValueError(f"Model has {raw.shape[0]} importances but {len(feature_cols)} feature names were given.")

    top = raw.max()
    scaled = raw / top * 100.0 if top > 0 else np.zeros_like(raw)
    out = pd.DataFrame({"feature": list(feature_cols), "importance": raw, "overall": scaled})
    out = out.sort_values(["overall", "feature"], ascending=[False, True], kind="mergesort")
    out.insert(0, "rank", np.arange(1, len(out) + 1))
    return out.reset_index(drop=True)


def top_features(importance: pd.DataFrame, n: int = 10) -> pd.DataFrame:
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    return importance.head(int(n)).reset_index(drop=True)


def shared_top_features(a: pd.DataFrame, b: pd.DataFrame) -> Dict[str, List[str]]:
    """Which top features two models agree on and which are unique to each."""
    fa = list(a["feature"])
    fb = list(b["feature"])
    return {
        "shared": [f for f in fa if f in fb],
        "only_first": [f for f in fa if f not in fb],
        "only_second": [f for f in fb if f not in fa],
    }
