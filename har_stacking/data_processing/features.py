from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

log = logging.getLogger(__name__)


def drop_identifier_columns(df: pd.DataFrame, columns: Sequence[str]) -> Tuple[pd.DataFrame, List[str]]:
    """
    Drop identifier / timestamp columns by name. Names absent from the frame
    are skipped so a partially cleaned table can be passed again.
    """
    present = [c for c in columns if c in df.columns]
    absent = [c for c in columns if c not in df.columns]
    if absent:
        log.debug("Identifier columns not present (skipped): %s", absent)
    return df.drop(columns=present), present


def drop_leading_columns(df: pd.DataFrame, n: int) -> Tuple[pd.DataFrame, List[str]]:
    """Drop the first `n` columns, whatever they are named."""
    if n < 0:
        raise ValueError(f"Cannot drop a negative number of columns: {n}")
    if n > df.shape[1]:
        raise ValueError(f"Cannot drop {n} leading columns from a frame with {df.shape[1]} columns.")
    leading = [str(c) for c in df.columns[:n]]
    return df.drop(columns=leading), leading


def infer_feature_cols(
    df: pd.DataFrame,
    *,
    label_col: str,
    extra_drop_cols: Optional[Sequence[str]] = None,
) -> List[str]:
    drop = {label_col}
    if extra_drop_cols:
        drop.update(extra_drop_cols)

    feat_cols = [c for c in df.columns if c not in drop and pd.api.types.is_numeric_dtype(df[c])]
    if not feat_cols:
        raise RuntimeError(
            "No numeric sensor columns left after cleaning. "
            "Check cleaning.missing_threshold and the identifier column list."
        )
    return feat_cols


def make_xy(
    df: pd.DataFrame,
    feature_cols: Sequence[str],
    *,
    label_col: str,
) -> Tuple[pd.DataFrame, np.ndarray]:
    missing = [c for c in feature_cols if c not in df.columns]
    if missing:
        raise RuntimeError(
            f"Missing {len(missing)} feature columns (example: {missing[:10]}). "
            "The table was likely cleaned with a different configuration."
        )
    X = df.loc[:, list(feature_cols)].astype(float)
    y = df[label_col].astype(str).to_numpy()
    return X, y
