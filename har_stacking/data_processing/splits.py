from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import pandas as pd
from sklearn.model_selection import train_test_split

from har_stacking.data_processing.schemas import DEFAULT_LABEL_COL

log = logging.getLogger(__name__)


@dataclass
class SplitResult:
    train: pd.DataFrame
    test: pd.DataFrame


def _safe_stratify(df: pd.DataFrame, stratify_col: Optional[str]) -> Optional[pd.Series]:
    if not stratify_col or stratify_col not in df.columns:
        return None
    vc = df[stratify_col].value_counts(dropna=False)
    # Need at least 2 classes and each class at least 2 samples for stratify to be valid.
    if vc.shape[0] < 2:
        return None
    if vc.min() < 2:
        return None
    return df[stratify_col]


def split_train_test(
    df: pd.DataFrame,
    train: float = 0.7,
    seed: int = 42,
    stratify_col: Optional[str] = None,
) -> SplitResult:
    """
    Random train/test partition; stratified on `stratify_col` when every
    class has at least two rows, so class proportions carry over.
    """
    if df is None or df.empty:
        raise ValueError("split_train_test received an empty dataframe.")
    if not 0.0 < train < 1.0:
        raise ValueError(f"train ratio must be within (0, 1), got {train}")

    n = len(df)
    # Too small to hold out anything
    if n < 2:
        return SplitResult(train=df.reset_index(drop=True), test=df.iloc[0:0].reset_index(drop=True))

    stratify = _safe_stratify(df, stratify_col)
    if stratify_col and stratify is None:
        log.warning("Cannot stratify on '%s' (a class has < 2 rows); splitting without stratification.", stratify_col)

    test_size = max(1, int(round((1.0 - train) * n)))
    test_size = min(test_size, n - 1)  # ensure train not empty
    if stratify is not None:
        n_classes = int(stratify.nunique())
        # every class needs a slot on both sides
        if test_size < n_classes or (n - test_size) < n_classes:
            log.warning("Partition too small to stratify %d classes; splitting without stratification.", n_classes)
            stratify = None

    df_train, df_test = train_test_split(
        df,
        test_size=test_size,
        random_state=seed,
        stratify=stratify,
    )
    return SplitResult(train=df_train.reset_index(drop=True), test=df_test.reset_index(drop=True))


def safe_train_test_split(
    df: pd.DataFrame,
    *,
    train: float,
    seed: int,
    stratify_col: Optional[str] = DEFAULT_LABEL_COL,
) -> SplitResult:
    """
    Split with stratification when possible; falls back to a plain random
    split if scikit-learn still rejects the stratified one.
    """
    try:
        return split_train_test(df, train=train, seed=seed, stratify_col=stratify_col)
    except ValueError as e:
        if stratify_col is None or df is None or df.empty:
            raise
        log.warning("Split with stratify=%s failed (%s). Falling back to non-stratified split.", stratify_col, e)
        return split_train_test(df, train=train, seed=seed, stratify_col=None)
