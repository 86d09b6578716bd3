from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import pandas as pd

log = logging.getLogger(__name__)


def _check_threshold(threshold: float) -> float:
    threshold = float(threshold)
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"Missing-value threshold must be within [0, 1], got {threshold}")
    return threshold


def missing_summary(df: pd.DataFrame) -> pd.DataFrame:
    """
    Per-column missing count and fraction, most-missing first.
    """
    if df is None or df.empty:
        raise ValueError("missing_summary received an empty dataframe.")

    counts = df.isna().sum()
    out = pd.DataFrame(
        {
            "column": counts.index.astype(str),
            "n_missing": counts.to_numpy(dtype=int),
            "frac_missing": (counts / len(df)).to_numpy(dtype=float),
        }
    )
    out = out.sort_values(["frac_missing", "column"], ascending=[False, True], kind="mergesort")
    return out.reset_index(drop=True)


def missing_patterns(df: pd.DataFrame, columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Distinct row-level missingness patterns.

    Columns that share the exact same missing mask are collapsed into one
    group so a few hundred summary columns read as a handful of patterns.
    Returns one row per pattern with its row count, the number of missing
    cells per row, and one boolean column per column group
    (True = missing). Most frequent pattern first.
    """
    if df is None or df.empty:
        raise ValueError("missing_patterns received an empty dataframe.")

    cols = list(columns) if columns is not None else list(df.columns)
    mask = df[cols].isna()

    # group columns with identical masks; name the group by its first member
    groups: dict = {}
    for c in cols:
        key = mask[c].to_numpy().tobytes()
        groups.setdefault(key, []).append(c)

    group_names: List[str] = []
    group_sizes: List[int] = []
    grouped = {}
    for members in groups.values():
        name = members[0] if len(members) == 1 else f"{members[0]} (+{len(members) - 1})"
        group_names.append(name)
        group_sizes.append(len(members))
        grouped[name] = mask[members[0]]

    gdf = pd.DataFrame(grouped, index=df.index)
    patterns = gdf.value_counts(sort=False).rename("n_rows").reset_index()

    sizes = pd.Series(group_sizes, index=group_names)
    patterns["n_missing_cols"] = patterns[group_names].astype(int).mul(sizes).sum(axis=1).astype(int)
    patterns = patterns.sort_values(["n_rows", "n_missing_cols"], ascending=[False, True], kind="mergesort")
    return patterns[["n_rows", "n_missing_cols"] + group_names].reset_index(drop=True)


def sparse_columns(df: pd.DataFrame, threshold: float) -> List[str]:
    """Columns whose missing fraction strictly exceeds `threshold`."""
    threshold = _check_threshold(threshold)
    if df is None or df.empty:
        raise ValueError("sparse_columns received an empty dataframe.")
    frac = df.isna().mean()
    return [str(c) for c in frac.index if frac[c] > threshold]


def drop_sparse_columns(
    df: pd.DataFrame,
    threshold: float,
    *,
    protect: Iterable[str] = (),
) -> Tuple[pd.DataFrame, List[str]]:
    """
    Column-level removal of sparse columns. No imputation.

    Protected columns (the label) are never dropped.
    """
    protected = set(protect)
    to_drop = [c for c in sparse_columns(df, threshold) if c not in protected]
    if not to_drop:
        log.info("No column exceeds the %.2f missing threshold", threshold)
        return df.copy(), []

    log.info("Dropping %d/%d columns with > %.0f%% missing values", len(to_drop), df.shape[1], 100 * threshold)
    return df.drop(columns=to_drop), to_drop
