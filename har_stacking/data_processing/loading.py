from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import pandas as pd

from har_stacking.data_processing.schemas import (
    DEFAULT_LABEL_COL,
    DEFAULT_NA_VALUES,
    LABEL_COL_CANDIDATES,
    ROW_INDEX_COL,
)

log = logging.getLogger(__name__)


def pick_label_col(columns: List[str], candidates: Sequence[str]) -> Optional[str]:
    # exact match first
    for c in candidates:
        if c in columns:
            return c
    # case-insensitive match
    lower_map = {c.lower(): c for c in columns}
    for c in candidates:
        if c.lower() in lower_map:
            return lower_map[c.lower()]
    return None


def name_row_index_column(df: pd.DataFrame) -> pd.DataFrame:
    """
    R's write.csv leaves the row-number header empty, which pandas reads as
    'Unnamed: 0'. Name it 'X' like read.csv does so it is dropped with the
    other identifier columns.
    """
    if df.shape[1] == 0:
        return df
    first = str(df.columns[0])
    if (first.startswith("Unnamed: 0") or not first.strip()) and ROW_INDEX_COL not in df.columns:
        log.debug("Naming unnamed leading column '%s' as '%s'", first, ROW_INDEX_COL)
        df = df.rename(columns={df.columns[0]: ROW_INDEX_COL})
    return df


def validate_labels(df: pd.DataFrame, label_col: str, classes: Optional[Sequence[str]] = None) -> None:
    """
    Every row must carry a label, and the label must belong to `classes`
    when a class set is given.
    """
    if label_col not in df.columns:
        raise ValueError(f"Label column '{label_col}' not found. Available columns: {list(df.columns)[:10]}...")

    n_missing = int(df[label_col].isna().sum())
    if n_missing:
        raise ValueError(f"{n_missing} rows have no value in label column '{label_col}'.")

    if classes is not None:
        allowed = {str(c) for c in classes}
        unknown = sorted(set(df[label_col].astype(str)) - allowed)
        if unknown:
            raise ValueError(
                f"Label column '{label_col}' contains values outside the class set {sorted(allowed)}: {unknown}"
            )


def load_activity_csv(
    path: Union[str, Path],
    *,
    label_col: str = DEFAULT_LABEL_COL,
    na_values: Optional[Sequence[str]] = None,
    expected_n_columns: Optional[int] = None,
    classes: Optional[Sequence[str]] = None,
    require_label: bool = True,
) -> pd.DataFrame:
    """
    Read the raw sensor export.

    Spreadsheet artefacts ('#DIV/0!', blanks) are read as missing so the
    summary-statistic columns show up as sparse. The label column is
    renamed to `label_col` when the file uses one of the known aliases.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing activity CSV: {path}")

    na = list(na_values) if na_values is not None else list(DEFAULT_NA_VALUES)
    df = pd.read_csv(path, na_values=na, keep_default_na=True, low_memory=False)
    log.info("Loaded %s: %d rows x %d columns", path.name, len(df), df.shape[1])

    df = name_row_index_column(df)

    if expected_n_columns is not None and df.shape[1] != int(expected_n_columns):
        raise ValueError(
            f"{path.name} has {df.shape[1]} columns, expected {int(expected_n_columns)}. "
            "Check that this is the raw sensor export."
        )

    if label_col not in df.columns:
        found = pick_label_col(list(df.columns), LABEL_COL_CANDIDATES)
        if found is not None:
            log.info("Using '%s' as label column '%s'", found, label_col)
            df = df.rename(columns={found: label_col})

    if label_col in df.columns:
        df[label_col] = df[label_col].where(df[label_col].isna(), df[label_col].astype(str).str.strip())
        validate_labels(df, label_col, classes)
    elif require_label:
        raise ValueError(f"Label column '{label_col}' not found in {path.name}.")
    else:
        log.info("%s has no label column; rows are treated as unlabeled", path.name)

    return df
