from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

import pandas as pd

from har_stacking.data_processing.features import drop_identifier_columns, infer_feature_cols
from har_stacking.data_processing.loading import load_activity_csv
from har_stacking.data_processing.missingness import drop_sparse_columns, missing_patterns, missing_summary
from har_stacking.data_processing.schemas import (
    ACTIVITY_CLASSES,
    DEFAULT_LABEL_COL,
    DEFAULT_NA_VALUES,
    EXPECTED_N_COLUMNS,
    LEADING_ID_COLUMNS,
    CleaningReport,
)
from har_stacking.utils.timer import timed

log = logging.getLogger(__name__)


def clean_activity_table(
    df: pd.DataFrame,
    *,
    label_col: str = DEFAULT_LABEL_COL,
    missing_threshold: float = 0.95,
    id_cols: Sequence[str] = tuple(LEADING_ID_COLUMNS),
    extra_drop_cols: Optional[Sequence[str]] = None,
) -> Tuple[pd.DataFrame, CleaningReport]:
    """
    Sparse-column filter followed by identifier removal.

    Whatever incomplete rows remain afterwards are dropped, the label is
    moved to the last column and everything else must be numeric.
    """
    if df is None or df.empty:
        raise ValueError("clean_activity_table received an empty dataframe.")
    if label_col not in df.columns:
        raise ValueError(f"Label column '{label_col}' not found.")

    report = CleaningReport(
        n_rows_input=int(len(df)),
        n_cols_input=int(df.shape[1]),
        missing_threshold=float(missing_threshold),
        label_col=label_col,
    )

    out, report.dropped_sparse_cols = drop_sparse_columns(df, missing_threshold, protect=[label_col])

    drop_cols = list(id_cols) + [c for c in (extra_drop_cols or []) if c not in id_cols]
    out, report.dropped_id_cols = drop_identifier_columns(out, [c for c in drop_cols if c != label_col])

    report.feature_cols = infer_feature_cols(out, label_col=label_col)
    non_numeric = [c for c in out.columns if c != label_col and c not in report.feature_cols]
    if non_numeric:
        log.warning("Dropping %d non-numeric columns: %s", len(non_numeric), non_numeric[:10])

    out = out[report.feature_cols + [label_col]]

    before = len(out)
    out = out.dropna(subset=report.feature_cols).reset_index(drop=True)
    report.n_rows_dropped_incomplete = int(before - len(out))
    if report.n_rows_dropped_incomplete:
        log.warning("Dropped %d rows with residual missing sensor values", report.n_rows_dropped_incomplete)
    if out.empty:
        raise RuntimeError("Cleaning removed every row. Lower cleaning.missing_threshold.")

    log.info(
        "Cleaned table: %d rows, %d features (dropped %d sparse, %d identifier columns)",
        len(out),
        report.n_features,
        len(report.dropped_sparse_cols),
        len(report.dropped_id_cols),
    )
    return out, report


def dataset_options(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Keyword arguments for load_activity_csv taken from cfg['dataset']."""
    ds = cfg.get("dataset", {}) or {}
    classes = ds.get("classes", ACTIVITY_CLASSES)
    return {
        "label_col": str(ds.get("label_col", DEFAULT_LABEL_COL)),
        "na_values": ds.get("na_values", DEFAULT_NA_VALUES),
        "expected_n_columns": ds.get("expected_n_columns", EXPECTED_N_COLUMNS),
        "classes": list(classes) if classes is not None else None,
    }


def cleaning_options(cfg: Dict[str, Any]) -> Dict[str, Any]:
    cl = cfg.get("cleaning", {}) or {}
    return {
        "missing_threshold": float(cl.get("missing_threshold", 0.95)),
        "id_cols": list(cl.get("id_columns", LEADING_ID_COLUMNS)),
        "extra_drop_cols": list(cl.get("extra_drop_cols", []) or []),
    }


def clean_from_config(cfg: Dict[str, Any], timings: Optional[Dict[str, float]] = None) -> Tuple[pd.DataFrame, pd.DataFrame, CleaningReport]:
    """Load + clean as configured. Returns (raw, clean, report)."""
    ds = cfg.get("dataset", {}) or {}
    if not ds.get("csv_path"):
        raise KeyError("Config is missing dataset.csv_path.")
    opts = dataset_options(cfg)

    with timed("load", timings):
        raw = load_activity_csv(ds["csv_path"], **opts)

    with timed("clean", timings):
        clean, report = clean_activity_table(raw, label_col=opts["label_col"], **cleaning_options(cfg))
    return raw, clean, report


def preprocess(cfg: Dict[str, Any]) -> Dict[str, Any]:
    out_cfg = cfg.get("output", {}) or {}
    out_table = Path(out_cfg.get("clean_table", "data/processed/clean.parquet"))
    out_meta = Path(out_cfg.get("clean_meta", "data/processed/clean_meta.json"))
    out_summary = Path(out_cfg.get("missing_summary", "data/processed/missing_summary.csv"))
    out_patterns = Path(out_cfg.get("missing_patterns", "data/processed/missing_patterns.csv"))

    timings: Dict[str, float] = {}
    raw, clean, report = clean_from_config(cfg, timings)

    with timed("missingness", timings):
        summary = missing_summary(raw)
        patterns = missing_patterns(raw)
    log.info(
        "Missingness: %d columns with any missing value, %d distinct row patterns",
        int((summary["n_missing"] > 0).sum()),
        len(patterns),
    )

    with timed("persist", timings):
        for p in (out_table, out_meta, out_summary, out_patterns):
            p.parent.mkdir(parents=True, exist_ok=True)
        clean.to_parquet(out_table, index=False)
        summary.to_csv(out_summary, index=False)
        patterns.to_csv(out_patterns, index=False)

        label_col = report.label_col
        meta = {
            "source": str(cfg["dataset"]["csv_path"]),
            "cleaning": report.to_dict(),
            "class_counts": {str(k): int(v) for k, v in clean[label_col].value_counts().sort_index().items()},
            "n_missing_patterns": int(len(patterns)),
            "timings_sec": timings,
        }
        out_meta.write_text(json.dumps(meta, indent=2), encoding="utf-8")

    log.info("Preprocessing complete: %s", out_table.as_posix())
    return {
        "clean_path": str(out_table),
        "meta_path": str(out_meta),
        "missing_summary_path": str(out_summary),
        "missing_patterns_path": str(out_patterns),
        "timings": timings,
    }
