import json

import pandas as pd
import pytest

from har_stacking.data_processing.clean import clean_activity_table, preprocess
from har_stacking.data_processing.features import (
    drop_identifier_columns,
    drop_leading_columns,
    infer_feature_cols,
    make_xy,
)
from har_stacking.data_processing.loading import load_activity_csv

from conftest import ID_COLS, sensor_columns


@pytest.fixture
def loaded(raw_csv):
    return load_activity_csv(raw_csv)


def test_clean_keeps_exactly_the_sensor_columns(loaded):
    clean, report = clean_activity_table(loaded, label_col="classe", missing_threshold=0.95, id_cols=ID_COLS)

    assert report.feature_cols == sensor_columns()
    assert report.n_features == 52
    assert len(report.dropped_sparse_cols) == 100
    assert report.dropped_id_cols == ID_COLS
    assert list(clean.columns)[-1] == "classe"
    assert clean.shape == (250, 53)
    assert not clean.isna().any().any()
    assert report.to_dict()["n_dropped_sparse"] == 100


def test_low_threshold_keeps_sparse_then_drops_incomplete_rows(loaded):
    # 0.99 keeps the 99 partly filled summary columns, so only window rows survive
    clean, report = clean_activity_table(loaded, label_col="classe", missing_threshold=0.99, id_cols=ID_COLS)
    assert report.n_features == 52 + 99
    assert report.n_rows_dropped_incomplete == 245
    assert len(clean) == 5


def test_clean_requires_label(loaded):
    with pytest.raises(ValueError):
        clean_activity_table(loaded.drop(columns=["classe"]), label_col="classe")
    with pytest.raises(ValueError):
        clean_activity_table(pd.DataFrame(), label_col="classe")


def test_identifier_helpers(loaded):
    out, dropped = drop_identifier_columns(loaded, ["X", "user_name", "not_there"])
    assert dropped == ["X", "user_name"]
    assert "X" not in out.columns

    out, leading = drop_leading_columns(loaded, 7)
    assert leading == ID_COLS
    assert out.shape[1] == 153
    with pytest.raises(ValueError):
        drop_leading_columns(loaded, 500)


def test_infer_and_make_xy(loaded):
    clean, _ = clean_activity_table(loaded, label_col="classe", id_cols=ID_COLS)
    feats = infer_feature_cols(clean, label_col="classe")
    X, y = make_xy(clean, feats, label_col="classe")
    assert X.shape == (250, 52)
    assert y.dtype.kind in "UO"

    with pytest.raises(RuntimeError):
        make_xy(clean, feats + ["ghost"], label_col="classe")
    with pytest.raises(RuntimeError):
        infer_feature_cols(clean[["classe"]], label_col="classe")


def test_preprocess_writes_outputs(cfg):
    out = preprocess(cfg)

    clean = pd.read_parquet(out["clean_path"])
    assert clean.shape == (250, 53)

    meta = json.loads(open(out["meta_path"], encoding="utf-8").read())
    assert meta["cleaning"]["n_features"] == 52
    assert sum(meta["class_counts"].values()) == 250
    assert meta["n_missing_patterns"] == 2
    assert {"load", "clean", "missingness", "persist"} <= set(meta["timings_sec"])

    summary = pd.read_csv(out["missing_summary_path"])
    assert summary["frac_missing"].iloc[0] == pytest.approx(1.0)


def test_r_style_row_index_never_becomes_a_feature(r_style_csv):
    from har_stacking.data_processing.schemas import LEADING_ID_COLUMNS

    clean, report = clean_activity_table(
        load_activity_csv(r_style_csv), label_col="classe", id_cols=LEADING_ID_COLUMNS
    )

    assert report.n_features == 52
    assert report.feature_cols == sensor_columns()
    assert "X" in report.dropped_id_cols
    assert clean.shape == (250, 53)
