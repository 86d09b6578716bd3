import numpy as np
import pandas as pd
import pytest

from har_stacking.data_processing.missingness import (
    drop_sparse_columns,
    missing_patterns,
    missing_summary,
    sparse_columns,
)


@pytest.fixture
def small():
    return pd.DataFrame(
        {
            "a": [1.0, np.nan, 3.0, np.nan],
            "b": [1.0, np.nan, 3.0, np.nan],
            "c": [1.0, 2.0, 3.0, np.nan],
            "label": ["x", "y", "x", "y"],
        }
    )


def test_summary_sorted_by_fraction(small):
    s = missing_summary(small)
    assert list(s["column"]) == ["a", "b", "c", "label"]
    assert list(s["n_missing"]) == [2, 2, 1, 0]
    assert s["frac_missing"].iloc[0] == pytest.approx(0.5)


def test_patterns_group_identical_columns(small):
    p = missing_patterns(small)

    assert list(p.columns) == ["n_rows", "n_missing_cols", "a (+1)", "c", "label"]
    assert list(p["n_rows"]) == [2, 1, 1]
    assert list(p["n_missing_cols"]) == [0, 2, 3]
    assert p["n_rows"].sum() == len(small)


def test_patterns_on_sensor_export(raw_csv):
    from har_stacking.data_processing.loading import load_activity_csv

    df = load_activity_csv(raw_csv)
    p = missing_patterns(df)

    # summary stats are either all present (window rows) or all absent
    assert list(p["n_rows"]) == [245, 5]
    assert list(p["n_missing_cols"]) == [100, 1]


def test_sparse_columns_strictly_above_threshold(small):
    assert sparse_columns(small, 0.4) == ["a", "b"]
    assert sparse_columns(small, 0.5) == []
    assert sparse_columns(small, 0.2) == ["a", "b", "c"]


def test_drop_sparse_protects_label():
    df = pd.DataFrame({"s": [np.nan, np.nan, 1.0], "label": [np.nan, np.nan, "x"]})
    out, dropped = drop_sparse_columns(df, 0.5, protect=["label"])
    assert dropped == ["s"]
    assert list(out.columns) == ["label"]


def test_drop_sparse_noop_returns_copy(small):
    out, dropped = drop_sparse_columns(small, 0.9)
    assert dropped == []
    assert out.equals(small)
    assert out is not small


def test_threshold_and_empty_validation(small):
    with pytest.raises(ValueError):
        sparse_columns(small, 1.5)
    with pytest.raises(ValueError):
        missing_summary(pd.DataFrame())
    with pytest.raises(ValueError):
        missing_patterns(pd.DataFrame())
