import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Ensure repository root is on sys.path so tests can import local modules
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

CLASSES = ["sitting", "sitting-down", "standing", "standing-up", "walking"]
SITES = ["belt", "arm", "dumbbell", "forearm"]
SENSOR_MEASURES = [
    "roll", "pitch", "yaw", "total_accel",
    "gyros_x", "gyros_y", "gyros_z",
    "accel_x", "accel_y", "accel_z",
    "magnet_x", "magnet_y", "magnet_z",
]
SUMMARY_STATS = ["kurtosis", "skewness", "max", "min", "var"]
SUMMARY_MEASURES = ["roll", "pitch", "yaw", "accel", "picth"]
ID_COLS = [
    "X", "user_name", "raw_timestamp_part_1", "raw_timestamp_part_2",
    "cvtd_timestamp", "new_window", "num_window",
]


def sensor_columns():
    cols = []
    for site in SITES:
        for m in SENSOR_MEASURES:
            base, _, axis = m.partition("_")
            if m in ("roll", "pitch", "yaw", "total_accel"):
                cols.append(f"{m}_{site}")
            else:
                cols.append(f"{base}_{site}_{axis}")
    return cols


def summary_columns():
    return [f"{stat}_{meas}_{site}" for site in SITES for stat in SUMMARY_STATS for meas in SUMMARY_MEASURES]


def make_raw_frame(n_per_class: int = 50, seed: int = 0) -> pd.DataFrame:
    """
    Synthetic export with the real 160-column layout: 7 identifier columns,
    52 sensor columns, 100 window-summary columns that are only filled on
    'new_window == yes' rows, and the label.
    """
    rng = np.random.default_rng(seed)
    sensors = sensor_columns()
    summaries = summary_columns()
    n = n_per_class * len(CLASSES)

    labels = np.repeat(CLASSES, n_per_class)
    rng.shuffle(labels)
    class_idx = np.array([CLASSES.index(c) for c in labels])

    data = {
        "X": np.arange(1, n + 1),
        "user_name": rng.choice(["adelmo", "carlitos", "pedro"], size=n),
        "raw_timestamp_part_1": 1323084231 + np.arange(n),
        "raw_timestamp_part_2": rng.integers(0, 999999, size=n),
        "cvtd_timestamp": ["05/12/2011 11:23"] * n,
        "new_window": np.where(np.arange(n) % 50 == 0, "yes", "no"),
        "num_window": np.arange(n) // 25 + 1,
    }
    for j, col in enumerate(sensors):
        shift = class_idx * 3.0 if j < 10 else 0.0
        data[col] = rng.normal(0.0, 1.0, size=n) + shift

    window_rows = data["new_window"] == "yes"
    for col in summaries:
        vals = np.full(n, np.nan, dtype=object)
        vals[window_rows] = np.round(rng.normal(size=int(window_rows.sum())), 4)
        data[col] = vals
    # one column is nothing but spreadsheet division errors
    data[summaries[0]] = np.where(window_rows, "#DIV/0!", None)

    data["classe"] = labels
    df = pd.DataFrame(data)
    assert df.shape[1] == 160
    return df


@pytest.fixture
def raw_frame() -> pd.DataFrame:
    return make_raw_frame()


@pytest.fixture
def raw_csv(tmp_path, raw_frame) -> Path:
    path = tmp_path / "raw" / "pml-training.csv"
    path.parent.mkdir(parents=True)
    raw_frame.to_csv(path, index=False)
    return path


@pytest.fixture
def cfg(tmp_path, raw_csv) -> dict:
    out = tmp_path / "out"
    return {
        "project": {"seed": 7},
        "logging": {"level": "WARNING"},
        "dataset": {
            "csv_path": str(raw_csv),
            "label_col": "classe",
            "classes": list(CLASSES),
            "na_values": ["NA", "", "#DIV/0!"],
            "expected_n_columns": 160,
        },
        "cleaning": {"missing_threshold": 0.95, "id_columns": list(ID_COLS)},
        "split": {"train_ratio": 0.7},
        "models": {"cv_folds": 2, "shared": {"n_estimators": 15, "n_jobs": 1}},
        "stacking": {"enabled": True, "strategy": "oof", "cv_folds": 3},
        "importance": {"top_n": 5},
        "output": {
            "clean_table": str(out / "clean.parquet"),
            "clean_meta": str(out / "clean_meta.json"),
            "missing_summary": str(out / "missing_summary.csv"),
            "missing_patterns": str(out / "missing_patterns.csv"),
            "artifacts_dir": str(out / "models"),
        },
    }


@pytest.fixture
def r_style_csv(tmp_path, raw_frame) -> Path:
    """Export as R's write.csv writes it: row numbers under an empty header."""
    path = tmp_path / "raw" / "pml-training-r.csv"
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = raw_frame.drop(columns=["X"])
    frame.index = range(1, len(frame) + 1)
    frame.to_csv(path, index=True)
    return path
