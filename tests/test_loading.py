import numpy as np
import pytest

from har_stacking.data_processing.loading import load_activity_csv, pick_label_col, validate_labels
from har_stacking.data_processing.schemas import ACTIVITY_CLASSES


def test_load_reads_spreadsheet_errors_as_missing(raw_csv):
    df = load_activity_csv(raw_csv, expected_n_columns=160, classes=ACTIVITY_CLASSES)

    assert df.shape == (250, 160)
    assert df["kurtosis_roll_belt"].isna().all()
    assert set(df["classe"]) == set(ACTIVITY_CLASSES)


def test_wrong_column_count_rejected(raw_csv):
    with pytest.raises(ValueError, match="expected 159"):
        load_activity_csv(raw_csv, expected_n_columns=159)


def test_label_outside_class_set_rejected(tmp_path, raw_frame):
    raw_frame.loc[3, "classe"] = "jogging"
    path = tmp_path / "bad.csv"
    raw_frame.to_csv(path, index=False)

    with pytest.raises(ValueError, match="jogging"):
        load_activity_csv(path, classes=ACTIVITY_CLASSES)


def test_missing_label_rejected(tmp_path, raw_frame):
    raw_frame.loc[0, "classe"] = np.nan
    path = tmp_path / "bad.csv"
    raw_frame.to_csv(path, index=False)

    with pytest.raises(ValueError, match="no value"):
        load_activity_csv(path)


def test_label_alias_is_renamed(tmp_path, raw_frame):
    path = tmp_path / "alias.csv"
    raw_frame.rename(columns={"classe": "Activity"}).to_csv(path, index=False)

    df = load_activity_csv(path, label_col="classe")
    assert "classe" in df.columns
    assert "Activity" not in df.columns


def test_unlabeled_file(tmp_path, raw_frame):
    path = tmp_path / "quiz.csv"
    raw_frame.drop(columns=["classe"]).head(20).to_csv(path, index=False)

    with pytest.raises(ValueError):
        load_activity_csv(path)
    assert len(load_activity_csv(path, require_label=False)) == 20


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_activity_csv(tmp_path / "absent.csv")


def test_pick_label_col_prefers_exact_then_case_insensitive():
    assert pick_label_col(["a", "classe", "label"], ["classe", "label"]) == "classe"
    assert pick_label_col(["a", "CLASS"], ["class"]) == "CLASS"
    assert pick_label_col(["a"], ["class"]) is None


def test_validate_labels_without_class_set(raw_frame):
    validate_labels(raw_frame, "classe", None)
    with pytest.raises(ValueError):
        validate_labels(raw_frame, "missing", None)


def test_unnamed_row_index_header_becomes_x(r_style_csv):
    assert r_style_csv.read_text(encoding="utf-8").startswith(",user_name,")

    df = load_activity_csv(r_style_csv, expected_n_columns=160)

    assert list(df.columns[:2]) == ["X", "user_name"]
    assert not any(str(c).startswith("Unnamed") for c in df.columns)
    assert df["X"].tolist()[:3] == [1, 2, 3]


def test_letter_labelled_export_needs_matching_class_set(tmp_path, raw_frame):
    letters = dict(zip(ACTIVITY_CLASSES, "ABCDE"))
    raw_frame["classe"] = raw_frame["classe"].map(letters)
    path = tmp_path / "letters.csv"
    raw_frame.to_csv(path, index=False)

    with pytest.raises(ValueError, match="outside the class set"):
        load_activity_csv(path, classes=ACTIVITY_CLASSES)
    assert set(load_activity_csv(path, classes=None)["classe"]) == set("ABCDE")
    assert len(load_activity_csv(path, classes=list("ABCDE"))) == 250
