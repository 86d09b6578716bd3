from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

# Fixed activity class set every labelled row must belong to.
ACTIVITY_CLASSES: List[str] = [
    "sitting",
    "sitting-down",
    "standing",
    "standing-up",
    "walking",
]

DEFAULT_LABEL_COL = "classe"
LABEL_COL_CANDIDATES = ["classe", "class", "label", "activity", "Class", "Label", "Activity"]

# Raw export writes spreadsheet division errors and blanks for absent summary stats.
DEFAULT_NA_VALUES = ["NA", "", "#DIV/0!"]

EXPECTED_N_COLUMNS = 160

ROW_INDEX_COL = "X"

# Leading non-sensor columns: row index, subject, timestamps, window bookkeeping.
LEADING_ID_COLUMNS: List[str] = [
    ROW_INDEX_COL,
    "user_name",
    "raw_timestamp_part_1",
    "raw_timestamp_part_2",
    "cvtd_timestamp",
    "new_window",
    "num_window",
]


@dataclass
class CleaningReport:
    n_rows_input: int
    n_cols_input: int
    missing_threshold: float
    dropped_sparse_cols: List[str] = field(default_factory=list)
    dropped_id_cols: List[str] = field(default_factory=list)
    n_rows_dropped_incomplete: int = 0
    feature_cols: List[str] = field(default_factory=list)
    label_col: str = DEFAULT_LABEL_COL

    @property
    def n_features(self) -> int:
        return len(self.feature_cols)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["n_features"] = self.n_features
        out["n_dropped_sparse"] = len(self.dropped_sparse_cols)
        return out
