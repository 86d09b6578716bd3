from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.stats import beta
from sklearn.metrics import accuracy_score, cohen_kappa_score, confusion_matrix, f1_score

log = logging.getLogger(__name__)


def accuracy_ci(n_correct: int, n_total: int, level: float = 0.95) -> Tuple[float, float]:
    """Exact (Clopper-Pearson) binomial confidence interval for accuracy."""
    if n_total <= 0:
        return float("nan"), float("nan")
    alpha = 1.0 - level
    lower = 0.0 if n_correct == 0 else float(beta.ppf(alpha / 2, n_correct, n_total - n_correct + 1))
    upper = 1.0 if n_correct == n_total else float(beta.ppf(1 - alpha / 2, n_correct + 1, n_total - n_correct))
    return lower, upper


def confusion_frame(y_true: np.ndarray, y_pred: np.ndarray, labels: Sequence[str]) -> pd.DataFrame:
    """Rows are the reference labels, columns the predictions."""
    cm = confusion_matrix(y_true, y_pred, labels=list(labels))
    return pd.DataFrame(cm, index=list(labels), columns=list(labels))


def per_class_stats(cm: pd.DataFrame) -> Dict[str, Dict[str, float]]:
    values = cm.to_numpy(dtype=float)
    total = values.sum()
    out: Dict[str, Dict[str, float]] = {}
    for i, label in enumerate(cm.index):
        tp = values[i, i]
        fn = values[i, :].sum() - tp
        fp = values[:, i].sum() - tp
        tn = total - tp - fn - fp
        sens = tp / (tp + fn) if (tp + fn) > 0 else float("nan")
        spec = tn / (tn + fp) if (tn + fp) > 0 else float("nan")
        out[str(label)] = {
            "sensitivity": float(sens),
            "specificity": float(spec),
            "balanced_accuracy": float((sens + spec) / 2),
            "prevalence": float((tp + fn) / total) if total > 0 else float("nan"),
        }
    return out


def compute_metrics(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    classes: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    y_true = np.asarray(y_true).astype(str)
    y_pred = np.asarray(y_pred).astype(str)
    if len(y_true) != len(y_pred):
        raise ValueError(f"y_true and y_pred differ in length: {len(y_true)} vs {len(y_pred)}")
    if len(y_true) == 0:
        raise ValueError("compute_metrics received no predictions.")

    labels = [str(c) for c in classes] if classes is not None else sorted(set(y_true) | set(y_pred))
    n = len(y_true)
    n_correct = int((y_true == y_pred).sum())
    lower, upper = accuracy_ci(n_correct, n)
    cm = confusion_frame(y_true, y_pred, labels)

    return {
        "n": int(n),
        "accuracy": float(accuracy_score(y_true, y_pred)),
        "accuracy_ci95": [lower, upper],
        "out_of_sample_error": float(1.0 - n_correct / n),
        "no_information_rate": float(pd.Series(y_true).value_counts(normalize=True).max()),
        "kappa": float(cohen_kappa_score(y_true, y_pred, labels=labels)),
        "f1_macro": float(f1_score(y_true, y_pred, labels=labels, average="macro", zero_division=0)),
        "f1_weighted": float(f1_score(y_true, y_pred, labels=labels, average="weighted", zero_division=0)),
        "per_class": per_class_stats(cm),
    }


def save_confusion_csv(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    *,
    labels: Sequence[str],
    out_csv: str | Path,
) -> None:
    out_csv = Path(out_csv)
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    confusion_frame(np.asarray(y_true).astype(str), np.asarray(y_pred).astype(str), labels).to_csv(out_csv, index=True)


def metrics_table(metrics_by_model: Dict[str, Dict[str, Any]]) -> pd.DataFrame:
    """One row per model with the headline numbers."""
    rows = []
    for name, m in metrics_by_model.items():
        rows.append(
            {
                "model": name,
                "accuracy": m["accuracy"],
                "ci95_lower": m["accuracy_ci95"][0],
                "ci95_upper": m["accuracy_ci95"][1],
                "kappa": m["kappa"],
                "out_of_sample_error": m["out_of_sample_error"],
            }
        )
    return pd.DataFrame(rows)
