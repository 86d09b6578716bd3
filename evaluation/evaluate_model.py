from __future__ import annotations

import argparse
import logging
from pathlib import Path

import pandas as pd

from har_stacking.data_processing.clean import dataset_options
from har_stacking.data_processing.loading import load_activity_csv
from har_stacking.utils.config import load_config
from har_stacking.utils.logging import setup_logging
from har_stacking.modeling.metrics import compute_metrics, save_confusion_csv

from evaluation.common import STACKED_NAME, load_artifacts, save_json

log = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Predict activity classes for a CSV with trained artifacts.")
    parser.add_argument("--config", required=True)
    parser.add_argument("--csv", required=True, help="Raw-format CSV to score (labels optional).")
    parser.add_argument("--artifact_dir", default=None, help="Default: output.artifacts_dir.")
    parser.add_argument("--out", default=None, help="Predictions CSV (default: <artifact_dir>/predictions_<csv stem>.csv).")
    args = parser.parse_args(argv)

    cfg = load_config(args.config)
    setup_logging(cfg.get("logging", {}).get("level", "INFO"))

    artifact_dir = Path(args.artifact_dir or cfg.get("output", {}).get("artifacts_dir", "outputs/models"))
    models, ensemble, feature_cols = load_artifacts(artifact_dir)

    opts = dataset_options(cfg)
    label_col = opts["label_col"]
    # scoring files may be unlabeled and carry an id column instead
    opts["expected_n_columns"] = None
    df = load_activity_csv(args.csv, **opts, require_label=False)

    missing = [c for c in feature_cols if c not in df.columns]
    if missing:
        raise RuntimeError(
            f"Missing {len(missing)} feature columns (example: {missing[:10]}). "
            "You likely trained on a different export."
        )
    X = df.loc[:, feature_cols].astype(float)
    incomplete = int(X.isna().any(axis=1).sum())
    if incomplete:
        raise ValueError(f"{incomplete} rows have missing sensor values; they cannot be scored without imputation.")

    preds = {name: model.predict(X).astype(str) for name, model in models.items()}
    if ensemble is not None:
        preds[STACKED_NAME] = ensemble.predict_from_base({n: preds[n] for n in ensemble.base_names})

    out_df = pd.DataFrame({f"pred_{name}": p for name, p in preds.items()})
    for id_col in ("problem_id", "X"):
        if id_col in df.columns:
            out_df.insert(0, id_col, df[id_col].to_numpy())
            break

    out_csv = Path(args.out) if args.out else artifact_dir / f"predictions_{Path(args.csv).stem}.csv"
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    out_df.to_csv(out_csv, index=False)
    log.info("Saved predictions: %s", out_csv.as_posix())

    if label_col in df.columns:
        y_true = df[label_col].astype(str).to_numpy()
        classes = opts["classes"] or sorted(set(y_true))
        result = {
            "csv": str(args.csv),
            "n_rows": int(len(df)),
            "metrics": {name: compute_metrics(y_true, p, classes) for name, p in preds.items()},
        }
        out_json = artifact_dir / f"eval_{Path(args.csv).stem}.json"
        save_json(out_json, result)
        for name, p in preds.items():
            save_confusion_csv(y_true, p, labels=classes, out_csv=artifact_dir / f"confusion_eval_{name}.csv")
        log.info("Saved evaluation JSON: %s", out_json.as_posix())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
