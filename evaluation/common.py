from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import joblib
import numpy as np
import pandas as pd
from tqdm import tqdm

from har_stacking.data_processing.features import make_xy
from har_stacking.modeling.forests import build_base_models, cross_validate_accuracy, oob_error
from har_stacking.modeling.importance import feature_importance, shared_top_features, top_features
from har_stacking.modeling.metrics import compute_metrics, metrics_table, save_confusion_csv
from har_stacking.modeling.stacking import StackedEnsemble

log = logging.getLogger(__name__)

STACKED_NAME = "stacked"


@dataclass
class ModelArtifacts:
    out_dir: str
    metrics_path: str
    feature_cols_path: str
    predictions_path: str
    model_paths: Dict[str, str] = field(default_factory=dict)
    confusion_csvs: Dict[str, str] = field(default_factory=dict)
    importance_csvs: Dict[str, str] = field(default_factory=dict)
    stacked_path: Optional[str] = None


def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def save_json(path: str | Path, obj: Any) -> None:
    path = Path(path)
    ensure_dir(path.parent)
    path.write_text(json.dumps(obj, indent=2, ensure_ascii=False, default=str), encoding="utf-8")


def load_parquet(path: str | Path) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing parquet file: {path}. Run har-preprocess first.")
    return pd.read_parquet(path)


def resolve_classes(cfg: Dict[str, Any], *frames: pd.DataFrame, label_col: str) -> List[str]:
    """Configured class set, or the sorted labels seen in `frames` when it is null."""
    classes = (cfg.get("dataset", {}) or {}).get("classes")
    if classes is not None:
        return [str(c) for c in classes]
    seen = set()
    for f in frames:
        seen.update(f[label_col].astype(str).unique().tolist())
    return sorted(seen)


def train_and_evaluate(
    *,
    df_train: pd.DataFrame,
    df_test: pd.DataFrame,
    feature_cols: List[str],
    cfg: Dict[str, Any],
    out_dir: str | Path,
    seed: int,
    label_col: str,
    stacking: Optional[bool] = None,
) -> ModelArtifacts:
    """
    Fit both forests on the training partition, score them on the test
    partition, then (optionally) fit and score the stacked meta-model.
    """
    out_dir = Path(out_dir)
    ensure_dir(out_dir)

    if df_train.empty or df_test.empty:
        raise ValueError(f"Both partitions must be non-empty (train={len(df_train)}, test={len(df_test)}).")

    classes = resolve_classes(cfg, df_train, df_test, label_col=label_col)
    X_train, y_train = make_xy(df_train, feature_cols, label_col=label_col)
    X_test, y_test = make_xy(df_test, feature_cols, label_col=label_col)

    models_cfg = cfg.get("models", {}) or {}
    cv_folds = int(models_cfg.get("cv_folds", 0) or 0)
    top_n = int((cfg.get("importance", {}) or {}).get("top_n", 10))

    base_models = build_base_models(cfg, seed=seed)

    metrics: Dict[str, Any] = {
        "seed": int(seed),
        "n_train": int(len(df_train)),
        "n_test": int(len(df_test)),
        "n_features": int(len(feature_cols)),
        "classes": classes,
        "models": {},
    }
    predictions: Dict[str, np.ndarray] = {}
    art = ModelArtifacts(
        out_dir=str(out_dir),
        metrics_path=str(out_dir / "metrics.json"),
        feature_cols_path=str(out_dir / "feature_cols.json"),
        predictions_path=str(out_dir / "test_predictions.csv"),
    )
    top: Dict[str, pd.DataFrame] = {}

    for name, model in tqdm(base_models.items(), desc="Fitting base models", total=len(base_models)):
        entry: Dict[str, Any] = {
            "model": model.__class__.__name__,
            "model_params": model.get_params(),
        }
        if cv_folds >= 2:
            entry["cv"] = cross_validate_accuracy(model, X_train, y_train, folds=cv_folds, seed=seed)
            log.info("[%s] %d-fold CV accuracy %.4f", name, cv_folds, entry["cv"]["accuracy_mean"])

        model.fit(X_train, y_train)
        entry["oob_error"] = oob_error(model)

        y_pred = model.predict(X_test).astype(str)
        predictions[name] = y_pred
        entry["test"] = compute_metrics(y_test, y_pred, classes)
        log.info("[%s] test accuracy %.4f, kappa %.4f", name, entry["test"]["accuracy"], entry["test"]["kappa"])

        imp = feature_importance(model, feature_cols)
        top[name] = top_features(imp, top_n)
        imp_csv = out_dir / f"importance_{name}.csv"
        imp.to_csv(imp_csv, index=False)
        art.importance_csvs[name] = str(imp_csv)
        entry["top_features"] = top[name]["feature"].tolist()

        cm_csv = out_dir / f"confusion_{name}.csv"
        save_confusion_csv(y_test, y_pred, labels=classes, out_csv=cm_csv)
        art.confusion_csvs[name] = str(cm_csv)

        model_path = out_dir / f"{name}.joblib"
        joblib.dump(model, model_path)
        art.model_paths[name] = str(model_path)

        metrics["models"][name] = entry

    names = list(top.keys())
    if len(names) == 2:
        metrics["top_feature_overlap"] = shared_top_features(top[names[0]], top[names[1]])

    st_cfg = cfg.get("stacking", {}) or {}
    do_stack = bool(st_cfg.get("enabled", True)) if stacking is None else bool(stacking)
    if do_stack:
        strategy = str(st_cfg.get("strategy", "oof"))
        ensemble = StackedEnsemble(
            base_models,
            classes,
            seed=seed,
            strategy=strategy,
            folds=int(st_cfg.get("cv_folds", 5)),
            max_iter=int(st_cfg.get("max_iter", 1000)),
            prefitted=True,
        )
        if strategy == "holdout":
            ensemble.fit(X_train, y_train, X_meta=X_test, y_meta=y_test)
        else:
            ensemble.fit(X_train, y_train)

        y_pred = ensemble.predict_from_base(predictions).astype(str)
        predictions[STACKED_NAME] = y_pred
        metrics["models"][STACKED_NAME] = {
            "model": "LogisticRegression(multinomial) over one-hot base predictions",
            "strategy": strategy,
            "base_models": ensemble.base_names,
            "test": compute_metrics(y_test, y_pred, classes),
        }
        log.info(
            "[%s] test accuracy %.4f, kappa %.4f",
            STACKED_NAME,
            metrics["models"][STACKED_NAME]["test"]["accuracy"],
            metrics["models"][STACKED_NAME]["test"]["kappa"],
        )

        cm_csv = out_dir / f"confusion_{STACKED_NAME}.csv"
        save_confusion_csv(y_test, y_pred, labels=classes, out_csv=cm_csv)
        art.confusion_csvs[STACKED_NAME] = str(cm_csv)

        stacked_path = out_dir / f"{STACKED_NAME}.joblib"
        joblib.dump(ensemble, stacked_path)
        art.stacked_path = str(stacked_path)

    summary = metrics_table({k: v["test"] for k, v in metrics["models"].items()})
    log.info("Test-set summary:\n%s", summary.to_string(index=False, float_format=lambda v: f"{v:.4f}"))
    summary.to_csv(out_dir / "metrics_summary.csv", index=False)

    pred_df = pd.DataFrame({label_col: y_test})
    for name, y_pred in predictions.items():
        pred_df[f"pred_{name}"] = y_pred
    pred_df.to_csv(art.predictions_path, index=False)

    save_json(art.feature_cols_path, list(feature_cols))
    save_json(art.metrics_path, metrics)

    log.info("Saved artifacts under %s", out_dir.as_posix())
    return art


def load_artifacts(out_dir: str | Path) -> Tuple[Dict[str, Any], Optional[StackedEnsemble], List[str]]:
    """Base models by name, the stacked ensemble if one was saved, and the feature columns."""
    out_dir = Path(out_dir)
    feat_path = out_dir / "feature_cols.json"
    if not feat_path.exists():
        raise FileNotFoundError(f"No trained artifacts under {out_dir} (missing {feat_path.name}).")
    feature_cols: List[str] = json.loads(feat_path.read_text(encoding="utf-8"))

    models: Dict[str, Any] = {}
    for p in sorted(out_dir.glob("*.joblib")):
        if p.stem == STACKED_NAME:
            continue
        models[p.stem] = joblib.load(p)

    stacked_path = out_dir / f"{STACKED_NAME}.joblib"
    ensemble: Optional[StackedEnsemble] = joblib.load(stacked_path) if stacked_path.exists() else None
    return models, ensemble, feature_cols
