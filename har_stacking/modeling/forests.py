"""
The two base learners.

Both are scikit-learn random forests; they differ only in how many features
each split may consider:
  - random_forest: sqrt(n_features) candidates per split
  - bagged_trees:  every feature at every split, i.e. bagged decision trees
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import numpy as np
from sklearn.base import BaseEstimator, clone
from sklearn.ensemble import RandomForestClassifier
from sklearn.model_selection import StratifiedKFold, cross_val_score

log = logging.getLogger(__name__)


BASE_MODEL_NAMES = ("random_forest", "bagged_trees")

DEFAULT_PARAMS: Dict[str, Dict[str, Any]] = {
    "random_forest": {"max_features": "sqrt"},
    "bagged_trees": {"max_features": None},
}

SHARED_DEFAULTS: Dict[str, Any] = {
    "n_estimators": 200,
    "oob_score": True,
    "n_jobs": -1,
}

ALIASES = {
    "rf": "random_forest",
    "randomforest": "random_forest",
    "bag": "bagged_trees",
    "bagging": "bagged_trees",
    "treebag": "bagged_trees",
}


def canonical_name(name: str) -> str:
    key = (name or "").strip().lower()
    key = ALIASES.get(key, key)
    if key not in BASE_MODEL_NAMES:
        raise ValueError(f"Unknown base model '{name}'. Supported: {', '.join(BASE_MODEL_NAMES)}")
    return key


def build_forest(name: str, seed: int, params: Optional[Mapping[str, Any]] = None) -> RandomForestClassifier:
    """
    Build one of the two base forests. `params` overrides the shared
    defaults; 'max_features' may be overridden too but then the two models
    no longer differ in the intended way, so that is logged.
    """
    key = canonical_name(name)
    kwargs: Dict[str, Any] = dict(SHARED_DEFAULTS)
    kwargs.update(DEFAULT_PARAMS[key])

    overrides = dict(params or {})
    if "max_features" in overrides and overrides["max_features"] != kwargs["max_features"]:
        log.warning("%s: max_features overridden to %r", key, overrides["max_features"])
    kwargs.update(overrides)
    kwargs["random_state"] = seed

    try:
        return RandomForestClassifier(**kwargs)
    except TypeError as e:
        raise ValueError(f"Invalid hyperparameters for {key}: {e}") from e


def build_base_models(cfg: Mapping[str, Any], seed: int) -> Dict[str, RandomForestClassifier]:
    models_cfg = cfg.get("models", {}) or {}
    shared = dict(models_cfg.get("shared", {}) or {})
    out: Dict[str, RandomForestClassifier] = {}
    for name in BASE_MODEL_NAMES:
        params = dict(shared)
        params.update(models_cfg.get(name, {}) or {})
        out[name] = build_forest(name, seed=seed, params=params)
    return out


def oob_error(model: BaseEstimator) -> Optional[float]:
    """Out-of-bag error (1 - OOB accuracy); None when OOB scoring was off."""
    score = getattr(model, "oob_score_", None)
    if score is None:
        return None
    return float(1.0 - score)


def cross_validate_accuracy(
    model: BaseEstimator,
    X,
    y: np.ndarray,
    *,
    folds: int = 5,
    seed: int = 42,
) -> Dict[str, Any]:
    """Stratified k-fold accuracy on an unfitted copy of `model`."""
    if folds < 2:
        raise ValueError(f"folds must be >= 2, got {folds}")
    cv = StratifiedKFold(n_splits=folds, shuffle=True, random_state=seed)
    scores = cross_val_score(clone(model), X, y, cv=cv, scoring="accuracy")
    return {
        "folds": int(folds),
        "accuracy_mean": float(np.mean(scores)),
        "accuracy_std": float(np.std(scores)),
        "accuracy_per_fold": [float(s) for s in scores],
    }
