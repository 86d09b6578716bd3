from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, clone
from sklearn.linear_model import LogisticRegression
from sklearn.model_selection import StratifiedKFold, cross_val_predict
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder

log = logging.getLogger(__name__)

STRATEGIES = ("oof", "holdout")


def build_meta_model(classes: Sequence[str], n_base: int, seed: int, max_iter: int = 1000) -> Pipeline:
    """
    Multinomial logistic regression over one-hot encoded base predictions.
    Categories are pinned to the class set so a class a base model never
    predicts still gets a column.
    """
    encoder = OneHotEncoder(
        categories=[list(classes)] * n_base,
        handle_unknown="ignore",
    )
    meta = LogisticRegression(max_iter=int(max_iter), random_state=seed)
    return Pipeline([("onehot", encoder), ("multinom", meta)])


class StackedEnsemble:
    """
    Second-stage classifier trained on the base models' predicted labels.

    strategy="oof": base predictions for the meta-model come from stratified
    k-fold cross_val_predict on the training rows; the base models are then
    refitted on all training rows for inference.

    strategy="holdout": the meta-model is fitted on base predictions for a
    separate labelled frame passed to fit() as (X_meta, y_meta).

    prefitted=True marks the base models as already fitted on the training
    rows, so fit() only refits them when they are not.
    """

    def __init__(
        self,
        base_models: Mapping[str, BaseEstimator],
        classes: Sequence[str],
        *,
        seed: int = 42,
        strategy: str = "oof",
        folds: int = 5,
        max_iter: int = 1000,
        prefitted: bool = False,
    ):
        if not base_models:
            raise ValueError("StackedEnsemble needs at least one base model.")
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown stacking strategy '{strategy}'. Supported: {', '.join(STRATEGIES)}")
        self.base_models: Dict[str, BaseEstimator] = dict(base_models)
        self.classes: List[str] = [str(c) for c in classes]
        self.seed = seed
        self.strategy = strategy
        self.folds = int(folds)
        self.max_iter = int(max_iter)
        self.meta_model: Optional[Pipeline] = None
        self._fitted_bases = bool(prefitted)

    @property
    def base_names(self) -> List[str]:
        return list(self.base_models.keys())

    def _frame(self, preds: Mapping[str, np.ndarray]) -> pd.DataFrame:
        return pd.DataFrame({f"pred_{name}": np.asarray(preds[name]).astype(str) for name in self.base_names})

    def fit_base_models(self, X, y: np.ndarray) -> "StackedEnsemble":
        for name, model in self.base_models.items():
            log.info("Fitting base model %s on %d rows", name, len(y))
            model.fit(X, y)
        self._fitted_bases = True
        return self

    def oof_predictions(self, X, y: np.ndarray) -> pd.DataFrame:
        cv = StratifiedKFold(n_splits=self.folds, shuffle=True, random_state=self.seed)
        preds = {}
        for name, model in self.base_models.items():
            log.info("Out-of-fold predictions for %s (%d folds)", name, self.folds)
            preds[name] = cross_val_predict(clone(model), X, y, cv=cv)
        return self._frame(preds)

    def meta_features(self, X) -> pd.DataFrame:
        if not self._fitted_bases:
            raise ValueError("Base models are not fitted; call fit() or fit_base_models() first.")
        return self._frame({name: model.predict(X) for name, model in self.base_models.items()})

    def fit(self, X, y: np.ndarray, X_meta=None, y_meta: Optional[np.ndarray] = None) -> "StackedEnsemble":
        y = np.asarray(y).astype(str)
        if self.strategy == "oof":
            Z = self.oof_predictions(X, y)
            z_target = y
            if not self._fitted_bases:
                self.fit_base_models(X, y)
        else:
            if X_meta is None or y_meta is None:
                raise ValueError("strategy='holdout' needs X_meta and y_meta.")
            log.warning("Holdout stacking: the meta-model is fitted on the frame it will be scored on.")
            if not self._fitted_bases:
                self.fit_base_models(X, y)
            Z = self.meta_features(X_meta)
            z_target = np.asarray(y_meta).astype(str)

        self.meta_model = build_meta_model(self.classes, len(self.base_names), self.seed, self.max_iter)
        self.meta_model.fit(Z, z_target)
        log.info("Meta-model fitted on %d rows of %d base predictions", len(Z), Z.shape[1])
        return self

    def predict(self, X) -> np.ndarray:
        if self.meta_model is None:
            raise ValueError("StackedEnsemble is not fitted.")
        return self.meta_model.predict(self.meta_features(X))

    def predict_from_base(self, base_preds: Mapping[str, np.ndarray]) -> np.ndarray:
        """Meta-model prediction from already computed base predictions."""
        if self.meta_model is None:
            raise ValueError("StackedEnsemble is not fitted.")
        return self.meta_model.predict(self._frame(base_preds))
