from __future__ import annotations

import argparse
import logging
from pathlib import Path

from har_stacking.data_processing.features import infer_feature_cols
from har_stacking.data_processing.schemas import DEFAULT_LABEL_COL
from har_stacking.data_processing.splits import safe_train_test_split
from har_stacking.utils.config import get_seed, load_config
from har_stacking.utils.logging import setup_logging
from har_stacking.utils.seed import set_global_seed

from evaluation.common import load_parquet, train_and_evaluate

log = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Train both forests and the stacked model on the cleaned table.")
    parser.add_argument("--config", required=True, help="Path to YAML config (supports extends).")
    parser.add_argument("--outdir", default=None, help="Where to write models/metrics (default: output.artifacts_dir).")
    parser.add_argument("--no-stacking", action="store_true", help="Skip the meta-model.")
    args = parser.parse_args(argv)

    cfg = load_config(args.config)
    setup_logging(cfg.get("logging", {}).get("level", "INFO"))
    seed = get_seed(cfg)
    set_global_seed(seed)

    label_col = str(cfg.get("dataset", {}).get("label_col", DEFAULT_LABEL_COL))
    df = load_parquet(cfg["output"]["clean_table"])
    feature_cols = infer_feature_cols(df, label_col=label_col)

    train_ratio = float(cfg.get("split", {}).get("train_ratio", 0.7))
    splits = safe_train_test_split(df, train=train_ratio, seed=seed, stratify_col=label_col)
    log.info("Partition: %d train / %d test rows", len(splits.train), len(splits.test))

    outdir = Path(args.outdir or cfg.get("output", {}).get("artifacts_dir", "outputs/models"))
    art = train_and_evaluate(
        df_train=splits.train,
        df_test=splits.test,
        feature_cols=feature_cols,
        cfg=cfg,
        out_dir=outdir,
        seed=seed,
        label_col=label_col,
        stacking=False if args.no_stacking else None,
    )
    log.info("Training complete. Metrics: %s", art.metrics_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
