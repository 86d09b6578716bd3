from __future__ import annotations

import argparse
import datetime as dt
import logging
from pathlib import Path
from typing import Any, Dict

from har_stacking.data_processing.clean import clean_from_config
from har_stacking.data_processing.missingness import missing_patterns, missing_summary
from har_stacking.data_processing.splits import safe_train_test_split
from har_stacking.utils.config import get_seed, load_config
from har_stacking.utils.logging import setup_logging
from har_stacking.utils.seed import set_global_seed
from har_stacking.utils.timer import timed

from evaluation.common import save_json, train_and_evaluate

log = logging.getLogger(__name__)


def _timestamp_tag() -> str:
    return dt.datetime.now(dt.timezone.utc).strftime("%Y%m%d_%H%M%S")


def run_pipeline(cfg: Dict[str, Any], outdir: Path, *, stacking: bool | None = None) -> Dict[str, Any]:
    """Raw CSV to metrics in one pass; everything lands under `outdir`."""
    seed = get_seed(cfg)
    timings: Dict[str, float] = {}

    raw, clean, report = clean_from_config(cfg, timings)
    with timed("missingness", timings):
        missing_summary(raw).to_csv(outdir / "missing_summary.csv", index=False)
        missing_patterns(raw).to_csv(outdir / "missing_patterns.csv", index=False)

    with timed("split", timings):
        splits = safe_train_test_split(
            clean,
            train=float(cfg.get("split", {}).get("train_ratio", 0.7)),
            seed=seed,
            stratify_col=report.label_col,
        )

    with timed("train_evaluate", timings):
        art = train_and_evaluate(
            df_train=splits.train,
            df_test=splits.test,
            feature_cols=report.feature_cols,
            cfg=cfg,
            out_dir=outdir / "models",
            seed=seed,
            label_col=report.label_col,
            stacking=stacking,
        )

    return {
        "cleaning": report.to_dict(),
        "n_train": int(len(splits.train)),
        "n_test": int(len(splits.test)),
        "artifacts": art.__dict__,
        "timings_sec": timings,
    }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run the full clean -> split -> forests -> stacking pipeline.")
    parser.add_argument("--config", required=True, help="Path to YAML config (supports extends).")
    parser.add_argument("--outdir", default="outputs/runs", help="Output directory for models/metrics.")
    parser.add_argument("--tag", default=None, help="Optional tag. Default = UTC timestamp.")
    parser.add_argument("--no-stacking", action="store_true", help="Skip the meta-model.")
    args = parser.parse_args(argv)

    cfg = load_config(args.config)
    setup_logging(cfg.get("logging", {}).get("level", "INFO"))
    seed = get_seed(cfg)
    set_global_seed(seed)

    csv_path = (cfg.get("dataset", {}) or {}).get("csv_path")
    if not csv_path or not Path(csv_path).exists():
        raise FileNotFoundError(
            "Missing raw activity CSV. Place the export at dataset.csv_path.\n"
            f"Missing: {csv_path}"
        )

    tag = args.tag or _timestamp_tag()
    outdir = Path(args.outdir) / tag
    outdir.mkdir(parents=True, exist_ok=True)

    result = run_pipeline(cfg, outdir, stacking=False if args.no_stacking else None)

    summary = {"tag": tag, "config": str(Path(args.config)), "seed": seed, "result": result}
    save_json(outdir / "run_summary.json", summary)
    log.info("Saved run summary: %s", (outdir / "run_summary.json").as_posix())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
