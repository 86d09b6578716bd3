from __future__ import annotations

import argparse
import logging

from har_stacking.data_processing.clean import preprocess
from har_stacking.utils.config import ensure_dirs, get_seed, load_config
from har_stacking.utils.logging import setup_logging
from har_stacking.utils.seed import set_global_seed

log = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Clean the raw sensor export and summarise its missing values.")
    p.add_argument("--config", required=True, help="Path to YAML config (supports extends).")
    p.add_argument("--csv", default=None, help="Override dataset.csv_path.")
    p.add_argument("--threshold", type=float, default=None, help="Override cleaning.missing_threshold.")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    cfg = load_config(args.config)
    if args.csv:
        cfg.setdefault("dataset", {})["csv_path"] = args.csv
    if args.threshold is not None:
        cfg.setdefault("cleaning", {})["missing_threshold"] = args.threshold

    ensure_dirs(cfg)
    setup_logging(level=cfg.get("logging", {}).get("level", "INFO"))
    set_global_seed(get_seed(cfg))

    out = preprocess(cfg)
    log.info("Cleaned table: %s", out["clean_path"])
    log.info("Missing-value summary: %s", out["missing_summary_path"])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
