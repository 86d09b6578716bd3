from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Union

import yaml


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML root must be a mapping/dict: {path}")
    return data


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Recursively merges override into base (override wins).
    """
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, Mapping):
            out[k] = _deep_merge(out[k], v)  # type: ignore[arg-type]
        else:
            out[k] = v
    return out


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Loads a YAML config file with optional inheritance via:
      extends: "base.yaml"
    or
      extends:
        - "base.yaml"
        - "small.yaml"

    Parents are merged in order, the current file last.
    Relative 'extends' paths resolve against the current config file.
    """
    path = Path(path)
    cfg = load_yaml(path)

    extends = cfg.get("extends")
    merged: Dict[str, Any] = {}

    if extends:
        if isinstance(extends, (str, Path)):
            parents = [extends]
        elif isinstance(extends, list):
            parents = extends
        else:
            raise ValueError("Config key 'extends' must be a string or a list of strings.")

        for parent in parents:
            parent_path = Path(parent)
            if not parent_path.is_absolute():
                parent_path = (path.parent / parent_path).resolve()
            merged = _deep_merge(merged, load_config(parent_path))

    cfg_no_extends = dict(cfg)
    cfg_no_extends.pop("extends", None)
    merged = _deep_merge(merged, cfg_no_extends)

    merged.setdefault("_meta", {})
    merged["_meta"]["config_path"] = str(path.resolve())

    validate_config(merged)
    return merged


SECTIONS = ("project", "logging", "dataset", "cleaning", "split", "models", "stacking", "importance", "output")
STACKING_STRATEGIES = ("oof", "holdout")


def validate_config(cfg: Mapping[str, Any]) -> None:
    """
    Fail early on values the pipeline would only reject after loading the
    CSV and fitting the forests.
    """
    for key in SECTIONS:
        section = cfg.get(key)
        if section is not None and not isinstance(section, Mapping):
            raise ValueError(f"Config section '{key}' must be a mapping, got {type(section).__name__}")

    ratio = (cfg.get("split") or {}).get("train_ratio")
    if ratio is not None and not 0.0 < float(ratio) < 1.0:
        raise ValueError(f"split.train_ratio must be within (0, 1), got {ratio}")

    threshold = (cfg.get("cleaning") or {}).get("missing_threshold")
    if threshold is not None and not 0.0 <= float(threshold) <= 1.0:
        raise ValueError(f"cleaning.missing_threshold must be within [0, 1], got {threshold}")

    classes = (cfg.get("dataset") or {}).get("classes")
    if classes is not None and (not isinstance(classes, list) or len(set(map(str, classes))) < 2):
        raise ValueError("dataset.classes must be null or a list of at least two distinct labels")

    strategy = (cfg.get("stacking") or {}).get("strategy")
    if strategy is not None and strategy not in STACKING_STRATEGIES:
        raise ValueError(f"stacking.strategy must be one of {STACKING_STRATEGIES}, got {strategy!r}")


def get_seed(cfg: Mapping[str, Any], default: int = 42) -> int:
    return int((cfg.get("project") or {}).get("seed", default))


def ensure_dirs(cfg: Dict[str, Any]) -> None:
    """
    Creates parent directories for every path under 'output'.

    Expected config layout:
      output:
        clean_table: data/processed/clean.parquet
        clean_meta: data/processed/clean_meta.json
        artifacts_dir: outputs/models
    """
    output = cfg.get("output", {}) or {}
    if not isinstance(output, dict):
        raise ValueError("Config key 'output' must be a mapping of name -> path.")
    for _, p in output.items():
        if isinstance(p, (str, Path)) and str(p).strip():
            pp = Path(p)
            # file paths get their parent created, suffix-less paths are dirs
            parent = pp if pp.suffix == "" else pp.parent
            parent.mkdir(parents=True, exist_ok=True)
