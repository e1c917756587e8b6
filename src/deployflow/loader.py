# loader.py
from __future__ import annotations

import json
import runpy
from pathlib import Path

from .blueprint import static_site_pipeline
from .config import PipelineConfig
from .model import Pipeline


def load_config(path: str | Path) -> PipelineConfig:
    """Read a JSON pipeline config file and validate it."""
    cfg_path = Path(path).expanduser().resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    if cfg_path.suffix != ".json":
        raise ValueError(f"Config must be a .json file, got: {cfg_path.name}")

    data = json.loads(cfg_path.read_text(encoding="utf-8"))
    return PipelineConfig.model_validate(data)


def load_pipeline(path: str | Path) -> Pipeline:
    """
    Load a pipeline from a python file path.

    The file must define either:
      - pipeline() -> Pipeline
      - PIPELINE = Pipeline(...)
    """
    pl_path = Path(path).expanduser().resolve()
    if not pl_path.exists():
        raise FileNotFoundError(f"Pipeline file not found: {pl_path}")
    if pl_path.suffix != ".py":
        raise ValueError(f"Pipeline must be a .py file, got: {pl_path.name}")

    module_name = f"deployflow_pipeline_{pl_path.stem}"
    globals_dict = runpy.run_path(str(pl_path), run_name=module_name)

    pipeline = None
    if "pipeline" in globals_dict and callable(globals_dict["pipeline"]):
        pipeline = globals_dict["pipeline"]()
    elif "PIPELINE" in globals_dict:
        pipeline = globals_dict["PIPELINE"]

    if not isinstance(pipeline, Pipeline):
        raise TypeError(
            "Pipeline file must return/define a Pipeline. "
            "Define pipeline() -> Pipeline or PIPELINE = ..."
        )
    return pipeline


def load(path: str | Path) -> Pipeline:
    """A .json config builds the static site blueprint; a .py file is run."""
    if Path(path).suffix == ".json":
        return static_site_pipeline(load_config(path))
    return load_pipeline(path)
