from .builder import PipelineBuilder
from .blueprint import static_site_pipeline
from .config import PipelineConfig
from .dag import execution_levels, run_levels
from .model import Action, Pipeline, Stage
from .parameters import CodeLocation
from .render import render_definition

__all__ = [
    "PipelineBuilder",
    "static_site_pipeline",
    "PipelineConfig",
    "execution_levels",
    "run_levels",
    "Action",
    "Pipeline",
    "Stage",
    "CodeLocation",
    "render_definition",
]
