"""Shared fixtures for deployflow tests."""

from __future__ import annotations

import json

import pytest

from deployflow.blueprint import static_site_pipeline
from deployflow.builder import PipelineBuilder
from deployflow.config import PipelineConfig
from deployflow.model import Pipeline

ACCOUNT = "123456789012"
REGION = "eu-central-1"


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig(
        name="cra-serverless",
        github={"owner": "acme", "repository": "site"},
        account=ACCOUNT,
        region=REGION,
        namespace="/cra-serverless",
    )


@pytest.fixture
def pipeline(config: PipelineConfig) -> Pipeline:
    return static_site_pipeline(config)


@pytest.fixture
def builder() -> PipelineBuilder:
    """Builder with the four standard stages registered and no actions."""
    b = PipelineBuilder("test", account=ACCOUNT, region=REGION, namespace="/test")
    b.stage("Sources", 0).stage("Build", 1).stage("Deploy", 2).stage("Release", 3)
    return b


CONFIG = {
    "name": "docs-site",
    "github": {"owner": "acme", "repository": "docs"},
    "account": ACCOUNT,
    "region": "eu-west-1",
    "namespace": "/docs-site",
}

# Consumer placed before the producer of `x` in the same stage.
CYCLIC = '''
from deployflow import PipelineBuilder


def pipeline():
    b = PipelineBuilder("loop", account="123456789012", region="eu-west-1", namespace="/loop")
    x = b.artifact("x")
    b.stage("Build", 0).stage("Deploy", 1)
    b.action("Deploy", "Consume", "stack_deploy", inputs=[x])
    b.action("Deploy", "Produce", "build", outputs=[x], run_order=2)
    return b.build()
'''


@pytest.fixture
def write_config(tmp_path):
    """Write a JSON pipeline config, with overrides, and return its path."""

    def _write(**overrides):
        path = tmp_path / "deployflow.json"
        path.write_text(json.dumps({**CONFIG, **overrides}), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def config_file(write_config):
    return write_config()


@pytest.fixture
def cyclic_file(tmp_path):
    path = tmp_path / "loop_pipeline.py"
    path.write_text(CYCLIC, encoding="utf-8")
    return path
