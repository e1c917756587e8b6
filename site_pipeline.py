# site_pipeline.py
# Pipeline for this repository: React front-end in a website bucket, render
# backend deployed as a stack, CDN invalidated on release.
from __future__ import annotations

import os

from deployflow import PipelineConfig, static_site_pipeline


def pipeline():
    return static_site_pipeline(
        PipelineConfig(
            name="cra-serverless",
            github={
                "owner": os.environ.get("GITHUB_OWNER", "sbstjn"),
                "repository": os.environ.get("GITHUB_REPOSITORY", "cra-serverless"),
            },
            account=os.environ.get("DEPLOYFLOW_ACCOUNT", "123456789012"),
            region=os.environ.get("DEPLOYFLOW_REGION", "eu-central-1"),
        )
    )
