# config.py
from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from . import settings

_ACCOUNT_RE = re.compile(r"^\d{12}$")
_REGION_RE = re.compile(r"^[a-z]{2}(-[a-z]+)+-\d+$")

# -------------------- Schemas --------------------

class GitHubSource(BaseModel):
    owner: str
    repository: str
    branch: str = "master"
    # name of the stored secret holding the webhook/OAuth token, never the token
    token_secret: str = "GitHubToken"


class BuildSpecs(BaseModel):
    cdk: str = "./infra/buildspecs/cdk.yml"
    assets: str = "./infra/buildspecs/assets.yml"
    render: str = "./infra/buildspecs/render.yml"
    release: str = "./infra/buildspecs/release.yml"


class CodeParameters(BaseModel):
    """Stack parameter names receiving the render code's storage location."""
    bucket_name: str = "RenderCodeBucketName"
    object_key: str = "RenderCodeObjectKey"
    object_version: Optional[str] = None


class PipelineConfig(BaseModel):
    name: str = "cra-serverless"
    github: GitHubSource
    account: Optional[str] = Field(default_factory=lambda: settings.ACCOUNT, validate_default=True)
    region: Optional[str] = Field(default_factory=lambda: settings.REGION, validate_default=True)
    namespace: str = Field(default_factory=lambda: settings.NAMESPACE)
    index_document: str = "index.html"
    buildspecs: BuildSpecs = Field(default_factory=BuildSpecs)
    code: CodeParameters = Field(default_factory=CodeParameters)
    restart_execution_on_update: bool = False

    @field_validator("account")
    @classmethod
    def _check_account(cls, v: Optional[str]) -> str:
        if not v:
            raise ValueError("account is required (set it in the config or DEPLOYFLOW_ACCOUNT)")
        if not _ACCOUNT_RE.match(v):
            raise ValueError(f"account must be a 12 digit id, got {v!r}")
        return v

    @field_validator("region")
    @classmethod
    def _check_region(cls, v: Optional[str]) -> str:
        if not v:
            raise ValueError("region is required (set it in the config or DEPLOYFLOW_REGION)")
        if not _REGION_RE.match(v):
            raise ValueError(f"invalid region {v!r}")
        return v

    @property
    def stack_prefix(self) -> str:
        return self.name
