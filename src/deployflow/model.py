# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

# Action kinds
CHECKOUT = "checkout"
BUILD = "build"
OBJECT_DEPLOY = "object_deploy"
STACK_DEPLOY = "stack_deploy"
INVALIDATE = "invalidate"

ACTION_KINDS = (CHECKOUT, BUILD, OBJECT_DEPLOY, STACK_DEPLOY, INVALIDATE)


def freeze(mapping: Optional[Mapping[str, Any]] = None) -> Mapping[str, Any]:
    """Read-only deep copy of a mapping: nested mappings become read-only, lists become tuples."""
    return MappingProxyType({k: _frozen(v) for k, v in (mapping or {}).items()})


def _frozen(value: Any) -> Any:
    if isinstance(value, Mapping):
        return freeze(value)
    if isinstance(value, (list, tuple)):
        return tuple(_frozen(v) for v in value)
    return value


# ---------------------------------------------------------------------
# Deferred values
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ResourceAttribute:
    """An attribute of a provisioned resource, known only once it exists."""
    logical_id: str
    attribute: str

    def to_json(self) -> Dict[str, Any]:
        if self.attribute == "Ref":
            return {"Ref": self.logical_id}
        return {"Fn::GetAtt": [self.logical_id, self.attribute]}


@dataclass(frozen=True)
class SecretRef:
    """Opaque handle to a stored secret. The literal value never enters the model."""
    secret_id: str
    json_key: str = ""

    def to_json(self) -> str:
        return f"{{{{resolve:secretsmanager:{self.secret_id}:SecretString:{self.json_key}::}}}}"


# ---------------------------------------------------------------------
# Artifacts
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ArtifactHandle:
    """A declared artifact name, handed out by ArtifactGraph.declare_artifact."""
    name: str

    def at_path(self, path: str) -> "ArtifactPath":
        return ArtifactPath(artifact=self.name, path=path)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArtifactPath:
    """A file inside an artifact, e.g. a template produced by a build."""
    artifact: str
    path: str

    def __str__(self) -> str:
        return f"{self.artifact}::{self.path}"


ArtifactRef = Union[ArtifactHandle, str]


def artifact_name(ref: ArtifactRef) -> str:
    return ref.name if isinstance(ref, ArtifactHandle) else str(ref)


@dataclass(frozen=True)
class Artifact:
    name: str
    producer: Optional[str]
    consumers: Tuple[str, ...] = ()


# ---------------------------------------------------------------------
# Actions / stages
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Action:
    """
    One unit of work inside a stage.

    `run_order` is the barrier level within the stage: every action at a
    lower run_order completes before this one starts.
    `placeholders` lists the deploy-time parameters a stack_deploy action
    expects to receive through parameter bindings.
    """
    name: str
    stage: str
    kind: str
    run_order: int = 1
    inputs: Tuple[str, ...] = ()
    extra_inputs: Tuple[str, ...] = ()
    outputs: Tuple[str, ...] = ()
    config: Mapping[str, Any] = field(default_factory=freeze, hash=False)
    role: Optional[str] = None
    placeholders: Tuple[str, ...] = ()

    @property
    def id(self) -> str:
        return f"{self.stage}/{self.name}"

    @property
    def all_inputs(self) -> Tuple[str, ...]:
        return self.inputs + self.extra_inputs


@dataclass(frozen=True)
class Stage:
    name: str
    index: int
    actions: Tuple[Action, ...] = ()


@dataclass(frozen=True)
class ExecutionLevel:
    """All actions sharing one (stage, run_order): they run concurrently."""
    stage: str
    stage_index: int
    run_order: int
    actions: Tuple[Action, ...]

    @property
    def action_ids(self) -> Tuple[str, ...]:
        return tuple(a.id for a in self.actions)


# ---------------------------------------------------------------------
# Parameter bindings / published config
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ParameterBinding:
    action_id: str
    parameter: str
    artifact: str
    attribute: str

    def value(self) -> Mapping[str, Any]:
        return freeze({"Fn::GetArtifactAtt": (self.artifact, self.attribute)})


@dataclass(frozen=True)
class PublishedConfigEntry:
    key_path: str
    value: Union[str, ResourceAttribute]
    description: Optional[str] = None


# ---------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class PolicyStatement:
    actions: Tuple[str, ...]
    resources: Tuple[str, ...]
    effect: str = "Allow"

    def to_json(self) -> Dict[str, Any]:
        return {
            "Effect": self.effect,
            "Action": list(self.actions),
            "Resource": list(self.resources),
        }


@dataclass(frozen=True)
class RoleDefinition:
    name: str
    principal: str
    account: str
    path: str = "/"
    statements: Tuple[PolicyStatement, ...] = ()

    @property
    def arn(self) -> str:
        return f"arn:aws:iam::{self.account}:role{self.path}{self.name}"


# ---------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Resource:
    logical_id: str
    type: str
    properties: Mapping[str, Any] = field(default_factory=freeze, hash=False)

    def attr(self, attribute: str) -> ResourceAttribute:
        return ResourceAttribute(self.logical_id, attribute)

    def ref(self) -> ResourceAttribute:
        return ResourceAttribute(self.logical_id, "Ref")


# ---------------------------------------------------------------------
# Pipeline (immutable result of PipelineBuilder.build)
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Pipeline:
    name: str
    account: str
    region: str
    stages: Tuple[Stage, ...]
    artifacts: Tuple[Artifact, ...] = ()
    bindings: Tuple[ParameterBinding, ...] = ()
    parameters: Mapping[str, Mapping[str, Any]] = field(default_factory=freeze, hash=False)
    roles: Tuple[RoleDefinition, ...] = ()
    published: Tuple[PublishedConfigEntry, ...] = ()
    resources: Tuple[Resource, ...] = ()
    restart_execution_on_update: bool = False

    @property
    def actions(self) -> Tuple[Action, ...]:
        return tuple(a for s in self.stages for a in s.actions)

    def action(self, action_id: str) -> Action:
        for a in self.actions:
            if a.id == action_id:
                return a
        raise KeyError(f"Unknown action: {action_id}")

    def artifact(self, name: str) -> Artifact:
        for art in self.artifacts:
            if art.name == name:
                return art
        raise KeyError(f"Unknown artifact: {name}")

    def role(self, name: str) -> RoleDefinition:
        for r in self.roles:
            if r.name == name:
                return r
        raise KeyError(f"Unknown role: {name}")

    def levels(self) -> Tuple[ExecutionLevel, ...]:
        from .dag import execution_levels

        return execution_levels(self.stages)
