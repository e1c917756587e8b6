# builder.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .artifacts import ArtifactGraph
from .config_store import PublishedConfigStore
from .dag import execution_levels
from .errors import (
    ConfigurationError,
    DuplicateActionError,
    EmptyStageError,
    InvalidActionError,
    InvalidRunOrderError,
    UnknownRoleError,
    UnknownStageError,
)
from .model import (
    ACTION_KINDS,
    STACK_DEPLOY,
    Action,
    ArtifactHandle,
    ArtifactRef,
    ParameterBinding,
    Pipeline,
    PublishedConfigEntry,
    Resource,
    ResourceAttribute,
    Stage,
    artifact_name,
    freeze,
)
from .parameters import CodeLocation, ParameterBinder
from .policy import RolePolicyBuilder


class PipelineBuilder:
    """
    Explicit builder for a Pipeline value.

    Nothing registers itself implicitly: stages, artifacts, actions, bindings,
    roles, resources and published config are added through this object, and
    build() validates the whole declaration before returning an immutable
    Pipeline. Structural errors raise ConfigurationError subclasses as soon
    as they can be detected.

    Example:
        b = PipelineBuilder("site", account="123456789012", region="eu-west-1",
                            namespace="/site")
        src = b.artifact("sources")
        b.stage("Sources", 0).action("Sources", "Checkout", "checkout", outputs=[src])
        pipeline = b.build()
    """

    def __init__(
        self,
        name: str,
        *,
        account: str,
        region: str,
        namespace: str,
        restart_execution_on_update: bool = False,
    ):
        self.name = name
        self.account = account
        self.region = region
        self.restart_execution_on_update = restart_execution_on_update

        self._graph = ArtifactGraph()
        self._binder = ParameterBinder()
        self._store = PublishedConfigStore(namespace)
        self._stages: Dict[str, int] = {}
        self._actions: Dict[str, Action] = {}
        self._roles: Dict[str, RolePolicyBuilder] = {}
        self._resources: Dict[str, Resource] = {}

    @property
    def config_store(self) -> PublishedConfigStore:
        return self._store

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def artifact(self, name: str) -> ArtifactHandle:
        return self._graph.declare_artifact(name)

    def stage(self, name: str, index: int):
        self._graph.register_stage(name, index)
        self._stages[name] = index
        return self

    def action(
        self,
        stage: str,
        name: str,
        kind: str,
        *,
        inputs: Iterable[ArtifactRef] = (),
        outputs: Iterable[ArtifactRef] = (),
        extra_inputs: Iterable[ArtifactRef] = (),
        run_order: int = 1,
        config: Optional[Mapping[str, Any]] = None,
        role: Optional[str] = None,
        placeholders: Iterable[str] = (),
    ):
        if stage not in self._stages:
            raise UnknownStageError(
                f"Action '{name}' targets unknown stage '{stage}'",
                {"action": f"{stage}/{name}", "stage": stage, "known_stages": sorted(self._stages)},
            )
        if kind not in ACTION_KINDS:
            raise InvalidActionError(
                f"Unknown action kind '{kind}'",
                {"action": f"{stage}/{name}", "stage": stage, "allowed": list(ACTION_KINDS)},
            )
        if isinstance(run_order, bool) or not isinstance(run_order, int) or run_order < 1:
            raise InvalidRunOrderError(
                f"runOrder must be a positive integer, got {run_order!r}",
                {"action": f"{stage}/{name}", "stage": stage, "run_order": run_order},
            )
        placeholders = tuple(placeholders)
        if placeholders and kind != STACK_DEPLOY:
            raise InvalidActionError(
                "Only stack deployments declare parameters",
                {"action": f"{stage}/{name}", "stage": stage, "kind": kind},
            )

        action = Action(
            name=name,
            stage=stage,
            kind=kind,
            run_order=run_order,
            inputs=tuple(artifact_name(a) for a in inputs),
            extra_inputs=tuple(artifact_name(a) for a in extra_inputs),
            outputs=tuple(artifact_name(a) for a in outputs),
            config=freeze(config),
            role=role,
            placeholders=placeholders,
        )
        if action.id in self._actions:
            raise DuplicateActionError(
                f"Action '{action.id}' is already declared",
                {"action": action.id, "stage": stage},
            )

        self._graph.attach(action, action.inputs, action.outputs, action.extra_inputs)
        self._actions[action.id] = action
        return self

    def bind(self, action_id: str, parameter: str, artifact: ArtifactRef, attribute: str) -> ParameterBinding:
        return self._binder.bind(action_id, parameter, artifact, attribute)

    def assign_code(self, code: CodeLocation, action_id: str, artifact: ArtifactRef):
        code.assign(self._binder, action_id, artifact)
        return self

    def role(self, name: str, service: str, path: str = "/") -> RolePolicyBuilder:
        """Start (or return) the policy builder for an execution role."""
        if name not in self._roles:
            self._roles[name] = RolePolicyBuilder.for_service(
                name, service, account=self.account, region=self.region, path=path
            )
        return self._roles[name]

    def resource(self, logical_id: str, type: str, properties: Optional[Mapping[str, Any]] = None) -> Resource:
        if logical_id in self._resources:
            raise ConfigurationError(
                f"Resource '{logical_id}' is already declared", {"resource": logical_id}
            )
        res = Resource(logical_id=logical_id, type=type, properties=freeze(properties))
        self._resources[logical_id] = res
        return res

    def publish(
        self,
        key_path: str,
        value: Union[str, ResourceAttribute],
        description: Optional[str] = None,
    ) -> PublishedConfigEntry:
        return self._store.publish(key_path, value, description)

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self) -> Pipeline:
        self._graph.validate()

        stages: List[Stage] = []
        for stage_name, index in sorted(self._stages.items(), key=lambda kv: kv[1]):
            actions = [a for a in self._actions.values() if a.stage == stage_name]
            if not actions:
                raise EmptyStageError(
                    f"Stage '{stage_name}' has no actions", {"stage": stage_name, "index": index}
                )
            actions.sort(key=lambda a: (a.run_order, a.name))
            stages.append(Stage(name=stage_name, index=index, actions=tuple(actions)))

        for action in self._actions.values():
            if action.role is not None and action.role not in self._roles:
                raise UnknownRoleError(
                    f"Action '{action.id}' uses undeclared role '{action.role}'",
                    {"action": action.id, "stage": action.stage, "role": action.role},
                )

        parameters = self._binder.resolve(self._actions.values())
        execution_levels(stages)

        return Pipeline(
            name=self.name,
            account=self.account,
            region=self.region,
            stages=tuple(stages),
            artifacts=self._graph.artifacts(),
            bindings=self._binder.bindings(),
            parameters=parameters,
            roles=tuple(self._roles[n].build() for n in sorted(self._roles)),
            published=self._store.entries(),
            resources=tuple(self._resources[k] for k in sorted(self._resources)),
            restart_execution_on_update=self.restart_execution_on_update,
        )
