# parameters.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .errors import (
    DuplicateBindingError,
    UnboundArtifactError,
    UnexpectedParameterError,
    UnknownAttributeError,
    UnresolvedParameterError,
)
from .model import STACK_DEPLOY, Action, ArtifactRef, ParameterBinding, artifact_name, freeze

# Storage-location attributes an artifact exposes once it has been uploaded.
BUCKET_NAME = "BucketName"
OBJECT_KEY = "ObjectKey"
OBJECT_VERSION = "ObjectVersion"
URL = "URL"

ATTRIBUTES = (BUCKET_NAME, OBJECT_KEY, OBJECT_VERSION, URL)


class ParameterBinder:
    """
    Table of deferred deploy parameters keyed by (action id, parameter name).

    Bindings are collected while the pipeline is declared and turned into
    concrete parameter maps by resolve(), which the builder calls once.
    """

    def __init__(self) -> None:
        self._bindings: Dict[Tuple[str, str], ParameterBinding] = {}

    def bind(
        self,
        action_id: str,
        parameter: str,
        artifact: ArtifactRef,
        attribute: str,
    ) -> ParameterBinding:
        if attribute not in ATTRIBUTES:
            raise UnknownAttributeError(
                f"Unknown artifact attribute '{attribute}'",
                {"action": action_id, "parameter": parameter, "allowed": list(ATTRIBUTES)},
            )
        key = (action_id, parameter)
        if key in self._bindings:
            raise DuplicateBindingError(
                f"Parameter '{parameter}' of '{action_id}' is already bound",
                {"action": action_id, "parameter": parameter, "artifact": self._bindings[key].artifact},
            )
        binding = ParameterBinding(
            action_id=action_id,
            parameter=parameter,
            artifact=artifact_name(artifact),
            attribute=attribute,
        )
        self._bindings[key] = binding
        return binding

    def bindings(self) -> Tuple[ParameterBinding, ...]:
        return tuple(self._bindings[k] for k in sorted(self._bindings))

    def resolve(self, actions: Iterable[Action]) -> Mapping[str, Mapping[str, Any]]:
        """
        Resolve every stack_deploy action's parameter map.

        The key set of each map equals the action's declared placeholders;
        a placeholder with no binding, or a binding with no placeholder,
        fails here, before anything is deployed.
        """
        by_id = {a.id: a for a in actions}

        for (action_id, parameter), binding in sorted(self._bindings.items()):
            action = by_id.get(action_id)
            if action is None or action.kind != STACK_DEPLOY:
                raise UnexpectedParameterError(
                    f"Parameter '{parameter}' is bound to '{action_id}', which is not a stack deployment",
                    {"action": action_id, "parameter": parameter, "artifact": binding.artifact},
                )
            if parameter not in action.placeholders:
                raise UnexpectedParameterError(
                    f"Action '{action_id}' does not declare parameter '{parameter}'",
                    {
                        "action": action_id,
                        "stage": action.stage,
                        "parameter": parameter,
                        "declared": list(action.placeholders),
                    },
                )
            if binding.artifact not in action.all_inputs:
                raise UnboundArtifactError(
                    f"Parameter '{parameter}' reads artifact '{binding.artifact}', "
                    f"which is not an input of '{action_id}'",
                    {
                        "action": action_id,
                        "stage": action.stage,
                        "parameter": parameter,
                        "artifact": binding.artifact,
                        "inputs": list(action.all_inputs),
                    },
                )

        resolved: Dict[str, Mapping[str, Any]] = {}
        for action in by_id.values():
            if action.kind != STACK_DEPLOY:
                continue
            missing = [p for p in action.placeholders if (action.id, p) not in self._bindings]
            if missing:
                raise UnresolvedParameterError(
                    f"Action '{action.id}' declares parameters with no binding: {missing}",
                    {"action": action.id, "stage": action.stage, "parameters": missing},
                )
            resolved[action.id] = freeze(
                {p: self._bindings[(action.id, p)].value() for p in sorted(action.placeholders)}
            )

        return freeze({k: resolved[k] for k in sorted(resolved)})


@dataclass(frozen=True)
class CodeLocation:
    """
    A deployable code package whose storage location is assigned at deploy time.

    The stack template declares one parameter per location part; assign()
    binds them all to the storage location of a build artifact.
    """
    bucket_name_param: str
    object_key_param: str
    object_version_param: Optional[str] = None

    @property
    def placeholders(self) -> Tuple[str, ...]:
        params = (self.bucket_name_param, self.object_key_param)
        if self.object_version_param:
            params += (self.object_version_param,)
        return params

    def assign(
        self,
        binder: ParameterBinder,
        action_id: str,
        artifact: ArtifactRef,
    ) -> Tuple[ParameterBinding, ...]:
        pairs = [
            (self.bucket_name_param, BUCKET_NAME),
            (self.object_key_param, OBJECT_KEY),
        ]
        if self.object_version_param:
            pairs.append((self.object_version_param, OBJECT_VERSION))
        return tuple(binder.bind(action_id, param, artifact, attr) for param, attr in pairs)
