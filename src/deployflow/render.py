# render.py
from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping

from .model import (
    BUILD,
    CHECKOUT,
    INVALIDATE,
    OBJECT_DEPLOY,
    STACK_DEPLOY,
    Action,
    ArtifactPath,
    Pipeline,
    ResourceAttribute,
    RoleDefinition,
    SecretRef,
)

# Engine action types per action kind.
ACTION_TYPES: Dict[str, Dict[str, str]] = {
    CHECKOUT: {"category": "Source", "owner": "ThirdParty", "provider": "GitHub", "version": "1"},
    BUILD: {"category": "Build", "owner": "AWS", "provider": "CodeBuild", "version": "1"},
    OBJECT_DEPLOY: {"category": "Deploy", "owner": "AWS", "provider": "S3", "version": "1"},
    STACK_DEPLOY: {"category": "Deploy", "owner": "AWS", "provider": "CloudFormation", "version": "1"},
    INVALIDATE: {"category": "Build", "owner": "AWS", "provider": "CodeBuild", "version": "1"},
}


def to_json(value: Any) -> Any:
    """Turn model values (deferred references, frozen mappings, tuples) into plain JSON data."""
    if isinstance(value, (ResourceAttribute, SecretRef)):
        return value.to_json()
    if isinstance(value, ArtifactPath):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value


def _configuration(action: Action, parameters: Mapping[str, Any]) -> Dict[str, Any]:
    # the engine takes configuration values as strings
    out: Dict[str, Any] = {}
    for k, v in action.config.items():
        if isinstance(v, bool):
            out[k] = "true" if v else "false"
        else:
            out[k] = to_json(v)
    if action.kind == STACK_DEPLOY and parameters:
        out["ParameterOverrides"] = json.dumps(to_json(parameters), sort_keys=True)
    return out


def _action(pipeline: Pipeline, action: Action) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "name": action.name,
        "actionTypeId": dict(ACTION_TYPES[action.kind]),
        "runOrder": action.run_order,
        "configuration": _configuration(action, pipeline.parameters.get(action.id, {})),
        "inputArtifacts": [{"name": n} for n in action.all_inputs],
        "outputArtifacts": [{"name": n} for n in action.outputs],
    }
    if action.role:
        doc["roleArn"] = pipeline.role(action.role).arn
    return doc


def _role(role: RoleDefinition) -> Dict[str, Any]:
    return {
        "Type": "AWS::IAM::Role",
        "Properties": {
            "RoleName": role.name,
            "Path": role.path,
            "AssumeRolePolicyDocument": {
                "Version": "2012-10-17",
                "Statement": [
                    {
                        "Effect": "Allow",
                        "Principal": {"Service": role.principal},
                        "Action": "sts:AssumeRole",
                    }
                ],
            },
            "Policies": [
                {
                    "PolicyName": f"{role.name}Policy",
                    "PolicyDocument": {
                        "Version": "2012-10-17",
                        "Statement": [s.to_json() for s in role.statements],
                    },
                }
            ],
        },
    }


def render_definition(pipeline: Pipeline) -> Dict[str, Any]:
    """
    Render a Pipeline into the document handed to the execution engine.

    Layout:
      pipeline:   name, restartExecutionOnUpdate, stages -> actions
      resources:  provisioned resources (buckets, projects, webhook, roles)
      parameters: published config entries
      levels:     execution barriers, for review
    """
    stages: List[Dict[str, Any]] = []
    for stage in sorted(pipeline.stages, key=lambda s: s.index):
        stages.append(
            {
                "name": stage.name,
                "actions": [_action(pipeline, a) for a in stage.actions],
            }
        )

    resources: Dict[str, Any] = {}
    for res in pipeline.resources:
        resources[res.logical_id] = {"Type": res.type, "Properties": to_json(res.properties)}
    for role in pipeline.roles:
        resources[role.name] = _role(role)

    parameters = [
        {
            "Name": entry.key_path,
            "Type": "String",
            "Value": to_json(entry.value),
            "Description": entry.description,
        }
        for entry in pipeline.published
    ]

    return {
        "pipeline": {
            "name": pipeline.name,
            "restartExecutionOnUpdate": pipeline.restart_execution_on_update,
            "stages": stages,
        },
        "resources": {k: resources[k] for k in sorted(resources)},
        "parameters": parameters,
        "levels": [
            {"stage": lv.stage, "runOrder": lv.run_order, "actions": list(lv.action_ids)}
            for lv in pipeline.levels()
        ],
    }


def dumps(pipeline: Pipeline, indent: int | None = 2) -> str:
    return json.dumps(render_definition(pipeline), indent=indent, sort_keys=False)
