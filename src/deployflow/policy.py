# policy.py
from __future__ import annotations

import re
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from .errors import ConfigurationError, OverBroadGrantError
from .model import PolicyStatement, RoleDefinition

ALLOW = "Allow"
DENY = "Deny"

# Verbs that never change state.
READ_ONLY_PREFIXES = ("Get", "List", "Describe", "BatchGet", "Head")

# Services whose ARNs carry no region.
GLOBAL_SERVICES = frozenset({"cloudfront", "iam", "route53", "s3"})

# Services whose ARNs carry no account (bucket names are global).
ACCOUNTLESS_SERVICES = frozenset({"s3"})

_SEGMENT_SPLIT = re.compile(r"[/:]")


def is_mutating(action: str) -> bool:
    """`ssm:GetParameter` -> False, `cloudfront:CreateInvalidation` -> True, `s3:*` -> True."""
    _service, _, verb = action.partition(":")
    if not verb:
        return True
    return not verb.startswith(READ_ONLY_PREFIXES)


def scope_violation(resource: str, account: str, region: str) -> Optional[str]:
    """
    Why `resource` is too broad for a mutating grant, or None when it is scoped.

    A scoped resource is an ARN naming the owning account (and region, for
    regional services), with a wildcard allowed only in its trailing segment.
    """
    if resource == "*":
        return "bare wildcard resource"

    parts = resource.split(":", 5)
    if len(parts) != 6 or parts[0] != "arn":
        return "resource is not an ARN"

    _arn, partition, service, res_region, res_account, rest = parts
    if any("*" in seg for seg in (partition, service, res_region, res_account)):
        return "wildcard in partition, service, region or account"

    if res_account != account and (res_account or service not in ACCOUNTLESS_SERVICES):
        return f"resource is not scoped to account {account}"

    if res_region:
        if res_region != region:
            return f"resource is not scoped to region {region}"
    elif service not in GLOBAL_SERVICES:
        return f"resource is not scoped to region {region}"

    segments = _SEGMENT_SPLIT.split(rest)
    if len(segments) == 1 and "*" in segments[0]:
        return "wildcard resource type"
    if any("*" in seg for seg in segments[:-1]):
        return "wildcard before the trailing segment"

    return None


class RolePolicyBuilder:
    """
    Accumulates the statements of one execution role.

    Statements are additive; identical grants are kept once. Allow grants of
    mutating actions must name scoped resources (see scope_violation).
    """

    def __init__(self, name: str, principal: str, *, account: str, region: str, path: str = "/"):
        self.name = name
        self.principal = principal
        self.account = account
        self.region = region
        self.path = path
        self._statements: List[PolicyStatement] = []
        self._seen: Dict[Tuple[FrozenSet[str], FrozenSet[str], str], PolicyStatement] = {}

    @classmethod
    def for_service(cls, name: str, service: str, *, account: str, region: str, path: str = "/"):
        return cls(name, f"{service}.amazonaws.com", account=account, region=region, path=path)

    def grant(self, actions: Iterable[str], resources: Iterable[str], effect: str = ALLOW):
        actions = tuple(actions)
        resources = tuple(resources)

        if effect not in (ALLOW, DENY):
            raise ConfigurationError(
                f"Unknown policy effect '{effect}'", {"role": self.name, "effect": effect}
            )
        if not actions or not resources:
            raise ConfigurationError(
                "A grant needs at least one action and one resource",
                {"role": self.name, "actions": list(actions), "resources": list(resources)},
            )

        if effect == ALLOW:
            mutating = [a for a in actions if is_mutating(a)]
            if mutating:
                for resource in resources:
                    reason = scope_violation(resource, self.account, self.region)
                    if reason:
                        raise OverBroadGrantError(
                            f"Grant of {mutating} on '{resource}' is too broad: {reason}",
                            {
                                "role": self.name,
                                "actions": mutating,
                                "resource": resource,
                            },
                        )

        key = (frozenset(actions), frozenset(resources), effect)
        if key not in self._seen:
            statement = PolicyStatement(actions=actions, resources=resources, effect=effect)
            self._seen[key] = statement
            self._statements.append(statement)
        return self

    @property
    def statements(self) -> Tuple[PolicyStatement, ...]:
        return tuple(self._statements)

    def build(self) -> RoleDefinition:
        return RoleDefinition(
            name=self.name,
            principal=self.principal,
            account=self.account,
            path=self.path,
            statements=self.statements,
        )
