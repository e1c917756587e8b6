# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional


@dataclass(eq=False)
class ConfigurationError(Exception):
    """
    Raised while a pipeline is being declared, before anything is provisioned.

    Carries enough context to locate the offending declaration:
      - kind: the error class name, used as a stable label in CLI output
      - message: one-line human readable description
      - details: artifact / action / stage identifiers
    """
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    kind: ClassVar[str] = "ConfigurationError"

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------
# Artifact graph
# ---------------------------------------------------------------------

class CycleError(ConfigurationError):
    kind = "CycleError"


class DuplicateProducerError(ConfigurationError):
    kind = "DuplicateProducerError"


class MissingProducerError(ConfigurationError):
    kind = "MissingProducerError"


class UndeclaredArtifactError(ConfigurationError):
    kind = "UndeclaredArtifactError"


class DuplicateArtifactError(ConfigurationError):
    kind = "DuplicateArtifactError"


# ---------------------------------------------------------------------
# Stages / actions
# ---------------------------------------------------------------------

class DuplicateStageError(ConfigurationError):
    kind = "DuplicateStageError"


class UnknownStageError(ConfigurationError):
    kind = "UnknownStageError"


class EmptyStageError(ConfigurationError):
    kind = "EmptyStageError"


class DuplicateActionError(ConfigurationError):
    kind = "DuplicateActionError"


class InvalidActionError(ConfigurationError):
    kind = "InvalidActionError"


class InvalidRunOrderError(ConfigurationError):
    kind = "InvalidRunOrderError"


class UnknownRoleError(ConfigurationError):
    kind = "UnknownRoleError"


# ---------------------------------------------------------------------
# Parameter bindings
# ---------------------------------------------------------------------

class UnresolvedParameterError(ConfigurationError):
    kind = "UnresolvedParameterError"


class UnexpectedParameterError(ConfigurationError):
    kind = "UnexpectedParameterError"


class UnboundArtifactError(ConfigurationError):
    kind = "UnboundArtifactError"


class DuplicateBindingError(ConfigurationError):
    kind = "DuplicateBindingError"


class UnknownAttributeError(ConfigurationError):
    kind = "UnknownAttributeError"


# ---------------------------------------------------------------------
# Published configuration
# ---------------------------------------------------------------------

class DuplicateConfigKeyError(ConfigurationError):
    kind = "DuplicateConfigKeyError"


class InvalidKeyPathError(ConfigurationError):
    kind = "InvalidKeyPathError"


class OutsideNamespaceError(ConfigurationError):
    kind = "OutsideNamespaceError"


# ---------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------

class OverBroadGrantError(ConfigurationError):
    kind = "OverBroadGrantError"


# ---------------------------------------------------------------------
# Runtime
# ---------------------------------------------------------------------

@dataclass(eq=False)
class ExecutionError(Exception):
    """An action failed while a level was running. Later levels never start."""
    action: str
    stage: str
    run_order: int
    message: str
    cause: Optional[BaseException] = None

    def __str__(self) -> str:
        return f"[{self.action}] failed in stage '{self.stage}' (runOrder={self.run_order}): {self.message}"
