# artifacts.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from .errors import (
    CycleError,
    DuplicateArtifactError,
    DuplicateProducerError,
    DuplicateStageError,
    MissingProducerError,
    UndeclaredArtifactError,
    UnknownStageError,
)
from .model import Action, Artifact, ArtifactHandle, ArtifactRef, artifact_name


class ArtifactGraph:
    """
    Tracks named artifacts, their single producer and their consumers.

    Ordering is checked on positions, not on call sequence: an action's
    position is (stage index, run_order), and every consumer must sit
    strictly after the producer. Whichever side is attached second triggers
    the check, so actions can be attached in any order.

    Requires:
      - every stage registered (register_stage) before its actions are attached
      - every artifact declared (declare_artifact) before it is referenced
    """

    def __init__(self) -> None:
        self._declared: Dict[str, ArtifactHandle] = {}
        self._stages: Dict[str, int] = {}
        self._producer: Dict[str, Action] = {}
        self._consumers: Dict[str, List[Action]] = {}

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def register_stage(self, name: str, index: int) -> None:
        if name in self._stages:
            raise DuplicateStageError(
                f"Stage '{name}' is already registered",
                {"stage": name, "index": self._stages[name]},
            )
        for other, other_index in self._stages.items():
            if other_index == index:
                raise DuplicateStageError(
                    f"Stage index {index} is already used by '{other}'",
                    {"stage": name, "index": index, "existing_stage": other},
                )
        self._stages[name] = index

    def declare_artifact(self, name: str) -> ArtifactHandle:
        if name in self._declared:
            raise DuplicateArtifactError(
                f"Artifact '{name}' is already declared", {"artifact": name}
            )
        handle = ArtifactHandle(name)
        self._declared[name] = handle
        self._consumers[name] = []
        return handle

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def position(self, action: Action) -> Tuple[int, int]:
        if action.stage not in self._stages:
            raise UnknownStageError(
                f"Action '{action.id}' belongs to unknown stage '{action.stage}'",
                {"action": action.id, "stage": action.stage, "known_stages": sorted(self._stages)},
            )
        return self._stages[action.stage], action.run_order

    def attach(
        self,
        action: Action,
        inputs: Iterable[ArtifactRef] = (),
        outputs: Iterable[ArtifactRef] = (),
        extra_inputs: Iterable[ArtifactRef] = (),
    ) -> None:
        """
        Record `action` as producer of `outputs` and consumer of every input.

        All checks run before the graph changes, so a rejected action
        leaves no producer or consumer entry behind.
        """
        self.position(action)
        consumed = [self._require(action, ref) for ref in [*inputs, *extra_inputs]]
        produced = [self._require(action, ref) for ref in outputs]

        for name in produced:
            existing = self._producer.get(name)
            if existing is not None or produced.count(name) > 1:
                raise DuplicateProducerError(
                    f"Artifact '{name}' already has a producer",
                    {
                        "artifact": name,
                        "producer": (existing or action).id,
                        "action": action.id,
                        "stage": action.stage,
                    },
                )
            for consumer in self._consumers[name]:
                self._check_order(name, action, consumer)

        for name in consumed:
            producer = action if name in produced else self._producer.get(name)
            if producer is not None:
                self._check_order(name, producer, action)

        for name in produced:
            self._producer[name] = action
        for name in consumed:
            if not any(c.id == action.id for c in self._consumers[name]):
                self._consumers[name].append(action)

    def validate(self) -> None:
        """Every consumed artifact must have a producer."""
        for name, consumers in self._consumers.items():
            if consumers and name not in self._producer:
                first = self._sorted(consumers)[0]
                raise MissingProducerError(
                    f"Artifact '{name}' is consumed but never produced",
                    {"artifact": name, "action": first.id, "stage": first.stage},
                )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def producer_of(self, name: str) -> Optional[Action]:
        return self._producer.get(name)

    def consumers_of(self, name: str) -> Tuple[Action, ...]:
        return tuple(self._sorted(self._consumers.get(name, [])))

    def artifacts(self) -> Tuple[Artifact, ...]:
        """Artifacts in declaration order, consumers ordered by position."""
        out: List[Artifact] = []
        for name in self._declared:
            producer = self._producer.get(name)
            out.append(
                Artifact(
                    name=name,
                    producer=producer.id if producer else None,
                    consumers=tuple(a.id for a in self.consumers_of(name)),
                )
            )
        return tuple(out)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, action: Action, ref: ArtifactRef) -> str:
        name = artifact_name(ref)
        if name not in self._declared:
            raise UndeclaredArtifactError(
                f"Action '{action.id}' references undeclared artifact '{name}'",
                {"artifact": name, "action": action.id, "stage": action.stage},
            )
        return name

    def _sorted(self, actions: Iterable[Action]) -> List[Action]:
        return sorted(actions, key=lambda a: (self.position(a), a.id))

    def _check_order(self, name: str, producer: Action, consumer: Action) -> None:
        p_stage, p_order = self.position(producer)
        c_stage, c_order = self.position(consumer)
        if (c_stage, c_order) > (p_stage, p_order):
            return
        raise CycleError(
            f"Artifact '{name}' is consumed by '{consumer.id}' at or before its producer '{producer.id}'",
            {
                "artifact": name,
                "producer": producer.id,
                "producer_stage": producer.stage,
                "producer_run_order": p_order,
                "action": consumer.id,
                "stage": consumer.stage,
                "run_order": c_order,
            },
        )
