# dag.py
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .errors import DuplicateStageError, ExecutionError
from .model import Action, ExecutionLevel, Stage

OK = "ok"
FAILED = "failed"
SKIPPED = "skipped"


def execution_levels(stages: Iterable[Stage]) -> Tuple[ExecutionLevel, ...]:
    """
    Convert stages into ordered execution "levels" (barriers).

    - stages run strictly in ascending index order
    - inside a stage, one level per distinct run_order, ascending
    - actions inside one level run in parallel; they are listed by id so the
      result never depends on declaration order
    """
    stages = list(stages)

    seen: Dict[int, str] = {}
    names = set()
    for stage in stages:
        if stage.index in seen or stage.name in names:
            raise DuplicateStageError(
                f"Stage '{stage.name}' collides with stage '{seen.get(stage.index, stage.name)}'",
                {"stage": stage.name, "index": stage.index},
            )
        seen[stage.index] = stage.name
        names.add(stage.name)

    levels: List[ExecutionLevel] = []
    for stage in sorted(stages, key=lambda s: s.index):
        by_order: Dict[int, List[Action]] = {}
        for action in stage.actions:
            by_order.setdefault(action.run_order, []).append(action)

        for run_order in sorted(by_order):
            levels.append(
                ExecutionLevel(
                    stage=stage.name,
                    stage_index=stage.index,
                    run_order=run_order,
                    actions=tuple(sorted(by_order[run_order], key=lambda a: a.id)),
                )
            )

    return tuple(levels)


@dataclass
class LevelRun:
    """Outcome of run_levels: status per action id, plus the failures."""
    statuses: Dict[str, str] = field(default_factory=dict)
    failures: List[ExecutionError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def first_failure(self) -> Optional[ExecutionError]:
        return self.failures[0] if self.failures else None


def run_levels(
    levels: Iterable[ExecutionLevel],
    run_fn: Callable[[Action], None],
    max_workers: int | None = None,
) -> LevelRun:
    """
    Barrier runner:

    - Runs each level in parallel, levels strictly in order.
    - Calls run_fn(action) for actual execution.
    - On failure, actions already running in the same level are allowed to
      finish; every action in later levels is marked "skipped" and never runs.
    """
    result = LevelRun()
    halted = False

    for level in levels:
        if halted:
            for action in level.actions:
                result.statuses[action.id] = SKIPPED
            continue

        outcome: Dict[str, Optional[ExecutionError]] = {}
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {pool.submit(run_fn, action): action for action in level.actions}

            for future in as_completed(futures):
                action = futures[future]
                try:
                    future.result()
                    outcome[action.id] = None
                except Exception as e:
                    outcome[action.id] = ExecutionError(
                        action=action.id,
                        stage=action.stage,
                        run_order=action.run_order,
                        message=str(e) or type(e).__name__,
                        cause=e,
                    )

        # report in level order, not completion order
        for action in level.actions:
            error = outcome[action.id]
            if error is None:
                result.statuses[action.id] = OK
            else:
                result.statuses[action.id] = FAILED
                result.failures.append(error)
                halted = True

    return result
