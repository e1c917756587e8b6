"""Tests for execution levels and the barrier runner."""

from __future__ import annotations

import threading
import time

import pytest

from deployflow.builder import PipelineBuilder
from deployflow.dag import FAILED, OK, SKIPPED, execution_levels, run_levels
from deployflow.errors import DuplicateStageError
from deployflow.model import BUILD, CHECKOUT, Action, Stage


def _parallel_builds(builder: PipelineBuilder):
    src = builder.artifact("sources")
    assets = builder.artifact("assets")
    templates = builder.artifact("templates")
    render = builder.artifact("render")
    builder.stage("Sources-A", 10).stage("Build-A", 11)
    builder.action("Sources-A", "checkout", CHECKOUT, outputs=[src])
    builder.action("Build-A", "templates", BUILD, inputs=[src], outputs=[templates], run_order=10)
    builder.action("Build-A", "assets", BUILD, inputs=[src], outputs=[assets], run_order=10)
    builder.action("Build-A", "render", BUILD, inputs=[assets], outputs=[render], run_order=20)


class TestExecutionLevels:
    def test_parallel_builds(self):
        b = PipelineBuilder("a", account="123456789012", region="eu-central-1", namespace="/a")
        _parallel_builds(b)
        levels = b.build().levels()

        assert [set(lv.action_ids) for lv in levels] == [
            {"Sources-A/checkout"},
            {"Build-A/templates", "Build-A/assets"},
            {"Build-A/render"},
        ]
        assert [lv.run_order for lv in levels] == [1, 10, 20]

    def test_order_independent_of_declaration(self):
        a1 = Action(name="a1", stage="B", kind=BUILD, run_order=20)
        a2 = Action(name="a2", stage="B", kind=BUILD, run_order=10)
        a3 = Action(name="a3", stage="A", kind=BUILD, run_order=5)
        forward = execution_levels([Stage("A", 0, (a3,)), Stage("B", 1, (a1, a2))])
        backward = execution_levels([Stage("B", 1, (a2, a1)), Stage("A", 0, (a3,))])

        assert forward == backward
        assert [lv.action_ids for lv in forward] == [("A/a3",), ("B/a2",), ("B/a1",)]

    def test_actions_in_level_sorted_by_id(self):
        actions = tuple(Action(name=n, stage="S", kind=BUILD, run_order=1) for n in ("z", "a", "m"))
        (level,) = execution_levels([Stage("S", 0, actions)])
        assert level.action_ids == ("S/a", "S/m", "S/z")

    def test_duplicate_stage_index(self):
        with pytest.raises(DuplicateStageError):
            execution_levels([Stage("A", 0), Stage("B", 0)])

    def test_blueprint_levels(self, pipeline):
        levels = pipeline.levels()
        assert [(lv.stage, lv.run_order) for lv in levels] == [
            ("Sources", 1),
            ("Build", 10),
            ("Build", 20),
            ("Deploy", 10),
            ("Deploy", 20),
            ("Deploy", 50),
            ("Release", 1),
        ]
        assert levels[1].action_ids == ("Build/Assets", "Build/CDK")


class TestRunLevels:
    def test_all_ok(self, pipeline):
        seen = []
        lock = threading.Lock()

        def run_fn(action):
            with lock:
                seen.append(action.id)

        result = run_levels(pipeline.levels(), run_fn)
        assert result.ok
        assert set(result.statuses.values()) == {OK}
        assert sorted(seen) == sorted(a.id for a in pipeline.actions)
        # results come back in level order
        assert list(result.statuses) == [i for lv in pipeline.levels() for i in lv.action_ids]

    def test_failure_blocks_later_levels(self, pipeline):
        ran = []
        lock = threading.Lock()

        def run_fn(action):
            if action.id == "Build/Assets":
                raise RuntimeError("npm ci failed")
            with lock:
                ran.append(action.id)

        result = run_levels(pipeline.levels(), run_fn)

        assert not result.ok
        assert result.statuses["Build/Assets"] == FAILED
        assert result.statuses["Build/CDK"] == OK
        for later in ("Build/Render", "Deploy/Assets", "Deploy/Render", "Deploy/Domain", "Release/CDN"):
            assert result.statuses[later] == SKIPPED
            assert later not in ran

        failure = result.first_failure()
        assert failure.action == "Build/Assets"
        assert failure.stage == "Build"
        assert failure.run_order == 10
        assert "npm ci failed" in str(failure)

    def test_same_level_actions_finish_after_failure(self):
        slow_done = threading.Event()
        actions = (
            Action(name="fast", stage="S", kind=BUILD),
            Action(name="slow", stage="S", kind=BUILD),
        )
        later = Action(name="next", stage="T", kind=BUILD)
        levels = execution_levels([Stage("S", 0, actions), Stage("T", 1, (later,))])

        def run_fn(action):
            if action.name == "fast":
                raise RuntimeError("boom")
            if action.name == "slow":
                time.sleep(0.05)
                slow_done.set()

        result = run_levels(levels, run_fn, max_workers=2)

        assert slow_done.is_set()
        assert result.statuses == {"S/fast": FAILED, "S/slow": OK, "T/next": SKIPPED}
