"""Tests for dependency leveling."""

from __future__ import annotations

from switchyard.research.scheduler import group_tasks_by_dependency_level
from switchyard.types import SubagentTask, SubagentType


def _task(task_id: str, deps: list[str] | None = None) -> SubagentTask:
    return SubagentTask(id=task_id, type=SubagentType.GENERAL, objective=task_id, depends_on=deps or [])


def _ids(levels: list[list[SubagentTask]]) -> list[list[str]]:
    return [[t.id for t in level] for level in levels]


def test_chain_gives_one_task_per_level():
    levels = group_tasks_by_dependency_level([_task("A"), _task("B", ["A"]), _task("C", ["B"])])
    assert _ids(levels) == [["A"], ["B"], ["C"]]


def test_chain_order_independent_of_input_order():
    levels = group_tasks_by_dependency_level([_task("C", ["B"]), _task("B", ["A"]), _task("A")])
    assert _ids(levels) == [["A"], ["B"], ["C"]]


def test_independent_tasks_share_a_level():
    levels = group_tasks_by_dependency_level([_task("A"), _task("B"), _task("C", ["A", "B"])])
    assert _ids(levels) == [["A", "B"], ["C"]]


def test_cycle_is_merged_into_one_level():
    levels = group_tasks_by_dependency_level([_task("A", ["B"]), _task("B", ["A"])])
    assert len(levels) == 1
    assert sorted(t.id for t in levels[0]) == ["A", "B"]


def test_dangling_dependency_is_merged_after_ready_tasks():
    levels = group_tasks_by_dependency_level([_task("A"), _task("B", ["ghost"]), _task("C", ["A"])])
    assert _ids(levels) == [["A"], ["C"], ["B"]]


def test_empty_plan_has_no_levels():
    assert group_tasks_by_dependency_level([]) == []


def test_every_task_scheduled_exactly_once():
    tasks = [_task("A"), _task("B", ["A"]), _task("C", ["D"]), _task("D", ["C"]), _task("E", ["B"])]
    levels = group_tasks_by_dependency_level(tasks)
    scheduled = [t.id for level in levels for t in level]
    assert sorted(scheduled) == ["A", "B", "C", "D", "E"]
