"""Dependency scheduler — groups plan tasks into sequential levels."""

from __future__ import annotations

import logging

from switchyard.types import SubagentTask

logger = logging.getLogger(__name__)


def group_tasks_by_dependency_level(tasks: list[SubagentTask]) -> list[list[SubagentTask]]:
    """Split tasks into levels whose dependencies are all in earlier levels.

    If no remaining task is ready (a cycle, or a dependency on an id that
    is not in the plan), every remaining task is merged into one final
    level and run concurrently.
    """
    levels: list[list[SubagentTask]] = []
    processed: set[str] = set()
    remaining = list(tasks)

    while remaining:
        level = [task for task in remaining if all(dep in processed for dep in task.depends_on)]

        if not level:
            logger.warning(
                "Unresolvable dependencies among %s; running them together",
                [task.id for task in remaining],
            )
            level = remaining

        processed.update(task.id for task in level)
        level_ids = {id(task) for task in level}
        remaining = [task for task in remaining if id(task) not in level_ids]
        levels.append(level)

    return levels
