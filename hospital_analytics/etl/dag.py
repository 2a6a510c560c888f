"""
Task graph runner for the ingestion and analytics pipelines.

Demonstrates:
- Steps as plain functions over a shared context dict
- Declared outputs: a step that does not produce what it promises fails
- Partial failure: dependents of a failed step are skipped, the run continues
- Per-step status and timing, kept for the pipeline run history
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

StepFn = Callable[[dict[str, Any]], "dict[str, Any] | None"]


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class TaskNode:
    name: str
    execute_fn: StepFn
    depends_on: list[str] = field(default_factory=list)
    provides: tuple[str, ...] = ()
    status: TaskStatus = TaskStatus.PENDING
    result: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    duration_ms: float = 0.0

    def report(self) -> dict[str, Any]:
        if self.status == TaskStatus.SKIPPED:
            return {"status": self.status.value}
        return {
            "status": self.status.value,
            "duration_ms": round(self.duration_ms, 2),
            "error": self.error,
        }


class DAG:
    """
    Steps run in dependency order; ties keep the order they were added in.

        dag = DAG("historical_ingestion")
        dag.add_task("extract", extract, provides=("raw_text", "line_count"))
        dag.add_task("decode", decode_step, depends_on=["extract"])
        summary = dag.run(initial_context={"raw_text": text})
        records = dag.output("historical_records")
    """

    def __init__(self, name: str):
        self.name = name
        self.tasks: dict[str, TaskNode] = {}
        self.context: dict[str, Any] = {}

    def add_task(
        self,
        name: str,
        execute_fn: StepFn,
        depends_on: list[str] | None = None,
        provides: tuple[str, ...] = (),
    ) -> DAG:
        if name in self.tasks:
            raise ValueError(f"Duplicate task name: {name}")
        self.tasks[name] = TaskNode(
            name=name,
            execute_fn=execute_fn,
            depends_on=list(depends_on or []),
            provides=tuple(provides),
        )
        return self

    def _execution_order(self) -> list[str]:
        dependents: dict[str, list[str]] = {name: [] for name in self.tasks}
        waiting: dict[str, int] = {}
        for task in self.tasks.values():
            for dep in task.depends_on:
                if dep not in self.tasks:
                    raise ValueError(f"Task '{task.name}' depends on unknown task '{dep}'")
                dependents[dep].append(task.name)
            waiting[task.name] = len(task.depends_on)

        ready = deque(name for name, count in waiting.items() if count == 0)
        order: list[str] = []
        while ready:
            current = ready.popleft()
            order.append(current)
            for name in dependents[current]:
                waiting[name] -= 1
                if waiting[name] == 0:
                    ready.append(name)

        if len(order) != len(self.tasks):
            stuck = sorted(name for name, count in waiting.items() if count > 0)
            raise ValueError(f"Cycle detected in DAG '{self.name}': {', '.join(stuck)}")
        return order

    def _execute(self, task: TaskNode, context: dict[str, Any]) -> None:
        task.status = TaskStatus.RUNNING
        start = time.perf_counter()
        try:
            outputs = task.execute_fn(context) or {}
            missing = [key for key in task.provides if key not in outputs]
            if missing:
                raise KeyError(f"step did not produce {', '.join(missing)}")
            task.result = outputs
            task.status = TaskStatus.SUCCESS
            context.update(outputs)
        except Exception as exc:
            task.status = TaskStatus.FAILED
            task.error = str(exc)
            logger.error("Task '%s' in '%s' failed: %s", task.name, self.name, exc)
        finally:
            task.duration_ms = (time.perf_counter() - start) * 1000

    def run(self, initial_context: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Run every step and return {"pipeline", "status", "tasks"}.
        Status is "completed" only if every step succeeded; the resulting
        context stays readable through output().
        """
        order = self._execution_order()
        context = dict(initial_context or {})
        logger.debug("Running '%s': %s", self.name, " -> ".join(order))

        for name in order:
            task = self.tasks[name]
            blocked = [
                dep for dep in task.depends_on
                if self.tasks[dep].status != TaskStatus.SUCCESS
            ]
            if blocked:
                task.status = TaskStatus.SKIPPED
                logger.warning("Skipping '%s' in '%s': %s did not succeed", name, self.name, ", ".join(blocked))
                continue
            self._execute(task, context)

        self.context = context
        completed = all(t.status == TaskStatus.SUCCESS for t in self.tasks.values())
        summary = {
            "pipeline": self.name,
            "status": "completed" if completed else "failed",
            "tasks": {name: self.tasks[name].report() for name in order},
        }
        logger.debug("'%s' %s", self.name, summary["status"])
        return summary

    def output(self, key: str, default: Any = None) -> Any:
        return self.context.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        """The graph's shape, stored with each recorded pipeline run."""
        return {
            "name": self.name,
            "tasks": {
                name: {"depends_on": list(task.depends_on), "provides": list(task.provides)}
                for name, task in self.tasks.items()
            },
        }
