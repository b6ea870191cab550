"""
vas_tasks.py

In-progress VAS (value-added service) work.

A task is started when an operator begins the work, collects one or more
brand/SKU lines, is *finished* (end time and duration frozen) and finally
*committed*, which writes one ``vas`` record per line. Tasks live only in
memory until committed.

    active ──finish──▶ finished ──commit──▶ (written, removed)
      │                    └────discard──▶ (removed)
      └──cancel──▶ (removed)

:class:`VasTaskBoard` owns every open task, keyed by id. The API keeps one
board on ``app.state``; tests build their own with a fixed clock.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from inbound.models import generate_id
from inbound.services.reconcile import to_int
from inbound.services.timecalc import format_hms, format_timestamp

logger = logging.getLogger(__name__)


class VasTaskNotFound(LookupError):
    pass


class VasTaskStateError(RuntimeError):
    """Transition not allowed from the task's current state."""


class VasTaskValidationError(ValueError):
    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


class TaskState(str, Enum):
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass
class VasLine:
    brand: str = ""
    sku: str = ""


@dataclass
class VasTask:
    id: str
    start_time: datetime
    state: TaskState = TaskState.ACTIVE
    operator: str = ""
    vas_type: str = ""
    lines: List[VasLine] = field(default_factory=lambda: [VasLine()])
    end_time: Optional[datetime] = None
    duration_sec: Optional[int] = None

    def elapsed_sec(self, now: datetime) -> int:
        if self.duration_sec is not None:
            return self.duration_sec
        return max(int((now - self.start_time).total_seconds()), 0)

    def to_dict(self, now: datetime) -> dict:
        return {
            "id": self.id,
            "state": self.state.value,
            "operator": self.operator,
            "vas_type": self.vas_type,
            "lines": [{"brand": ln.brand, "sku": ln.sku} for ln in self.lines],
            "start_time": format_timestamp(self.start_time),
            "end_time": format_timestamp(self.end_time) if self.end_time else None,
            "elapsed": format_hms(self.elapsed_sec(now)),
        }


class VasTaskBoard:
    """All open VAS tasks of one process."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self._tasks: Dict[str, VasTask] = {}
        self._lock = threading.RLock()

    def now(self) -> datetime:
        return self._clock().replace(microsecond=0)

    # ---- lookup ----
    def get(self, task_id: str) -> VasTask:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise VasTaskNotFound(f"VAS task not found: {task_id}") from None

    def list(self) -> List[VasTask]:
        return sorted(self._tasks.values(), key=lambda t: t.start_time)

    def _active(self, task_id: str) -> VasTask:
        task = self.get(task_id)
        if task.state is not TaskState.ACTIVE:
            raise VasTaskStateError(f"task {task_id} is {task.state.value}; expected active")
        return task

    def _finished(self, task_id: str) -> VasTask:
        task = self.get(task_id)
        if task.state is not TaskState.FINISHED:
            raise VasTaskStateError(f"task {task_id} is {task.state.value}; expected finished")
        return task

    # ---- active ----
    def start(self, operator: str = "", vas_type: str = "") -> VasTask:
        with self._lock:
            task = VasTask(id=generate_id(), start_time=self.now(),
                           operator=operator or "", vas_type=vas_type or "")
            self._tasks[task.id] = task
        logger.info("vas task started id=%s", task.id)
        return task

    def set_meta(self, task_id: str, operator: Optional[str] = None,
                 vas_type: Optional[str] = None) -> VasTask:
        with self._lock:
            task = self._active(task_id)
            if operator is not None:
                task.operator = operator
            if vas_type is not None:
                task.vas_type = vas_type
            return task

    def add_line(self, task_id: str, brand: str = "", sku: str = "") -> VasTask:
        with self._lock:
            task = self._active(task_id)
            task.lines.append(VasLine(brand=brand or "", sku=sku or ""))
            return task

    def update_line(self, task_id: str, index: int, brand: Optional[str] = None,
                    sku: Optional[str] = None) -> VasTask:
        with self._lock:
            task = self._active(task_id)
            if not 0 <= index < len(task.lines):
                raise VasTaskNotFound(f"task {task_id} has no line {index}")
            line = task.lines[index]
            if brand is not None:
                line.brand = brand
            if sku is not None:
                line.sku = sku
            return task

    def remove_line(self, task_id: str, index: int) -> VasTask:
        """Drop one line; the last remaining line is never removed."""
        with self._lock:
            task = self._active(task_id)
            if len(task.lines) > 1 and 0 <= index < len(task.lines):
                del task.lines[index]
            return task

    # ---- transitions ----
    def finish(self, task_id: str) -> VasTask:
        with self._lock:
            task = self._active(task_id)
            problems = []
            if not task.operator.strip():
                problems.append("operator is required")
            if not task.vas_type.strip():
                problems.append("vas_type is required")
            for i, line in enumerate(task.lines, start=1):
                if not line.brand.strip():
                    problems.append(f"line {i}: brand is required")
                if not line.sku.strip():
                    problems.append(f"line {i}: sku is required")
            if problems:
                raise VasTaskValidationError(problems)

            task.end_time = self.now()
            task.duration_sec = max(int((task.end_time - task.start_time).total_seconds()), 0)
            task.state = TaskState.FINISHED
        logger.info("vas task finished id=%s duration=%ss", task.id, task.duration_sec)
        return task

    def entries(self, task: VasTask, quantities: Sequence[object]) -> List[dict]:
        """One ``vas`` record payload per line; raises if any qty is not positive."""
        if len(quantities) != len(task.lines):
            raise VasTaskValidationError(
                [f"expected {len(task.lines)} quantities, got {len(quantities)}"]
            )
        qtys = [to_int(q) for q in quantities]
        problems = [f"line {i}: qty must be greater than 0"
                    for i, q in enumerate(qtys, start=1) if q <= 0]
        if problems:
            raise VasTaskValidationError(problems)

        shared = {
            "date": task.start_time.date().isoformat(),
            "start_time": format_timestamp(task.start_time),
            "end_time": format_timestamp(task.end_time),
            "duration": format_hms(task.duration_sec or 0),
            "vas_type": task.vas_type.strip(),
            "operator": task.operator.strip(),
        }
        return [
            {**shared, "brand": line.brand.strip(), "sku": line.sku.strip(), "qty": qty}
            for line, qty in zip(task.lines, qtys)
        ]

    def commit(self, task_id: str, quantities: Sequence[object], store) -> List[dict]:
        """Write all lines in one ``create_many``; the task is kept on any failure."""
        with self._lock:
            task = self._finished(task_id)
            created = store.create_many("vas", self.entries(task, quantities))
            del self._tasks[task_id]
        logger.info("vas task committed id=%s entries=%d", task_id, len(created))
        return created

    def cancel(self, task_id: str) -> None:
        with self._lock:
            self._active(task_id)
            del self._tasks[task_id]
        logger.info("vas task cancelled id=%s", task_id)

    def discard(self, task_id: str) -> None:
        with self._lock:
            self._finished(task_id)
            del self._tasks[task_id]
        logger.info("vas task discarded id=%s", task_id)
