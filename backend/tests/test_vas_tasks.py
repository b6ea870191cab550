from datetime import datetime, timedelta

import pytest

from inbound.services.vas_tasks import (
    TaskState,
    VasTaskBoard,
    VasTaskNotFound,
    VasTaskStateError,
    VasTaskValidationError,
)


class FakeClock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kw):
        self.now += timedelta(**kw)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 2, 13, 8, 0, 0))


@pytest.fixture
def board(clock):
    return VasTaskBoard(clock=clock)


def _ready_task(board, clock):
    task = board.start(operator="Ann", vas_type="Labeling")
    board.update_line(task.id, 0, brand="Acme", sku="SKU-1")
    board.add_line(task.id, brand="Zeta", sku="SKU-2")
    clock.advance(minutes=12, seconds=30)
    board.finish(task.id)
    return task


def test_commit_two_lines(board, clock, store):
    task = _ready_task(board, clock)
    created = board.commit(task.id, [5, 10], store)

    assert len(created) == 2
    shared = ("operator", "vas_type", "start_time", "end_time", "duration", "date")
    for key in shared:
        assert created[0][key] == created[1][key]
    assert created[0]["start_time"] == "2/13/2026 08:00:00"
    assert created[0]["end_time"] == "2/13/2026 08:12:30"
    assert created[0]["duration"] == "00:12:30"
    assert created[0]["date"] == "2026-02-13"
    assert [(c["brand"], c["sku"], c["qty"]) for c in created] == [
        ("Acme", "SKU-1", 5), ("Zeta", "SKU-2", 10),
    ]
    assert len(store.list("vas")) == 2
    with pytest.raises(VasTaskNotFound):
        board.get(task.id)


def test_commit_is_atomic(board, clock, store):
    task = _ready_task(board, clock)
    with pytest.raises(VasTaskValidationError):
        board.commit(task.id, [5, 0], store)
    assert store.list("vas") == []
    assert board.get(task.id).state is TaskState.FINISHED


def test_commit_needs_one_qty_per_line(board, clock, store):
    task = _ready_task(board, clock)
    with pytest.raises(VasTaskValidationError):
        board.commit(task.id, [5], store)
    assert store.list("vas") == []


def test_finish_requires_operator_type_and_lines(board):
    task = board.start()
    with pytest.raises(VasTaskValidationError) as exc:
        board.finish(task.id)
    assert "operator is required" in exc.value.problems
    assert "vas_type is required" in exc.value.problems
    assert "line 1: sku is required" in exc.value.problems
    assert board.get(task.id).state is TaskState.ACTIVE


def test_last_line_cannot_be_removed(board):
    task = board.start()
    board.remove_line(task.id, 0)
    assert len(board.get(task.id).lines) == 1
    board.add_line(task.id, brand="B", sku="S")
    board.remove_line(task.id, 0)
    assert [(ln.brand, ln.sku) for ln in board.get(task.id).lines] == [("B", "S")]


def test_no_edits_after_finish(board, clock):
    task = _ready_task(board, clock)
    with pytest.raises(VasTaskStateError):
        board.add_line(task.id)
    with pytest.raises(VasTaskStateError):
        board.cancel(task.id)


def test_commit_requires_finished(board, store):
    task = board.start(operator="Ann", vas_type="Labeling")
    with pytest.raises(VasTaskStateError):
        board.commit(task.id, [1], store)


def test_cancel_and_discard(board, clock):
    active = board.start()
    board.cancel(active.id)
    with pytest.raises(VasTaskNotFound):
        board.get(active.id)

    finished = _ready_task(board, clock)
    with pytest.raises(VasTaskStateError):
        board.finish(finished.id)
    board.discard(finished.id)
    assert board.list() == []


def test_elapsed_stops_at_finish(board, clock):
    task = board.start(operator="Ann", vas_type="Repack")
    board.update_line(task.id, 0, brand="B", sku="S")
    clock.advance(seconds=65)
    assert task.to_dict(board.now())["elapsed"] == "00:01:05"
    board.finish(task.id)
    clock.advance(hours=1)
    assert task.to_dict(board.now())["elapsed"] == "00:01:05"
