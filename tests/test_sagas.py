from uuid import uuid4

import pytest

from shopeasy.core.exceptions import InternalError, NotFoundError
from shopeasy.sagas import runner
from shopeasy.sagas.models import SAGA_ABORTED, SAGA_COMPENSATED, SAGA_COMPLETED, SAGA_FAILED, SAGA_RUNNING
from shopeasy.sagas.runner import SagaRunner, SagaStep, list_incomplete, list_sagas, resume_saga


class Recorder:
    """Step functions that log their calls and fail while their name is in `broken`."""

    def __init__(self):
        self.calls = []
        self.broken = set()

    def step(self, name, compensate=True):
        def action(db, payload):
            self._run(name)

        def undo(db, payload):
            self._run(f"undo:{name}")

        return SagaStep(name, action, undo if compensate else None)

    def _run(self, label):
        if label in self.broken:
            raise RuntimeError(f"{label} failed")
        self.calls.append(label)


@pytest.fixture
def recorder(mocker):
    rec = Recorder()
    mocker.patch.dict(runner.SAGA_REGISTRY, {
        "forward_only": lambda payload: [rec.step("x", False), rec.step("y", False)],
        "reversible": lambda payload: [rec.step("a"), rec.step("b"), rec.step("c")],
    })
    return rec


def test_run_records_each_step(db_session, recorder):
    saga = SagaRunner(db_session).run("forward_only", {"k": "v"}, runner.SAGA_REGISTRY["forward_only"]({}))

    assert saga.status == SAGA_COMPLETED
    assert saga.completed_steps == ["x", "y"]
    assert recorder.calls == ["x", "y"]


def test_failure_without_compensation_marks_failed_and_resumes(db_session, recorder):
    recorder.broken.add("y")
    steps = runner.SAGA_REGISTRY["forward_only"]({})

    with pytest.raises(RuntimeError):
        SagaRunner(db_session).run("forward_only", {}, steps)

    saga = list_incomplete(db_session)[0]
    assert saga.status == SAGA_FAILED
    assert saga.failed_step == "y"
    assert "y failed" in saga.error

    recorder.broken.clear()
    resumed = resume_saga(db_session, saga.id)

    assert resumed.status == SAGA_COMPLETED
    assert resumed.failed_step is None
    assert recorder.calls == ["x", "y"]
    assert list_incomplete(db_session) == []


def test_failure_compensates_in_reverse(db_session, recorder):
    recorder.broken.add("c")

    with pytest.raises(RuntimeError):
        SagaRunner(db_session).run("reversible", {}, runner.SAGA_REGISTRY["reversible"]({}))

    assert recorder.calls == ["a", "b", "undo:b", "undo:a"]
    saga = list_sagas(db_session)[0]
    assert saga.status == SAGA_COMPENSATED
    assert saga.payload["compensated_steps"] == ["b", "a"]


def test_failure_at_first_step_aborts_for_good(db_session, recorder):
    recorder.broken.add("a")

    with pytest.raises(RuntimeError):
        SagaRunner(db_session).run("reversible", {}, runner.SAGA_REGISTRY["reversible"]({}))

    saga = list_sagas(db_session)[0]
    assert saga.status == SAGA_ABORTED
    assert saga.failed_step == "a"
    assert list_incomplete(db_session) == []

    recorder.broken.clear()
    assert resume_saga(db_session, saga.id).status == SAGA_ABORTED
    assert recorder.calls == []


def test_interrupted_compensation_resumes_where_it_stopped(db_session, recorder):
    recorder.broken.update({"c", "undo:a"})

    with pytest.raises(RuntimeError):
        SagaRunner(db_session).run("reversible", {}, runner.SAGA_REGISTRY["reversible"]({}))

    saga = list_sagas(db_session, status=SAGA_FAILED)[0]
    assert saga.payload["compensating"] is True
    assert saga.payload["compensated_steps"] == ["b"]
    assert "compensation of a failed" in saga.error

    recorder.broken.clear()
    resumed = resume_saga(db_session, saga.id)

    assert resumed.status == SAGA_COMPENSATED
    assert recorder.calls == ["a", "b", "undo:b", "undo:a"]


def test_finished_saga_is_returned_unchanged(db_session, recorder):
    saga = SagaRunner(db_session).run("forward_only", {}, runner.SAGA_REGISTRY["forward_only"]({}))
    assert resume_saga(db_session, saga.id).status == SAGA_COMPLETED
    assert recorder.calls == ["x", "y"]


def test_unknown_saga_type_cannot_resume(db_session):
    saga = SagaRunner(db_session).start("mystery", {})
    assert saga.status == SAGA_RUNNING
    with pytest.raises(InternalError):
        resume_saga(db_session, saga.id)


def test_missing_saga(db_session):
    with pytest.raises(NotFoundError):
        resume_saga(db_session, uuid4())
