# shopeasy/sagas/runner.py
"""
Saga execution with a durable per-step log.

A saga is an ordered list of steps. Each step's writes and the log update that
marks it complete are committed together, so after a crash a step is either
fully applied and recorded or not applied at all. Resuming skips the recorded
steps. When a step fails, the completed steps that define a compensation are
undone in reverse order. A saga whose first step fails applied nothing and is
closed as `aborted`; it is never resumed.
"""

from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..core.exceptions import InternalError, NotFoundError
from ..logging import logger
from .models import SagaLog, SAGA_RUNNING, SAGA_COMPLETED, SAGA_COMPENSATED, SAGA_FAILED, SAGA_ABORTED

StepFn = Callable[[Session, Dict[str, Any]], None]


class SagaStep:
    def __init__(self, name: str, action: StepFn, compensate: Optional[StepFn] = None):
        self.name = name
        self.action = action
        self.compensate = compensate

    def __repr__(self):
        return f"<SagaStep {self.name}>"


# saga_type -> function building the step list from the stored payload
SAGA_REGISTRY: Dict[str, Callable[[Dict[str, Any]], List[SagaStep]]] = {}


def register_saga(saga_type: str):
    def decorator(builder):
        SAGA_REGISTRY[saga_type] = builder
        return builder
    return decorator


class SagaRunner:

    def __init__(self, db: Session):
        self.db = db

    def start(self, saga_type: str, payload: Dict[str, Any]) -> SagaLog:
        saga = SagaLog(saga_type=saga_type, status=SAGA_RUNNING, payload=payload, completed_steps=[])
        self.db.add(saga)
        self.db.commit()
        logger.info(f"Saga {saga.id} ({saga_type}) started")
        return saga

    def run(self, saga_type: str, payload: Dict[str, Any], steps: List[SagaStep]) -> SagaLog:
        return self.execute(self.start(saga_type, payload), steps)

    def execute(self, saga: SagaLog, steps: List[SagaStep]) -> SagaLog:
        for step in steps:
            if step.name in (saga.completed_steps or []):
                continue
            try:
                step.action(self.db, saga.payload)
                saga.completed_steps = list(saga.completed_steps or []) + [step.name]
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                logger.warning(f"Saga {saga.id} step '{step.name}' failed: {e}")
                self._fail(saga, steps, step, e)
                raise

        saga.status = SAGA_COMPLETED
        saga.failed_step = None
        saga.error = None
        self.db.commit()
        logger.info(f"Saga {saga.id} ({saga.saga_type}) completed")
        return saga

    def _fail(self, saga: SagaLog, steps: List[SagaStep], failed: SagaStep, error: Exception) -> None:
        saga.failed_step = failed.name
        saga.error = f"{type(error).__name__}: {error}"
        completed = [s for s in steps if s.name in (saga.completed_steps or [])]
        if not completed:
            saga.status = SAGA_ABORTED
            self.db.commit()
            logger.info(f"Saga {saga.id} ({saga.saga_type}) aborted at its first step")
        elif any(s.compensate for s in completed):
            saga.payload = {**saga.payload, "compensating": True}
            self.db.commit()
            self.compensate(saga, completed)
        else:
            saga.status = SAGA_FAILED
            self.db.commit()

    def compensate(self, saga: SagaLog, completed: List[SagaStep]) -> None:
        """Undo completed steps in reverse. Each undo is committed and recorded on its own."""
        for step in reversed(completed):
            done = saga.payload.get("compensated_steps", [])
            if step.compensate is None or step.name in done:
                continue
            try:
                step.compensate(self.db, saga.payload)
                saga.payload = {**saga.payload, "compensated_steps": done + [step.name]}
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                logger.exception(f"Saga {saga.id} compensation of '{step.name}' failed")
                saga.status = SAGA_FAILED
                saga.error = f"compensation of {step.name} failed: {type(e).__name__}: {e}"
                self.db.commit()
                return

        saga.status = SAGA_COMPENSATED
        self.db.commit()
        logger.info(f"Saga {saga.id} ({saga.saga_type}) compensated")


def get_saga(db: Session, saga_id: UUID) -> SagaLog:
    saga = db.get(SagaLog, saga_id)
    if not saga:
        raise NotFoundError("Saga not found", context={"saga_id": str(saga_id)})
    return saga


def resume_saga(db: Session, saga_id: UUID) -> SagaLog:
    """
    Finishes an interrupted saga. A saga that stopped while compensating keeps
    compensating; any other runs its remaining forward steps.
    """
    saga = get_saga(db, saga_id)
    if saga.status in (SAGA_COMPLETED, SAGA_COMPENSATED, SAGA_ABORTED):
        return saga

    builder = SAGA_REGISTRY.get(saga.saga_type)
    if builder is None:
        raise InternalError(
            "This operation cannot be resumed",
            technical_details=f"no step builder registered for saga type {saga.saga_type}",
        )
    steps = builder(saga.payload)
    runner = SagaRunner(db)
    logger.info(f"Resuming saga {saga.id} ({saga.saga_type}) after {saga.completed_steps}")

    if saga.payload.get("compensating"):
        completed = [s for s in steps if s.name in (saga.completed_steps or [])]
        runner.compensate(saga, completed)
        return saga

    saga.status = SAGA_RUNNING
    saga.failed_step = None
    saga.error = None
    db.commit()
    return runner.execute(saga, steps)


def list_incomplete(db: Session) -> List[SagaLog]:
    return (
        db.query(SagaLog)
        .filter(SagaLog.status.in_([SAGA_RUNNING, SAGA_FAILED]))
        .order_by(SagaLog.created_at.asc())
        .all()
    )


def list_sagas(db: Session, status: Optional[str] = None, limit: int = 100) -> List[SagaLog]:
    query = db.query(SagaLog)
    if status:
        query = query.filter(SagaLog.status == status)
    return query.order_by(SagaLog.created_at.desc()).limit(limit).all()
