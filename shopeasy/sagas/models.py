from sqlalchemy import Column, String, DateTime, JSON, Text, Uuid
import uuid

from ..database.core import Base
from ..utils.clock import utcnow

SAGA_RUNNING = "running"
SAGA_COMPLETED = "completed"
SAGA_COMPENSATED = "compensated"
SAGA_FAILED = "failed"
# failed before any step was applied; nothing to undo or resume
SAGA_ABORTED = "aborted"


class SagaLog(Base):
    """Durable record of a multi-step workflow, one row per run."""
    __tablename__ = "saga_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    saga_type = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default=SAGA_RUNNING, index=True)
    payload = Column(JSON, nullable=False, default=dict)
    completed_steps = Column(JSON, nullable=False, default=list)
    failed_step = Column(String, nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
