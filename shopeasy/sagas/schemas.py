from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class SagaOut(BaseModel):
    id: UUID
    saga_type: str
    status: str
    payload: Dict[str, Any]
    completed_steps: List[str]
    failed_step: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
