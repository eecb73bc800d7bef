from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


class AssignmentRequest(BaseModel):
    subordinate_id: int
    supervisor_id: int


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    subordinate_id: int
    supervisor_id: int
    created_at: Optional[datetime] = None
