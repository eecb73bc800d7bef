from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional

from clinreview.models.position import Role


class PositionCreate(BaseModel):
    position_title: str
    role: Role = Role.CLINICIAN


class PositionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    position_title: str
    role: Role


class ProfileCreate(BaseModel):
    name: str
    username: str
    position_id: Optional[int] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    position_id: Optional[int] = None


class ApprovalRequest(BaseModel):
    accept: bool = True


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    username: str
    position_id: Optional[int] = None
    position_title: Optional[str] = None
    role: Role
    accept: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
