from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Dict, Optional


class KPICreate(BaseModel):
    title: str
    description: str = ""
    weight: int
    floor: Optional[str] = None


class KPIUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    weight: Optional[int] = None
    floor: Optional[str] = None


class KPIResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    weight: int
    floor: Optional[str] = None
    is_removed: bool
    created_at: Optional[datetime] = None


class KPIStats(BaseModel):
    total: int
    active: int
    removed: int
    average_weight: float
    by_floor: Dict[str, int]
