from pydantic import BaseModel, ConfigDict
from typing import List, Optional

from clinreview.schemas.kpi import KPIResponse


class KPIGroupCreate(BaseModel):
    title: str
    director_id: int
    kpi_ids: List[int]


class KPIGroupUpdate(BaseModel):
    kpi_ids: List[int]


class KPIGroupRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    director_id: int
    kpi_id: int
    kpi: Optional[KPIResponse] = None


class KPIGroupMembers(BaseModel):
    title: str
    director_id: int
    kpi_ids: List[int]


class TitleExistsResponse(BaseModel):
    exists: bool


class KPIGroupStats(BaseModel):
    total_groups: int
    total_kpis: int
    average_kpis_per_group: float
    group_titles: List[str]
