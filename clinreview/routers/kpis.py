from fastapi import APIRouter, Depends, status
from typing import List, Optional

from clinreview.dependencies import get_kpi_service
from clinreview.schemas.kpi import KPICreate, KPIResponse, KPIStats, KPIUpdate
from clinreview.services.kpi_service import KPIService

router = APIRouter(prefix="/kpis", tags=["KPIs"])


@router.get("", response_model=List[KPIResponse])
def list_kpis(floor: Optional[str] = None, service: KPIService = Depends(get_kpi_service)):
    return service.list_active(floor)


@router.get("/removed", response_model=List[KPIResponse])
def list_removed_kpis(service: KPIService = Depends(get_kpi_service)):
    return service.list_removed()


@router.get("/floors", response_model=List[str])
def list_floors(service: KPIService = Depends(get_kpi_service)):
    return service.floors()


@router.get("/stats", response_model=KPIStats)
def kpi_stats(service: KPIService = Depends(get_kpi_service)):
    return service.stats()


@router.get("/{kpi_id}", response_model=KPIResponse)
def get_kpi(kpi_id: int, service: KPIService = Depends(get_kpi_service)):
    return service.get(kpi_id)


@router.post("", response_model=KPIResponse, status_code=status.HTTP_201_CREATED)
def create_kpi(payload: KPICreate, service: KPIService = Depends(get_kpi_service)):
    return service.create(payload.title, payload.description, payload.weight, payload.floor)


@router.put("/{kpi_id}", response_model=KPIResponse)
def update_kpi(kpi_id: int, payload: KPIUpdate, service: KPIService = Depends(get_kpi_service)):
    return service.update(kpi_id, payload.model_dump(exclude_unset=True, exclude_none=True))


@router.delete("/{kpi_id}", response_model=KPIResponse)
def remove_kpi(kpi_id: int, service: KPIService = Depends(get_kpi_service)):
    """Soft delete: the KPI leaves review sessions but keeps its history."""
    return service.soft_delete(kpi_id)


@router.post("/{kpi_id}/restore", response_model=KPIResponse)
def restore_kpi(kpi_id: int, service: KPIService = Depends(get_kpi_service)):
    return service.restore(kpi_id)


@router.delete("/{kpi_id}/permanent", status_code=status.HTTP_204_NO_CONTENT)
def purge_kpi(kpi_id: int, service: KPIService = Depends(get_kpi_service)):
    service.permanently_delete(kpi_id)
