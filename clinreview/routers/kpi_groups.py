from fastapi import APIRouter, Depends, status
from typing import List

from clinreview.dependencies import get_kpi_group_service
from clinreview.schemas.kpi_group import (
    KPIGroupCreate,
    KPIGroupMembers,
    KPIGroupRow,
    KPIGroupStats,
    KPIGroupUpdate,
    TitleExistsResponse,
)
from clinreview.services.kpi_group_service import KPIGroupService

router = APIRouter(prefix="/kpi-groups", tags=["KPI Groups"])


@router.post("", response_model=List[KPIGroupRow], status_code=status.HTTP_201_CREATED)
def create_group(payload: KPIGroupCreate, service: KPIGroupService = Depends(get_kpi_group_service)):
    return service.create_group(payload.title, payload.director_id, payload.kpi_ids)


@router.get("/{director_id}", response_model=List[str])
def list_group_titles(director_id: int, service: KPIGroupService = Depends(get_kpi_group_service)):
    return service.list_group_titles(director_id)


@router.get("/{director_id}/details", response_model=List[KPIGroupRow])
def groups_with_details(director_id: int, service: KPIGroupService = Depends(get_kpi_group_service)):
    return service.groups_with_details(director_id)


@router.get("/{director_id}/stats", response_model=KPIGroupStats)
def group_stats(director_id: int, service: KPIGroupService = Depends(get_kpi_group_service)):
    return service.group_stats(director_id)


@router.get("/{director_id}/exists", response_model=TitleExistsResponse)
def title_exists(director_id: int, title: str, service: KPIGroupService = Depends(get_kpi_group_service)):
    return {"exists": service.title_exists(title, director_id)}


@router.get("/{director_id}/{title}", response_model=KPIGroupMembers)
def list_kpis_in_group(director_id: int, title: str, service: KPIGroupService = Depends(get_kpi_group_service)):
    return {
        "title": title,
        "director_id": director_id,
        "kpi_ids": service.list_kpis_in_group(director_id, title),
    }


@router.put("/{director_id}/{title}", response_model=List[KPIGroupRow])
def update_group(
    director_id: int,
    title: str,
    payload: KPIGroupUpdate,
    service: KPIGroupService = Depends(get_kpi_group_service),
):
    return service.update_group(title, director_id, payload.kpi_ids)


@router.delete("/{director_id}/{title}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group(director_id: int, title: str, service: KPIGroupService = Depends(get_kpi_group_service)):
    service.delete_group(title, director_id)
