from fastapi import APIRouter, Depends, status
from typing import List, Optional

from clinreview.dependencies import get_profile_service
from clinreview.models.position import Role
from clinreview.schemas.profile import (
    ApprovalRequest,
    PositionCreate,
    PositionResponse,
    ProfileCreate,
    ProfileResponse,
    ProfileUpdate,
)
from clinreview.services.profile_service import ProfileService

router = APIRouter(tags=["Staff"])


@router.get("/positions", response_model=List[PositionResponse])
def list_positions(service: ProfileService = Depends(get_profile_service)):
    return service.list_positions()


@router.post("/positions", response_model=PositionResponse, status_code=status.HTTP_201_CREATED)
def create_position(payload: PositionCreate, service: ProfileService = Depends(get_profile_service)):
    return service.create_position(payload.position_title, payload.role)


@router.get("/profiles", response_model=List[ProfileResponse])
def list_profiles(
    approved_only: bool = False,
    role: Optional[Role] = None,
    service: ProfileService = Depends(get_profile_service),
):
    return service.list_profiles(approved_only=approved_only, role=role)


@router.post("/profiles", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
def register_profile(payload: ProfileCreate, service: ProfileService = Depends(get_profile_service)):
    """Sign-up: the profile stays out of scoring and assignments until approved."""
    return service.register(payload.name, payload.username, payload.position_id)


@router.get("/profiles/{profile_id}", response_model=ProfileResponse)
def get_profile(profile_id: int, service: ProfileService = Depends(get_profile_service)):
    return service.get(profile_id)


@router.put("/profiles/{profile_id}", response_model=ProfileResponse)
def update_profile(profile_id: int, payload: ProfileUpdate, service: ProfileService = Depends(get_profile_service)):
    return service.update(profile_id, name=payload.name, position_id=payload.position_id)


@router.post("/profiles/{profile_id}/approve", response_model=ProfileResponse)
def approve_profile(
    profile_id: int,
    payload: ApprovalRequest = ApprovalRequest(),
    service: ProfileService = Depends(get_profile_service),
):
    return service.set_approval(profile_id, payload.accept)
