from fastapi import APIRouter, Depends, HTTPException, status
from typing import List

from clinreview.dependencies import get_assignment_service, get_store
from clinreview.schemas.assignment import AssignmentRequest, AssignmentResponse
from clinreview.schemas.profile import ProfileResponse
from clinreview.services.assignment_service import AssignmentService
from clinreview.services.entity_store import EntityStore
from clinreview.services.hierarchy import HierarchyResolver

router = APIRouter(prefix="/assignments", tags=["Assignments"])


def get_resolver(store: EntityStore = Depends(get_store)) -> HierarchyResolver:
    return HierarchyResolver(store.profiles, store.assignments)


@router.get("", response_model=List[AssignmentResponse])
def list_assignments(service: AssignmentService = Depends(get_assignment_service)):
    return service.list_assignments()


# --- director -> clinician ---

@router.post("/clinicians", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
def assign_clinician(payload: AssignmentRequest, service: AssignmentService = Depends(get_assignment_service)):
    return service.assign_clinician(payload.subordinate_id, payload.supervisor_id)


@router.delete("/clinicians", status_code=status.HTTP_204_NO_CONTENT)
def unassign_clinician(payload: AssignmentRequest, service: AssignmentService = Depends(get_assignment_service)):
    service.unassign_clinician(payload.subordinate_id, payload.supervisor_id)


@router.get("/clinicians/unassigned", response_model=List[ProfileResponse])
def unassigned_clinicians(resolver: HierarchyResolver = Depends(get_resolver)):
    return resolver.unassigned_clinicians()


# --- director -> director ---

@router.post("/directors", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
def assign_director(payload: AssignmentRequest, service: AssignmentService = Depends(get_assignment_service)):
    return service.assign_director(payload.subordinate_id, payload.supervisor_id)


@router.delete("/directors", status_code=status.HTTP_204_NO_CONTENT)
def unassign_director(payload: AssignmentRequest, service: AssignmentService = Depends(get_assignment_service)):
    service.unassign_director(payload.subordinate_id, payload.supervisor_id)


@router.get("/directors", response_model=List[ProfileResponse])
def list_directors(resolver: HierarchyResolver = Depends(get_resolver)):
    return resolver.directors()


@router.get("/directors/unassigned", response_model=List[ProfileResponse])
def unassigned_directors(resolver: HierarchyResolver = Depends(get_resolver)):
    return resolver.unassigned_directors()


@router.get("/directors/{director_id}/clinicians", response_model=List[ProfileResponse])
def assigned_clinicians(director_id: int, resolver: HierarchyResolver = Depends(get_resolver)):
    return resolver.assigned_clinicians(director_id)


@router.get("/directors/{director_id}/directors", response_model=List[ProfileResponse])
def assigned_directors(director_id: int, resolver: HierarchyResolver = Depends(get_resolver)):
    return resolver.assigned_directors(director_id)


@router.get("/directors/{director_id}/supervisor", response_model=ProfileResponse)
def supervisor_of_director(director_id: int, resolver: HierarchyResolver = Depends(get_resolver)):
    supervisor = resolver.supervisor_of_director(director_id)
    if supervisor is None:
        raise HTTPException(status_code=404, detail="Director has no supervisor")
    return supervisor


@router.get("/directors/{director_id}/chain", response_model=List[ProfileResponse])
def supervisor_chain(director_id: int, resolver: HierarchyResolver = Depends(get_resolver)):
    return resolver.supervisor_chain(director_id)


@router.get("/staff/{staff_id}/director", response_model=ProfileResponse)
def director_of(staff_id: int, resolver: HierarchyResolver = Depends(get_resolver)):
    director = resolver.director_of(staff_id)
    if director is None:
        raise HTTPException(status_code=404, detail="Staff member has no assigned director")
    return director
