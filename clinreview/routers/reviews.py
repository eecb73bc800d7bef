from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from clinreview.core.exceptions import ValidationFailed
from clinreview.core.periods import PeriodKind, parse_period
from clinreview.dependencies import get_kpi_group_service, get_review_service
from clinreview.schemas.review import (
    MonthlyReviewRequest,
    PeriodReviewRequest,
    ReplaceReviewRequest,
    ReviewExistsResponse,
    ReviewItemResponse,
    ReviewSessionRequest,
    ReviewSubmission,
)
from clinreview.services.kpi_group_service import KPIGroupService
from clinreview.services.review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])

_SUBMISSION_FIELDS = set(ReviewSubmission.model_fields)


def _submission(payload) -> ReviewSubmission:
    return ReviewSubmission(**payload.model_dump(include=_SUBMISSION_FIELDS))


def _period(kind: PeriodKind, year: int, number: int):
    try:
        return parse_period(kind, year, number)
    except ValueError as e:
        raise ValidationFailed(str(e), field="number")


@router.put("", response_model=ReviewItemResponse)
def replace_review(payload: ReplaceReviewRequest, service: ReviewService = Depends(get_review_service)):
    """Replace whatever review exists for the staff member and KPI between the given bounds."""
    return service.replace_review(
        payload.staff_id, payload.kpi_id, payload.period_start, payload.period_end, _submission(payload)
    )


@router.put("/period", response_model=ReviewItemResponse)
def replace_review_for_period(payload: PeriodReviewRequest, service: ReviewService = Depends(get_review_service)):
    period = _period(payload.kind, payload.year, payload.number)
    return service.replace_review_for_period(payload.staff_id, payload.kpi_id, period, _submission(payload))


@router.post("/monthly", response_model=ReviewItemResponse, status_code=status.HTTP_201_CREATED)
def create_monthly_review(payload: MonthlyReviewRequest, service: ReviewService = Depends(get_review_service)):
    return service.create_review_for_month(
        payload.staff_id, payload.kpi_id, payload.month, payload.year, _submission(payload)
    )


@router.post("/session", response_model=List[ReviewItemResponse])
def submit_session(
    payload: ReviewSessionRequest,
    service: ReviewService = Depends(get_review_service),
    groups: KPIGroupService = Depends(get_kpi_group_service),
):
    """
    Submit every KPI review of one session at once. With ``group_title`` the
    session covers that KPI group of the submitting director, otherwise all
    active KPIs.
    """
    period = _period(payload.kind, payload.year, payload.number)
    kpi_ids = None
    if payload.group_title:
        if payload.director_id is None:
            raise ValidationFailed("A director is required to review by KPI group", field="director_id")
        kpi_ids = groups.list_kpis_in_group(payload.director_id, payload.group_title)
        if not kpi_ids:
            raise ValidationFailed(f"KPI group '{payload.group_title}' has no KPIs", field="group_title")
    return service.submit_session(
        payload.staff_id, period, payload.entries, director_id=payload.director_id, kpi_ids=kpi_ids
    )


@router.put("/{review_id}", response_model=ReviewItemResponse)
def update_review(review_id: int, payload: ReviewSubmission, service: ReviewService = Depends(get_review_service)):
    return service.update_review(review_id, payload)


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(review_id: int, service: ReviewService = Depends(get_review_service)):
    service.delete_review(review_id)


@router.get("/staff/{staff_id}", response_model=List[ReviewItemResponse])
def reviews_for_staff(
    staff_id: int,
    kpi_id: Optional[int] = None,
    kind: Optional[PeriodKind] = None,
    year: Optional[int] = None,
    number: Optional[int] = Query(None, ge=1, le=53),
    service: ReviewService = Depends(get_review_service),
):
    if kind is not None and year is not None and number is not None:
        items = service.reviews_for_period(staff_id, _period(kind, year, number))
        if kpi_id is not None:
            items = [item for item in items if item.kpi_id == kpi_id]
        return items
    return service.reviews_for_staff(staff_id, kpi_id)


@router.get("/exists", response_model=ReviewExistsResponse)
def review_exists(
    staff_id: int,
    kpi_id: int,
    year: int,
    number: int = Query(..., ge=1, le=53),
    kind: PeriodKind = PeriodKind.WEEK,
    service: ReviewService = Depends(get_review_service),
):
    return {"exists": service.review_exists(staff_id, kpi_id, _period(kind, year, number))}
