from datetime import date
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from clinreview.core.config import settings
from clinreview.core.exceptions import NotFoundError, ValidationFailed
from clinreview.core.periods import Period, PeriodKind, current_period, parse_period, trailing_months
from clinreview.core.schemas import ApiResponse
from clinreview.dependencies import get_score_calculator
from clinreview.schemas.profile import ProfileResponse
from clinreview.schemas.score import (
    PerformanceBandsResponse,
    ScoreBreakdownResponse,
    ScoreLineResponse,
    ScoreResponse,
    StaffScore,
    TrendPoint,
    TrendResponse,
)
from clinreview.services.entity_store import Collection
from clinreview.services.scoring import ScoreCalculator, trend_direction

router = APIRouter(prefix="/scores", tags=["Scores"])


def resolve_period(
    kind: PeriodKind = PeriodKind.WEEK,
    year: Optional[int] = None,
    number: Optional[int] = Query(None, ge=1, le=53),
) -> Period:
    """Explicit period, or the current one when year/number are omitted."""
    if year is None or number is None:
        return current_period(kind)
    try:
        return parse_period(kind, year, number)
    except ValueError as e:
        raise ValidationFailed(str(e), field="number")


def _trend_periods(end_year: Optional[int], end_month: Optional[int], months: int) -> List[Period]:
    today = date.today()
    try:
        return trailing_months(end_year or today.year, end_month or today.month, months)
    except ValueError as e:
        raise ValidationFailed(str(e), field="end_month")


def _meta(calculator: ScoreCalculator, period: Optional[Period] = None, **extra) -> dict:
    meta = {"reviews_version": calculator.store.version(Collection.REVIEW_ITEMS), **extra}
    if period is not None:
        meta.update(period=period.key, label=period.label)
    return meta


def _trend(subject_id: int, periods: List[Period], scores: List[int]) -> TrendResponse:
    direction, change = trend_direction(scores)
    return TrendResponse(
        subject_id=subject_id,
        points=[TrendPoint(period=p.key, label=p.label, score=s) for p, s in zip(periods, scores)],
        direction=direction,
        change=change,
    )


@router.get("/{staff_id}", response_model=ApiResponse[ScoreResponse])
def get_score(
    staff_id: int,
    period: Period = Depends(resolve_period),
    calculator: ScoreCalculator = Depends(get_score_calculator),
):
    score = calculator.score(staff_id, period)
    return ApiResponse.ok(
        ScoreResponse(staff_id=staff_id, period=period.key, label=period.label, score=score),
        **_meta(calculator, period),
    )


@router.get("/{staff_id}/breakdown", response_model=ApiResponse[ScoreBreakdownResponse])
def get_breakdown(
    staff_id: int,
    period: Period = Depends(resolve_period),
    calculator: ScoreCalculator = Depends(get_score_calculator),
):
    breakdown = calculator.breakdown(staff_id, period)
    return ApiResponse.ok(ScoreBreakdownResponse(
        staff_id=staff_id,
        period=period.key,
        label=period.label,
        score=breakdown.score,
        earned_weight=breakdown.earned_weight,
        possible_weight=breakdown.possible_weight,
        met_count=breakdown.met_count,
        not_met_count=breakdown.not_met_count,
        lines=[
            ScoreLineResponse(
                review_id=line.review_id,
                kpi_id=line.kpi_id,
                kpi_title=line.kpi_title,
                weight=line.weight,
                met=line.met,
                earned=line.earned,
            )
            for line in breakdown.lines
        ],
    ), **_meta(calculator, period))


@router.get("/{staff_id}/trend", response_model=ApiResponse[TrendResponse])
def get_trend(
    staff_id: int,
    end_year: Optional[int] = None,
    end_month: Optional[int] = Query(None, ge=1, le=12),
    months: int = Query(settings.trend_months, ge=2, le=24),
    calculator: ScoreCalculator = Depends(get_score_calculator),
):
    periods = _trend_periods(end_year, end_month, months)
    return ApiResponse.ok(_trend(staff_id, periods, calculator.trend(staff_id, periods)), **_meta(calculator))


@router.get("/team/{director_id}", response_model=ApiResponse[ScoreResponse])
def get_team_average(
    director_id: int,
    period: Period = Depends(resolve_period),
    calculator: ScoreCalculator = Depends(get_score_calculator),
):
    members = calculator.team_members(director_id)
    average = calculator.team_average(director_id, period)
    return ApiResponse.ok(
        ScoreResponse(staff_id=director_id, period=period.key, label=period.label, score=average),
        **_meta(calculator, period, team_size=len(members)),
    )


@router.get("/team/{director_id}/trend", response_model=ApiResponse[TrendResponse])
def get_team_trend(
    director_id: int,
    end_year: Optional[int] = None,
    end_month: Optional[int] = Query(None, ge=1, le=12),
    months: int = Query(settings.trend_months, ge=2, le=24),
    calculator: ScoreCalculator = Depends(get_score_calculator),
):
    periods = _trend_periods(end_year, end_month, months)
    return ApiResponse.ok(
        _trend(director_id, periods, calculator.team_trend(director_id, periods)),
        **_meta(calculator, team_size=len(calculator.team_members(director_id))),
    )


@router.get("/team/{director_id}/bands", response_model=ApiResponse[PerformanceBandsResponse])
def get_performance_bands(
    director_id: int,
    period: Period = Depends(resolve_period),
    calculator: ScoreCalculator = Depends(get_score_calculator),
):
    director = calculator.store.profile(director_id)
    if director is None or not director.accept:
        raise NotFoundError(f"Approved director {director_id} not found")
    members = calculator.team_members(director_id)
    bands = calculator.performance_bands(members, period)

    def scored(profiles):
        return [
            StaffScore(profile=ProfileResponse.model_validate(p), score=calculator.score(p.id, period))
            for p in profiles
        ]

    return ApiResponse.ok(PerformanceBandsResponse(
        director_id=director_id,
        period=period.key,
        top_performers=scored(bands["top_performers"]),
        needs_attention=scored(bands["needs_attention"]),
    ), **_meta(calculator, period, team_size=len(members)))
