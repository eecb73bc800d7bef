from pydantic import BaseModel
from typing import List

from clinreview.schemas.profile import ProfileResponse


class ScoreResponse(BaseModel):
    staff_id: int
    period: str
    label: str
    score: int


class ScoreLineResponse(BaseModel):
    review_id: int
    kpi_id: int
    kpi_title: str
    weight: int
    met: bool
    earned: int


class ScoreBreakdownResponse(ScoreResponse):
    earned_weight: int
    possible_weight: int
    met_count: int
    not_met_count: int
    lines: List[ScoreLineResponse]


class TrendPoint(BaseModel):
    period: str
    label: str
    score: int


class TrendResponse(BaseModel):
    subject_id: int
    points: List[TrendPoint]
    direction: str
    change: int


class StaffScore(BaseModel):
    profile: ProfileResponse
    score: int


class PerformanceBandsResponse(BaseModel):
    director_id: int
    period: str
    top_performers: List[StaffScore]
    needs_attention: List[StaffScore]
