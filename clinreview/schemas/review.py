from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import List, Optional

from clinreview.core.periods import PeriodKind, as_naive_utc


class ReviewSubmission(BaseModel):
    met: bool
    notes: Optional[str] = None
    plan: Optional[str] = None
    director_id: Optional[int] = None
    review_date: Optional[datetime] = None
    file_url: Optional[str] = None  # location of a freshly uploaded attachment

    @field_validator("review_date")
    @classmethod
    def _naive_review_date(cls, v):
        return as_naive_utc(v)


class ReplaceReviewRequest(ReviewSubmission):
    staff_id: int
    kpi_id: int
    period_start: datetime
    period_end: datetime

    @field_validator("period_start", "period_end")
    @classmethod
    def _naive_bounds(cls, v):
        return as_naive_utc(v)


class PeriodReviewRequest(ReviewSubmission):
    """Reconcile against a numbered week or month instead of explicit bounds."""
    staff_id: int
    kpi_id: int
    kind: PeriodKind = PeriodKind.WEEK
    year: int
    number: int = Field(..., ge=1, le=53)


class MonthlyReviewRequest(ReviewSubmission):
    staff_id: int
    kpi_id: int
    month: str  # "January" or "1"
    year: int


class SessionEntry(ReviewSubmission):
    kpi_id: int
    existing_review_id: Optional[int] = None


class ReviewSessionRequest(BaseModel):
    staff_id: int
    director_id: Optional[int] = None
    kind: PeriodKind = PeriodKind.WEEK
    year: int
    number: int = Field(..., ge=1, le=53)
    group_title: Optional[str] = None
    entries: List[SessionEntry]


class ReviewItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    staff_id: int
    kpi_id: int
    director_id: Optional[int] = None
    met_check: bool
    notes: Optional[str] = None
    plan: Optional[str] = None
    score: int
    date: datetime
    file_url: Optional[str] = None


class ReviewExistsResponse(BaseModel):
    exists: bool
