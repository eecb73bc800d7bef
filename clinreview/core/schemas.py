from typing import Generic, Optional, TypeVar
from pydantic import BaseModel, Field
from datetime import datetime, timezone

T = TypeVar("T")


class ResponseMeta(BaseModel):
    """Context for a computed result: which period it covers and how fresh it is."""
    period: Optional[str] = None
    label: Optional[str] = None
    team_size: Optional[int] = None
    reviews_version: Optional[int] = None


class ApiResponse(BaseModel, Generic[T]):
    """Envelope for computed (non-CRUD) results such as scores and trends."""
    success: bool = True
    data: T
    meta: ResponseMeta = Field(default_factory=ResponseMeta)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def ok(cls, data: T, **meta) -> "ApiResponse[T]":
        return cls(data=data, meta=ResponseMeta(**meta))
