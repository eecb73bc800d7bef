"""Immutable snapshots of ORM rows, safe to share across requests and threads."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from clinreview.models.position import Role


@dataclass(frozen=True)
class KPIRecord:
    id: int
    title: str
    weight: int
    description: str = ""
    floor: Optional[str] = None
    is_removed: bool = False

    @classmethod
    def from_model(cls, kpi) -> "KPIRecord":
        return cls(
            id=kpi.id,
            title=kpi.title,
            weight=kpi.weight,
            description=kpi.description or "",
            floor=kpi.floor,
            is_removed=bool(kpi.is_removed),
        )


@dataclass(frozen=True)
class ProfileRecord:
    id: int
    name: str
    role: Role
    accept: bool
    username: str = ""
    position_id: Optional[int] = None
    position_title: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, profile) -> "ProfileRecord":
        return cls(
            id=profile.id,
            name=profile.name,
            role=profile.role,
            accept=bool(profile.accept),
            username=profile.username,
            position_id=profile.position_id,
            position_title=profile.position_title,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )


@dataclass(frozen=True)
class AssignmentRecord:
    id: int
    subordinate_id: int
    supervisor_id: int
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, assignment) -> "AssignmentRecord":
        return cls(
            id=assignment.id,
            subordinate_id=assignment.subordinate_id,
            supervisor_id=assignment.supervisor_id,
            created_at=assignment.created_at,
        )


@dataclass(frozen=True)
class ReviewRecord:
    id: int
    staff_id: int
    kpi_id: int
    met: bool
    date: datetime
    score: int = 0
    director_id: Optional[int] = None
    notes: Optional[str] = None
    plan: Optional[str] = None
    file_url: Optional[str] = None

    @classmethod
    def from_model(cls, item) -> "ReviewRecord":
        return cls(
            id=item.id,
            staff_id=item.staff_id,
            kpi_id=item.kpi_id,
            met=bool(item.met_check),
            date=item.date,
            score=item.score,
            director_id=item.director_id,
            notes=item.notes,
            plan=item.plan,
            file_url=item.file_url,
        )
