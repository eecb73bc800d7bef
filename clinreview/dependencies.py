"""
Shared FastAPI dependencies.

The entity store and file storage are process-wide and live on
``app.state``; services are built per request around the request's session.
"""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from clinreview.database import get_db
from clinreview.services.assignment_service import AssignmentService
from clinreview.services.entity_store import EntityStore
from clinreview.services.file_storage import FileStorage
from clinreview.services.kpi_group_service import KPIGroupService
from clinreview.services.kpi_service import KPIService
from clinreview.services.profile_service import ProfileService
from clinreview.services.review_service import ReviewService
from clinreview.services.scoring import ScoreCalculator


def get_store(request: Request, db: Session = Depends(get_db)) -> EntityStore:
    store: EntityStore = request.app.state.entity_store
    store.ensure_loaded(db)
    return store


def get_file_storage(request: Request) -> FileStorage:
    return request.app.state.file_storage


def get_score_calculator(request: Request, store: EntityStore = Depends(get_store)) -> ScoreCalculator:
    return request.app.state.score_calculator


def get_kpi_service(db: Session = Depends(get_db), store: EntityStore = Depends(get_store)) -> KPIService:
    return KPIService(db, store)


def get_profile_service(db: Session = Depends(get_db), store: EntityStore = Depends(get_store)) -> ProfileService:
    return ProfileService(db, store)


def get_assignment_service(db: Session = Depends(get_db), store: EntityStore = Depends(get_store)) -> AssignmentService:
    return AssignmentService(db, store)


def get_review_service(
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    storage: FileStorage = Depends(get_file_storage),
) -> ReviewService:
    return ReviewService(db, store, storage)


def get_kpi_group_service(db: Session = Depends(get_db)) -> KPIGroupService:
    return KPIGroupService(db)
