from fastapi import APIRouter

from clinreview.routers import assignments, files, kpi_groups, kpis, profiles, reviews, scores

api_router = APIRouter()

api_router.include_router(kpis.router)
api_router.include_router(profiles.router)
api_router.include_router(assignments.router)
api_router.include_router(reviews.router)
api_router.include_router(kpi_groups.router)
api_router.include_router(scores.router)
api_router.include_router(files.router)
