from fastapi import APIRouter

from stagegate.api.routes import health, stages, transitions

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(stages.router, tags=["stages"])
api_router.include_router(transitions.router, tags=["transitions"])
