from fastapi import APIRouter

from solo_system.api.v1.endpoints import health, progress, state

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(state.router)
api_router.include_router(progress.router)
