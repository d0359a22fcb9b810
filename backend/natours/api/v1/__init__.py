from fastapi import APIRouter

from . import tours, users

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(tours.router)
api_router.include_router(users.router)

__all__ = ["api_router"]
