"""Aggregate API routers."""

from fastapi import APIRouter

from stylizer.api.images import router as images_router

api_router = APIRouter(prefix="/api")
api_router.include_router(images_router, tags=["images"])
