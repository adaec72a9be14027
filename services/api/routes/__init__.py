from fastapi import APIRouter
from .images import router as images_router

router = APIRouter(prefix="/api")

router.include_router(images_router)
