from fastapi import APIRouter

from app.api.routes import files


router = APIRouter()

router.include_router(files.router)
