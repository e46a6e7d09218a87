from fastapi import APIRouter

from . import sessions

router = APIRouter()
router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
