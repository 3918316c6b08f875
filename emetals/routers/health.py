# emetals/routers/health.py

from fastapi import APIRouter

from emetals.config import settings

router = APIRouter()


@router.get("")
def health():
    return {
        "ok": True,
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }
