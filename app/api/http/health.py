from fastapi import APIRouter

from app.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    """Проверка работоспособности сервиса"""
    return {"status": "ok", "service": settings.app_name}
