import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.http import (
    health_router, auth_router, users_router, templates_router,
    forms_router, tags_router, notifications_router
)
from app.core.config import settings
from app.core.exceptions import FormForgeError
from app.core.logging_config import setup_logging

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Конструктор шаблонов форм: вопросы, доступы, ответы и результаты",
    version="1.0.0"
)

# Настройка CORS для работы с frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FormForgeError)
async def formforge_error_handler(request: Request, exc: FormForgeError):
    """Исключения предметной области превращаются в JSON с кодом ошибки"""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Подключаем роутеры
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(templates_router)
app.include_router(forms_router)
app.include_router(tags_router)
app.include_router(notifications_router)


@app.get("/")
async def root():
    """Корневой эндпоинт"""
    return {
        "message": f"{settings.app_name} API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }
