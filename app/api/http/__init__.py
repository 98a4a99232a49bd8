from app.api.http.health import router as health_router
from app.api.http.auth import router as auth_router
from app.api.http.users import router as users_router
from app.api.http.templates import router as templates_router
from app.api.http.forms import router as forms_router
from app.api.http.tags import router as tags_router
from app.api.http.notifications import router as notifications_router

__all__ = [
    "health_router",
    "auth_router",
    "users_router",
    "templates_router",
    "forms_router",
    "tags_router",
    "notifications_router"
]
