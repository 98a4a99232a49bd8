"""
Исключения предметной области.

Сервисы поднимают эти исключения, а обработчики в ``app.main`` переводят их
в HTTP-ответы. ``ValidationError`` также является ``ValueError``, как и
ошибки валидации в схемах pydantic.
"""

from typing import Any, Dict, Optional


class FormForgeError(Exception):
    """Базовое исключение приложения"""

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {"detail": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(FormForgeError, ValueError):
    """Некорректный или неполный ввод"""

    status_code = 400
    default_code = "VALIDATION_ERROR"


class UnauthenticatedError(FormForgeError):
    """Требуется идентификация пользователя"""

    status_code = 401
    default_code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Authentication required", **kwargs):
        super().__init__(message, **kwargs)


class ForbiddenError(FormForgeError):
    """Пользователь известен, но прав недостаточно"""

    status_code = 403
    default_code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden", **kwargs):
        super().__init__(message, **kwargs)


class NotFoundError(FormForgeError):
    """Запрошенная сущность отсутствует"""

    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(FormForgeError):
    """Нарушение уникальности"""

    status_code = 409
    default_code = "CONFLICT"


class StorageError(FormForgeError):
    """Ошибка хранилища, детали наружу не отдаются"""

    status_code = 500
    default_code = "STORAGE_ERROR"

    def __init__(self, message: str = "Storage operation failed", **kwargs):
        super().__init__(message, **kwargs)
