"""
Политика доступа к шаблонам.

Чтение (``can_access``) разрешено, если шаблон публичный, пользователь его
создатель, получил явный доступ или является администратором. Анонимный
пользователь видит только публичные шаблоны. Изменять структуру шаблона
(``can_modify``) могут только создатель и администраторы. Отправлять формы и
оставлять комментарии создатель собственного шаблона не может.
"""

import logging
from typing import Optional

from app.core.exceptions import ForbiddenError, UnauthenticatedError
from app.domains.forms.entities import Form
from app.domains.identity.entities import User
from app.domains.templates.entities import Template

logger = logging.getLogger(__name__)


class TemplateAccessPolicy:
    """Проверки прав пользователя на шаблон"""
    
    def __init__(self, template: Template):
        self.template = template
    
    def is_owner(self, actor: Optional[User]) -> bool:
        return actor is not None and actor.id == self.template.created_by
    
    def is_grantee(self, actor: Optional[User]) -> bool:
        return actor is not None and actor.id in self.template.access_user_ids
    
    def can_access(self, actor: Optional[User]) -> bool:
        """Чтение шаблона, его форм и комментариев"""
        if self.template.is_public:
            return True
        if actor is None:
            return False
        return self.is_owner(actor) or self.is_grantee(actor) or actor.is_admin
    
    def can_modify(self, actor: Optional[User]) -> bool:
        """Изменение, удаление, вопросы, порядок, выдача доступа"""
        if actor is None:
            return False
        return self.is_owner(actor) or actor.is_admin
    
    def can_participate(self, actor: Optional[User]) -> bool:
        """Комментарии и лайки: всем с доступом, кроме создателя"""
        return actor is not None and not self.is_owner(actor) and self.can_access(actor)
    
    def can_submit(self, actor: Optional[User]) -> bool:
        if actor is None or self.is_owner(actor):
            return False
        return self.template.is_public or self.is_grantee(actor) or actor.is_admin
    
    def can_manage_form(self, form: Form, actor: Optional[User]) -> bool:
        """Просмотр, изменение и удаление формы"""
        if actor is None:
            return False
        return form.user_id == actor.id or self.is_owner(actor) or actor.is_admin
    
    def ensure_readable(self, actor: Optional[User]) -> None:
        if self.can_access(actor):
            return
        if actor is None:
            raise UnauthenticatedError("Authentication required to view this template")
        self._deny(actor, "read")
    
    def ensure_modifiable(self, actor: Optional[User]) -> None:
        if actor is None:
            raise UnauthenticatedError()
        if not self.can_modify(actor):
            self._deny(actor, "modify")
    
    def ensure_participant(self, actor: Optional[User], action: str) -> None:
        if actor is None:
            raise UnauthenticatedError()
        if self.is_owner(actor):
            logger.warning("Creator %s tried to %s own template %s", actor.id, action, self.template.id)
            raise ForbiddenError(f"Creators cannot {action} their own templates")
        if not self.can_access(actor):
            self._deny(actor, action)
    
    def ensure_can_submit(self, actor: Optional[User]) -> None:
        if actor is None:
            raise UnauthenticatedError()
        if self.is_owner(actor):
            logger.warning("Creator %s tried to fill own template %s", actor.id, self.template.id)
            raise ForbiddenError("Creators cannot fill their own templates")
        if not self.can_submit(actor):
            self._deny(actor, "submit to")
    
    def ensure_can_manage_form(self, form: Form, actor: Optional[User]) -> None:
        if actor is None:
            raise UnauthenticatedError()
        if not self.can_manage_form(form, actor):
            logger.warning("User %s denied access to form %s", actor.id, form.id)
            raise ForbiddenError("You do not have permission to manage this form")
    
    def _deny(self, actor: User, action: str) -> None:
        logger.warning("User %s denied %s on template %s", actor.id, action, self.template.id)
        raise ForbiddenError(f"You do not have permission to {action} this template")
