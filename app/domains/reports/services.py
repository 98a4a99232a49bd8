from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.db.repositories.template_repository import TemplateRepository
from app.domains.identity.entities import User
from app.domains.reports.aggregation import build_csv, csv_filename, template_results
from app.domains.reports.schemas import TemplateResults
from app.domains.templates.access import TemplateAccessPolicy
from app.domains.templates.entities import Template


class ReportService:
    """Результаты и выгрузка ответов; нужен доступ на чтение шаблона"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.template_repository = TemplateRepository(session)

    async def _get_readable(self, template_id: int, actor: Optional[User]) -> Template:
        template = await self.template_repository.get_by_id(template_id)
        if not template:
            raise NotFoundError("Template not found")
        TemplateAccessPolicy(template).ensure_readable(actor)
        return template

    async def get_results(self, template_id: int, actor: Optional[User]) -> TemplateResults:
        template = await self._get_readable(template_id, actor)
        return TemplateResults(**template_results(template))

    async def export_csv(self, template_id: int, actor: Optional[User]) -> Tuple[str, str]:
        """Имя файла и содержимое CSV"""
        template = await self._get_readable(template_id, actor)
        return csv_filename(template), build_csv(template)
