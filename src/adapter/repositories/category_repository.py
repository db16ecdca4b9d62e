"""SQLAlchemy implementation of CategoryRepository"""

from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.category_repository import CategoryRepository
from src.domain.category import Category


class SqlAlchemyCategoryRepository(CategoryRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, category_id: str) -> Optional[Category]:
        stmt = select(Category).where(Category.id == category_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, category: Category) -> Category:
        self.session.add(category)
        await self.session.flush()
        await self.session.refresh(category)
        return category
