"""SQLAlchemy implementation of OwnerRepository"""

from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.owner_repository import OwnerRepository
from src.domain.owner import Owner


class SqlAlchemyOwnerRepository(OwnerRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, owner_id: str) -> Optional[Owner]:
        stmt = select(Owner).where(Owner.id == owner_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, owner: Owner) -> Owner:
        self.session.add(owner)
        await self.session.flush()
        await self.session.refresh(owner)
        return owner
