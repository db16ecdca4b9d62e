"""Owner Repository Interface"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.owner import Owner


class OwnerRepository(ABC):

    @abstractmethod
    async def get_by_id(self, owner_id: str) -> Optional[Owner]:
        pass

    @abstractmethod
    async def create(self, owner: Owner) -> Owner:
        pass
