"""Category Repository Interface"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.category import Category


class CategoryRepository(ABC):

    @abstractmethod
    async def get_by_id(self, category_id: str) -> Optional[Category]:
        pass

    @abstractmethod
    async def create(self, category: Category) -> Category:
        pass
