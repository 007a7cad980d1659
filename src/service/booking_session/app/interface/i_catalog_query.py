from abc import ABC, abstractmethod

from src.service.booking_session.domain.value_object.catalog_item import CatalogItem


class ICatalogQuery(ABC):
    @abstractmethod
    async def get_item(self, *, item_id: str) -> CatalogItem:
        """Raises NotFoundError when the item does not exist"""
        pass
