from datetime import date
from typing import Any

from src.platform.exception.exceptions import BackendUnavailableError
from src.platform.logging.loguru_io import Logger
from src.service.booking_session.app.interface.i_catalog_query import ICatalogQuery
from src.service.booking_session.domain.enum.add_on_pricing import AddOnPricing
from src.service.booking_session.domain.value_object.catalog_item import (
    DEFAULT_ADD_ONS,
    AddOn,
    CatalogItem,
)
from src.service.booking_session.driven_adapter.http.backend_http_client import BackendHttpClient


class CatalogQueryImpl(ICatalogQuery):
    """Journeys are addressed by slug; the stored id is whatever the backend calls it"""

    def __init__(self, *, http_client: BackendHttpClient) -> None:
        self.http_client = http_client

    @Logger.io
    async def get_item(self, *, item_id: str) -> CatalogItem:
        data = await self.http_client.get(f'/journeys/{item_id}', operation='get_journey')
        if not isinstance(data, dict):
            raise BackendUnavailableError('Journey response is malformed')
        return self._to_catalog_item(data, fallback_id=item_id)

    @staticmethod
    def _to_catalog_item(data: dict[str, Any], *, fallback_id: str) -> CatalogItem:
        unit_price = data.get('price', data.get('basePrice'))
        if not isinstance(unit_price, (int, float)) or unit_price < 0:
            raise BackendUnavailableError(f'Journey {fallback_id} has no usable price')

        add_ons = tuple(
            AddOn(
                id=str(raw['id']),
                label=str(raw.get('label') or raw['id']),
                price=int(raw.get('price', 0)),
                pricing=AddOnPricing(raw.get('pricing', AddOnPricing.PER_PERSON)),
            )
            for raw in data.get('addOns') or ()
        )

        departure_dates: list[date] = []
        for raw_date in data.get('departureDates') or ():
            try:
                departure_dates.append(date.fromisoformat(str(raw_date)[:10]))
            except ValueError:
                Logger.base.warning(f'⚠️ [CATALOG] Skipping bad departure date {raw_date!r}')

        return CatalogItem(
            id=str(data.get('_id') or data.get('id') or fallback_id),
            title=str(data.get('title') or ''),
            unit_price=int(unit_price),
            add_ons=add_ons or DEFAULT_ADD_ONS,
            departure_dates=tuple(departure_dates),
        )
