from datetime import date

import attrs

from src.service.booking_session.domain.enum.add_on_pricing import AddOnPricing


@attrs.define(frozen=True)
class AddOn:
    id: str
    label: str
    price: int
    pricing: AddOnPricing = AddOnPricing.PER_PERSON


DEFAULT_ADD_ONS: tuple[AddOn, ...] = (
    AddOn(id='insurance', label='Travel Insurance', price=500, pricing=AddOnPricing.PER_PERSON),
    AddOn(id='airport_transfer', label='Airport Transfer', price=1500, pricing=AddOnPricing.FLAT),
)


@attrs.define(frozen=True)
class CatalogItem:
    """The trip being booked, as far as pricing and checkout care"""

    id: str
    title: str
    unit_price: int
    add_ons: tuple[AddOn, ...] = DEFAULT_ADD_ONS
    departure_dates: tuple[date, ...] = ()

    def find_add_on(self, add_on_id: str) -> AddOn | None:
        return next((add_on for add_on in self.add_ons if add_on.id == add_on_id), None)
