import attrs


@attrs.define(frozen=True)
class PriceBreakdown:
    """Output of the pricing engine. Never edited by hand, only recomputed."""

    base_price: int
    room_upgrade_total: int
    add_ons_total: int
    subtotal: int
    discount: int
    taxable_amount: int
    taxes: int
    grand_total: int

    @classmethod
    def zero(cls) -> 'PriceBreakdown':
        return cls(
            base_price=0,
            room_upgrade_total=0,
            add_ons_total=0,
            subtotal=0,
            discount=0,
            taxable_amount=0,
            taxes=0,
            grand_total=0,
        )
