"""Application layer interfaces (Ports)"""

from src.service.booking_session.app.interface.i_booking_api import IBookingApi
from src.service.booking_session.app.interface.i_catalog_query import ICatalogQuery
from src.service.booking_session.app.interface.i_coupon_api import ICouponApi
from src.service.booking_session.app.interface.i_draft_store import IDraftStore
from src.service.booking_session.app.interface.i_history_port import (
    IHistoryPort,
    NavigationListener,
)
from src.service.booking_session.app.interface.i_payment_api import IPaymentApi
from src.service.booking_session.app.interface.i_payment_gateway import IPaymentGateway

__all__ = [
    'IBookingApi',
    'ICatalogQuery',
    'ICouponApi',
    'IDraftStore',
    'IHistoryPort',
    'IPaymentApi',
    'IPaymentGateway',
    'NavigationListener',
]
