from src.platform.exception.exceptions import BackendUnavailableError
from src.platform.logging.loguru_io import Logger
from src.service.booking_session.app.interface.i_payment_api import IPaymentApi
from src.service.booking_session.domain.value_object.payment import (
    GatewayOrder,
    PaymentConfirmation,
    VerifiedPayment,
)
from src.service.booking_session.driven_adapter.http.backend_http_client import BackendHttpClient


class PaymentApiImpl(IPaymentApi):
    def __init__(self, *, http_client: BackendHttpClient) -> None:
        self.http_client = http_client

    @Logger.io
    async def get_public_key(self) -> str:
        data = await self.http_client.get('/payments/key', operation='get_payment_key')
        return str((data or {}).get('key') or '')

    @Logger.io
    async def create_order(
        self, *, amount: int, currency: str, receipt: str, notes: dict[str, str]
    ) -> GatewayOrder:
        data = await self.http_client.post(
            '/payments/create-order',
            operation='create_payment_order',
            json={'amount': amount, 'currency': currency, 'receipt': receipt, 'notes': notes},
        )
        if not isinstance(data, dict) or not data.get('orderId'):
            raise BackendUnavailableError('Payment order response is malformed')
        return GatewayOrder(
            order_id=str(data['orderId']),
            amount=int(data.get('amount', 0)),
            currency=str(data.get('currency', currency)),
            receipt=str(data.get('receipt', receipt)),
        )

    @Logger.io
    async def verify(self, *, confirmation: PaymentConfirmation) -> VerifiedPayment:
        data = await self.http_client.post(
            '/payments/verify',
            operation='verify_payment',
            json={
                'razorpay_order_id': confirmation.order_id,
                'razorpay_payment_id': confirmation.payment_id,
                'razorpay_signature': confirmation.signature,
            },
        )
        data = data if isinstance(data, dict) else {}
        return VerifiedPayment(
            order_id=str(data.get('orderId', confirmation.order_id)),
            payment_id=str(data.get('paymentId', confirmation.payment_id)),
            status=str(data.get('status') or ''),
            amount=data.get('amount'),
        )
