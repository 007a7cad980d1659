"""
Backend HTTP client

Shared httpx.AsyncClient for the booking backend (catalog, coupons, payments,
bookings). Responses use a {success, data, message} envelope; this layer unwraps it
and maps failures onto the platform error hierarchy:

- 404              -> NotFoundError
- other 4xx        -> RejectionError carrying the server message verbatim
- 5xx / transport  -> BackendUnavailableError (nothing known about side effects)
"""

from contextvars import ContextVar
import time
from typing import Any, Optional

import httpx
import orjson

from src.platform.exception.exceptions import (
    BackendUnavailableError,
    NotFoundError,
    RejectionError,
)
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.booking_metrics import metrics


# Bearer token of the principal on whose behalf the current request calls the backend
backend_auth_token_var: ContextVar[Optional[str]] = ContextVar('backend_auth_token', default=None)


class BackendHttpClient:
    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip('/')
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_seconds,
            transport=transport,
            headers={'Accept': 'application/json'},
        )

    async def get(self, path: str, *, operation: str, params: Optional[dict] = None) -> Any:
        return await self.request('GET', path, operation=operation, params=params)

    async def post(self, path: str, *, operation: str, json: Optional[dict] = None) -> Any:
        return await self.request('POST', path, operation=operation, json=json)

    async def request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Any:
        """Send a request and return the unwrapped `data` of the envelope"""
        headers = {}
        token = backend_auth_token_var.get()
        if token:
            headers['Authorization'] = f'Bearer {token}'

        start = time.perf_counter()
        result = 'error'
        try:
            try:
                response = await self._client.request(
                    method, path, params=params, json=json, headers=headers
                )
            except httpx.HTTPError as e:
                Logger.base.error(f'❌ [BACKEND] {operation} {method} {path} transport error: {e}')
                raise BackendUnavailableError(
                    'Booking service is temporarily unavailable, please try again'
                ) from e

            body = self._parse_body(response)
            if response.status_code >= 500:
                Logger.base.error(
                    f'❌ [BACKEND] {operation} {method} {path} -> {response.status_code}'
                )
                raise BackendUnavailableError(
                    self._error_message(body, 'Booking service error, please try again')
                )
            if response.status_code == 404:
                result = 'not_found'
                raise NotFoundError(self._error_message(body, 'Not found'))
            if response.status_code >= 400:
                result = 'rejected'
                raise RejectionError(self._error_message(body, 'Request rejected'))
            if not isinstance(body, dict):
                raise BackendUnavailableError('Booking service returned an unexpected response')
            if body.get('success') is False:
                result = 'rejected'
                raise RejectionError(self._error_message(body, 'Request rejected'))

            result = 'ok'
            return body.get('data', body)
        finally:
            metrics.record_backend_call(
                operation=operation, result=result, duration=time.perf_counter() - start
            )

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError:
            Logger.base.warning(
                f'⚠️ [BACKEND] Non-JSON body from {response.request.url} ({response.status_code})'
            )
            return None

    @staticmethod
    def _error_message(body: Any, default: str) -> str:
        if isinstance(body, dict):
            for field in ('message', 'error'):
                value = body.get(field)
                if isinstance(value, str) and value:
                    return value
        return default

    async def aclose(self) -> None:
        await self._client.aclose()
