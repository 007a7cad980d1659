"""
Draft Store Implementation using Kvrocks

One record per (browsing session, catalog item), refreshed to the session lifetime
on every save so an abandoned draft simply expires.
"""

from typing import Optional

from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from src.platform.exception.exceptions import BackendUnavailableError
from src.platform.logging.loguru_io import Logger
from src.platform.state.kvrocks_client import kvrocks_client
from src.service.booking_session.app.interface.i_draft_store import IDraftStore
from src.service.booking_session.domain.entity.booking_draft_entity import BookingDraft
from src.service.booking_session.domain.enum.booking_step import BookingStep
from src.service.booking_session.driven_adapter.state.draft_codec import (
    decode_draft_record,
    encode_draft_record,
)


class KvrocksDraftStoreImpl(IDraftStore):
    """
    Key format: {prefix}booking_draft:{session_id}:{item_id}
    Value: {"step": n, "data": {...}} (orjson)
    TTL: browsing session lifetime, refreshed on save
    """

    def __init__(
        self,
        *,
        session_id: str,
        ttl_seconds: int,
        key_prefix: str = '',
        client: Optional[AsyncRedis] = None,
    ) -> None:
        self.session_id = session_id
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix
        self._client = client  # None -> global kvrocks_client

    def _get_client(self) -> AsyncRedis:
        return self._client if self._client is not None else kvrocks_client.get_client()

    def _build_key(self, *, item_id: str) -> str:
        return f'{self.key_prefix}booking_draft:{self.session_id}:{item_id}'

    @Logger.io
    async def load(self, *, item_id: str) -> Optional[tuple[BookingStep, BookingDraft]]:
        key = self._build_key(item_id=item_id)
        try:
            raw = await self._get_client().get(key)
        except RedisError as e:
            raise BackendUnavailableError(f'Draft storage unavailable: {e}') from e

        if raw is None:
            return None
        try:
            return decode_draft_record(raw)
        except ValueError as e:
            # Treated as absent; the next save overwrites it
            Logger.base.warning(f'⚠️ [DRAFT] Ignoring malformed draft at {key}: {e}')
            return None

    @Logger.io
    async def save(self, *, item_id: str, step: BookingStep, draft: BookingDraft) -> None:
        key = self._build_key(item_id=item_id)
        try:
            await self._get_client().set(
                name=key, value=encode_draft_record(step=step, draft=draft), ex=self.ttl_seconds
            )
        except RedisError as e:
            raise BackendUnavailableError(f'Draft storage unavailable: {e}') from e

    @Logger.io
    async def clear(self, *, item_id: str) -> None:
        key = self._build_key(item_id=item_id)
        try:
            deleted_count = await self._get_client().delete(key)
        except RedisError as e:
            raise BackendUnavailableError(f'Draft storage unavailable: {e}') from e

        if deleted_count > 0:
            Logger.base.info(f'🧹 [DRAFT] Cleared {key}')
