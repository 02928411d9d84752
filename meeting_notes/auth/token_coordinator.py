"""
OAuth token lifecycle: staleness policy and single-flight refresh.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Protocol

from meeting_notes.core.exceptions import AuthExpiredError
from meeting_notes.core.logging import get_logger, mask_secret
from meeting_notes.domain.models import TokenGrant, TokenRecord, utcnow
from meeting_notes.storage.token_store import TokenStore

logger = get_logger("token_coordinator")


class TokenEndpoint(Protocol):
    async def exchange_code(self, code: str) -> TokenGrant: ...

    async def exchange_refresh_token(self, refresh_token: str) -> TokenGrant: ...


class TokenLifecycleCoordinator:
    """
    Owns refresh policy for every identity in the TokenStore.

    A token is stale once ``now >= expires_at - refresh_skew``. Stale tokens
    are refreshed through the provider's token endpoint; at most one exchange
    per identity is in flight and concurrent callers share its outcome, since
    providers that rotate refresh tokens invalidate the old one on first use.
    """

    def __init__(
        self,
        store: TokenStore,
        endpoint: TokenEndpoint,
        refresh_skew_seconds: int = 300,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._endpoint = endpoint
        self._skew = refresh_skew_seconds
        self._clock = clock
        self._inflight: Dict[str, "asyncio.Task[TokenRecord]"] = {}

    def is_stale(self, record: TokenRecord) -> bool:
        return record.is_stale(self._clock(), self._skew)

    async def ensure_fresh(self, identity: str) -> str:
        """
        Return a usable access token for ``identity``, refreshing if stale.

        Raises:
            AuthExpiredError: No record exists, or the provider rejected the refresh
            ProviderTimeoutError: The token endpoint timed out
            ProviderError: The token endpoint failed or sent an unreadable body
        """
        record = self._store.get(identity)
        if record is None:
            raise AuthExpiredError(f"No Zoom credentials for {identity}; authorization required")
        if not self.is_stale(record):
            return record.access_token

        task = self._inflight.get(identity)
        if task is None:
            logger.info(f"Token for {identity} is stale (expires_at={record.expires_at.isoformat()}); refreshing")
            task = asyncio.ensure_future(self._refresh(identity, record))
            self._inflight[identity] = task
            task.add_done_callback(lambda t, key=identity: self._forget(key, t))
        else:
            logger.debug(f"Joining in-flight refresh for {identity}")

        # shield: one cancelled waiter must not cancel the exchange for the others
        refreshed = await asyncio.shield(task)
        return refreshed.access_token

    def _forget(self, identity: str, task: "asyncio.Task[TokenRecord]") -> None:
        if self._inflight.get(identity) is task:
            del self._inflight[identity]
        if not task.cancelled():
            # mark the outcome retrieved even if every waiter went away
            task.exception()

    async def _refresh(self, identity: str, record: TokenRecord) -> TokenRecord:
        if not record.refresh_token:
            raise AuthExpiredError(f"No refresh token for {identity}; authorization required")

        try:
            grant = await self._endpoint.exchange_refresh_token(record.refresh_token)
        except AuthExpiredError:
            # Stale record stays so callers force re-auth instead of retrying a dead token
            logger.warning(f"Refresh token rejected for {identity}; re-authentication required")
            raise

        updated = self._record_from_grant(identity, grant, previous_refresh_token=record.refresh_token)
        self._store.put(updated)
        logger.info(
            f"Refreshed token for {identity}: access={mask_secret(updated.access_token)} "
            f"rotated={grant.refresh_token is not None}"
        )
        return updated

    async def store_from_code(self, identity: str, code: str) -> TokenRecord:
        """Complete an authorization-code grant and store the resulting record."""
        grant = await self._endpoint.exchange_code(code)
        record = self._record_from_grant(identity, grant, previous_refresh_token=None)
        self._store.put(record)
        logger.info(f"✅ Stored new Zoom credentials for {identity}")
        return record

    def _record_from_grant(
        self, identity: str, grant: TokenGrant, previous_refresh_token: Optional[str]
    ) -> TokenRecord:
        return TokenRecord(
            identity=identity,
            access_token=grant.access_token,
            # Providers may omit rotation; keep the previous refresh token then
            refresh_token=grant.refresh_token or previous_refresh_token,
            expires_at=self._clock() + timedelta(seconds=grant.expires_in_seconds),
        )

    def status(self, identity: str) -> Dict[str, Any]:
        record = self._store.get(identity)
        if record is None:
            return {"authenticated": False, "expires_at": None, "needs_refresh": True}
        return {
            "authenticated": True,
            "expires_at": record.expires_at.isoformat(),
            "needs_refresh": self.is_stale(record),
        }

    async def check_token(self, identity: str) -> Dict[str, Any]:
        """Refresh if stale and report what happened."""
        record = self._store.get(identity)
        if record is None:
            return {"needs_refresh": True}
        if not self.is_stale(record):
            return {"needs_refresh": False}
        try:
            await self.ensure_fresh(identity)
        except AuthExpiredError:
            return {"needs_refresh": True, "error": "Token refresh failed"}
        return {"needs_refresh": False, "token_refreshed": True}

    def discard(self, identity: str) -> bool:
        return self._store.delete(identity)
