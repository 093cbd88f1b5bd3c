"""Session cache for the cookie-authenticated TickTick surface.

One Session per principal (account username). Sessions live for 23 hours,
under the vendor's ~24h cookie lifetime. Concurrent acquisitions for the
same principal share one in-flight sign-on.
"""
import asyncio
import logging
import secrets
import time
from dataclasses import dataclass, replace
from typing import Awaitable, Callable

logger = logging.getLogger("ticktick-tools.session")

SESSION_TTL_SECONDS = 23 * 60 * 60


def generate_device_id() -> str:
    """24 hex chars, the ObjectId-like shape the web client sends."""
    return secrets.token_hex(12)


@dataclass(frozen=True)
class Session:
    token: str
    device_id: str
    inbox_id: str = ""
    user_id: str = ""
    issued_at: float = 0.0
    expires_at: float = 0.0


SignOn = Callable[[str], Awaitable[Session]]


class SessionStore:
    """Per-principal session cache with TTL and single-flight sign-on.

    The store is the only shared mutable state in the access layer. All
    access happens on one event loop, and no method awaits between reading
    and writing its maps, so get/put/evict need no extra locking.
    """

    def __init__(
        self,
        ttl: float = SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._ttl = ttl
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._device_ids: dict[str, str] = {}
        self._inflight: dict[str, asyncio.Future] = {}

    def get(self, principal: str) -> Session | None:
        """Return the live session for principal, evicting it if expired."""
        session = self._sessions.get(principal)
        if session is None:
            return None
        if self._clock() >= session.expires_at:
            logger.info("Session for %s expired", principal)
            self.evict(principal)
            return None
        return session

    def put(self, principal: str, session: Session) -> Session:
        now = self._clock()
        stored = replace(session, issued_at=now, expires_at=now + self._ttl)
        self._sessions[principal] = stored
        self._device_ids[principal] = stored.device_id
        return stored

    def evict(self, principal: str, token: str | None = None) -> None:
        """Drop principal's session. With token, only if it is still the stored one."""
        stored = self._sessions.get(principal)
        if stored is None:
            return
        if token is not None and stored.token != token:
            logger.debug("Kept newer session for %s; rejected token was stale", principal)
            return
        # Device id survives eviction so refreshes keep one fingerprint
        if self._sessions.pop(principal, None) is not None:
            logger.info("Evicted session for %s", principal)

    def device_id_for(self, principal: str) -> str:
        device_id = self._device_ids.get(principal)
        if device_id is None:
            device_id = generate_device_id()
            self._device_ids[principal] = device_id
        return device_id

    async def acquire(self, principal: str, sign_on: SignOn) -> Session:
        """Return a live session, signing on at most once per principal.

        sign_on receives the principal's device id and must return a
        Session. It is written to the store only after it succeeds, so a
        failed or cancelled sign-on leaves the store untouched.
        """
        session = self.get(principal)
        if session is not None:
            logger.debug("Session cache hit for %s", principal)
            return session

        future = self._inflight.get(principal)
        if future is None:
            future = asyncio.ensure_future(
                self._sign_on(principal, sign_on, self.device_id_for(principal))
            )
            future.add_done_callback(_consume_exception)
            self._inflight[principal] = future
        # A waiter being cancelled must not cancel the shared sign-on
        return await asyncio.shield(future)

    async def _sign_on(self, principal: str, sign_on: SignOn, device_id: str) -> Session:
        try:
            session = await sign_on(device_id)
            return self.put(principal, session)
        finally:
            self._inflight.pop(principal, None)


def _consume_exception(future: asyncio.Future) -> None:
    # Marks a failed sign-on as retrieved even when every waiter was cancelled
    if not future.cancelled():
        future.exception()
