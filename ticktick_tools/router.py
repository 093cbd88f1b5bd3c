"""Protocol router for the two TickTick API surfaces.

token/oauth2 calls go to the official /open/v1 REST API with a bearer
header. session calls go to the web client's /api/v2 API with the
session cookie and device header, signing on through the SessionStore
when needed. Every failure leaves here as a TickTickError.
"""
import logging
from typing import Any, Callable

import httpx

from . import config as _config
from .auth import USER_AGENT, Authenticator, build_device_header
from .config import AuthMethod
from .endpoints import is_official_path
from .errors import (
    ApiError,
    AuthenticationFailedError,
    AuthExpiredError,
    IncompatibleProtocolError,
    NotFoundError,
    ProtocolError,
    TransportError,
)
from .session import Session, SessionStore

logger = logging.getLogger("ticktick-tools.router")

CredentialGetter = Callable[[AuthMethod], dict]


class ProtocolRouter:
    """Routes a call to the right surface, with the right credentials."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        sessions: SessionStore,
        credentials: CredentialGetter = _config.get_credentials,
        official_base_url: str = _config.DEFAULT_OFFICIAL_BASE_URL,
        session_base_url: str = _config.DEFAULT_SESSION_BASE_URL,
        web_origin: str = _config.DEFAULT_WEB_ORIGIN,
        authenticator: Authenticator | None = None,
    ):
        self.client = client
        self.sessions = sessions
        self._credentials = credentials
        self.official_base_url = official_base_url.rstrip("/")
        self.session_base_url = session_base_url.rstrip("/")
        self.web_origin = web_origin.rstrip("/")
        self.authenticator = authenticator or Authenticator(client, self.session_base_url)

    @classmethod
    def from_config(cls) -> "ProtocolRouter":
        conn = _config.get_connection_config()
        client = httpx.AsyncClient(timeout=conn["timeout"])
        return cls(
            client,
            SessionStore(),
            official_base_url=conn["official_base_url"],
            session_base_url=conn["session_base_url"],
            web_origin=conn["web_origin"],
        )

    async def aclose(self):
        await self.client.aclose()

    async def get_session(self) -> Session:
        """Return the live session for the configured account, signing on if needed."""
        creds = self._credentials(AuthMethod.SESSION)
        username, password = creds["username"], creds["password"]

        async def sign_on(device_id: str) -> Session:
            return await self.authenticator.authenticate(username, password, device_id)

        return await self.sessions.acquire(username, sign_on)

    async def call(
        self,
        protocol: AuthMethod,
        method: str,
        endpoint: str,
        body: Any = None,
        query: dict | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Execute one request and return the decoded JSON body (None if empty)."""
        protocol = AuthMethod(protocol)
        official = is_official_path(endpoint)

        if protocol.is_session:
            if official:
                raise IncompatibleProtocolError(
                    f"{endpoint} is only served by the official API; "
                    "use the token or oauth2 authentication method",
                    endpoint=endpoint,
                    protocol=protocol.value,
                )
            principal = self._credentials(AuthMethod.SESSION)["username"]
            session = await self.get_session()
            rejected_token = session.token
            url = f"{self.session_base_url}{endpoint}"
            headers = self._session_headers(session)
        else:
            if not official:
                raise IncompatibleProtocolError(
                    f"{endpoint} is only available with session authentication",
                    endpoint=endpoint,
                    protocol=protocol.value,
                )
            principal = None
            rejected_token = None
            url = f"{self.official_base_url}{endpoint}"
            headers = {"Authorization": f"Bearer {self._bearer_token(protocol)}"}

        logger.debug("%s %s %s", protocol.value, method, endpoint)
        kwargs = {"headers": headers}
        if query:
            kwargs["params"] = query
        if body is not None:
            kwargs["json"] = body
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            resp = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Request to {endpoint} timed out", endpoint=endpoint, protocol=protocol.value
            ) from e
        except httpx.ConnectError as e:
            raise TransportError(
                "Could not connect to TickTick API", endpoint=endpoint, protocol=protocol.value
            ) from e
        except httpx.RequestError as e:
            raise TransportError(
                f"Request error: {e}", endpoint=endpoint, protocol=protocol.value
            ) from e

        if resp.status_code >= 400:
            self._raise_for_status(resp, protocol, endpoint, principal, rejected_token)
        return self._decode(resp, protocol, endpoint)

    def _bearer_token(self, protocol: AuthMethod) -> str:
        creds = self._credentials(protocol)
        if protocol is AuthMethod.OAUTH2:
            return creds["access_token"]
        return creds["token"]

    def _session_headers(self, session: Session) -> dict:
        return {
            "Cookie": f"t={session.token}",
            "X-Device": build_device_header(session.device_id),
            "User-Agent": USER_AGENT,
            "Origin": self.web_origin,
            "Referer": f"{self.web_origin}/",
        }

    def _raise_for_status(
        self,
        resp: httpx.Response,
        protocol: AuthMethod,
        endpoint: str,
        principal: str | None,
        token: str | None = None,
    ):
        status = resp.status_code
        payload = _payload_of(resp)
        context = {
            "status_code": status,
            "payload": payload,
            "endpoint": endpoint,
            "protocol": protocol.value,
        }

        if status in (401, 403):
            if protocol.is_session:
                logger.warning("Session rejected with HTTP %s on %s", status, endpoint)
                self.sessions.evict(principal, token)
                raise AuthExpiredError(
                    f"Session expired or was rejected (HTTP {status}); retry to sign on again",
                    **context,
                )
            logger.warning("Bearer credential rejected with HTTP %s on %s", status, endpoint)
            error_code = payload.get("errorCode") if isinstance(payload, dict) else None
            raise AuthenticationFailedError(
                f"Unauthorized (HTTP {status}) - check your {protocol.value} credentials",
                error_code=error_code,
                **context,
            )
        if status == 404:
            raise NotFoundError(f"Not found: {endpoint}", **context)

        retry_after = None
        if status == 429:
            header = resp.headers.get("Retry-After")
            if header and header.isdigit():
                retry_after = int(header)
            message = "Rate limited - too many requests, try again later"
        else:
            message = f"HTTP {status}: {resp.text[:200]}"
        raise ApiError(message, retry_after=retry_after, **context)

    @staticmethod
    def _decode(resp: httpx.Response, protocol: AuthMethod, endpoint: str) -> Any:
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ProtocolError(
                f"Expected JSON from {endpoint}, got: {resp.text[:200]}",
                status_code=resp.status_code,
                endpoint=endpoint,
                protocol=protocol.value,
            ) from e


def _payload_of(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text[:200]
