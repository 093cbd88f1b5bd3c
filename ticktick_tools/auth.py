"""Username/password sign-on for the TickTick session surface.

The sign-on endpoint only accepts JSON formatted the way Python's
json.dumps() formats it by default: a space after every ':' and ','.
Compact JSON is rejected with "username_password_not_match" even for
correct credentials, and the X-Device header has the same requirement.
to_spaced_json() is the single place that formatting lives.
"""
import json
import logging

import httpx

from . import endpoints
from .errors import (
    AuthenticationFailedError,
    ProtocolError,
    TransportError,
    TwoFactorRequiredError,
)
from .session import Session

logger = logging.getLogger("ticktick-tools.auth")

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:146.0) "
    "Gecko/20100101 Firefox/146.0"
)
DEVICE_VERSION = 6440
SESSION_COOKIE = "t"
EPOCH_EXPIRY = "Expires=Thu, 01 Jan 1970"


def to_spaced_json(obj) -> str:
    """Serialize with ', ' and ': ' separators, as the vendor expects."""
    return json.dumps(obj, separators=(", ", ": "))


def build_device_header(device_id: str) -> str:
    return to_spaced_json({"platform": "web", "version": DEVICE_VERSION, "id": device_id})


def extract_cookies(set_cookie_headers: list[str]) -> dict[str, str]:
    """Parse name=value pairs from Set-Cookie headers, skipping deletions."""
    cookies = {}
    for header in set_cookie_headers:
        pair = header.split(";", 1)[0]
        if "=" not in pair:
            continue
        name, value = pair.split("=", 1)
        name, value = name.strip(), value.strip()
        if not name or not value or value == '""' or EPOCH_EXPIRY in header:
            continue
        cookies[name] = value
    return cookies


class Authenticator:
    """Performs the sign-on handshake and returns an unstored Session."""

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def authenticate(self, username: str, password: str, device_id: str) -> Session:
        url = f"{self._base_url}{endpoints.SIGNON}"
        headers = {
            # Plain identity encoding matches what the web client negotiates
            "Accept-Encoding": "identity",
            "User-Agent": USER_AGENT,
            "Content-Type": "application/json",
            "X-Device": build_device_header(device_id),
        }
        body = to_spaced_json({"username": username, "password": password})

        logger.info("Signing on to TickTick as %s (device %s)", username, device_id)
        try:
            resp = await self._client.post(
                url,
                params={"wc": "true", "remember": "true"},
                headers=headers,
                content=body.encode("utf-8"),
            )
        except httpx.TimeoutException as e:
            raise TransportError(
                "Sign-on request timed out", endpoint=endpoints.SIGNON, protocol="session"
            ) from e
        except httpx.RequestError as e:
            raise TransportError(
                f"Sign-on request failed: {e}", endpoint=endpoints.SIGNON, protocol="session"
            ) from e

        data = self._parse_body(resp)

        if data.get("authId") and not data.get("token"):
            logger.warning("Sign-on for %s requires two-factor authentication", username)
            raise TwoFactorRequiredError(
                "Two-factor authentication is required but not supported. "
                "Disable 2FA or use the token authentication method.",
                status_code=resp.status_code,
                endpoint=endpoints.SIGNON,
                protocol="session",
            )

        error_code = data.get("errorCode")
        if resp.status_code >= 400 or error_code:
            message = data.get("errorMessage") or "Please check your credentials."
            logger.warning("Sign-on for %s rejected: %s", username, error_code or resp.status_code)
            raise AuthenticationFailedError(
                f"TickTick sign-on failed: {message}",
                error_code=error_code,
                status_code=resp.status_code,
                payload=data,
                endpoint=endpoints.SIGNON,
                protocol="session",
            )

        token = data.get("token")
        if not token:
            cookies = extract_cookies(resp.headers.get_list("set-cookie"))
            token = cookies.get(SESSION_COOKIE)
        if not token:
            raise ProtocolError(
                "Sign-on succeeded but no session token was found in the "
                "response body or cookies",
                status_code=resp.status_code,
                payload=data,
                endpoint=endpoints.SIGNON,
                protocol="session",
            )

        logger.info("Signed on to TickTick as %s", username)
        return Session(
            token=token,
            device_id=device_id,
            inbox_id=str(data.get("inboxId") or ""),
            user_id=str(data.get("userId") or ""),
        )

    @staticmethod
    def _parse_body(resp: httpx.Response) -> dict:
        if not resp.content:
            return {}
        try:
            data = resp.json()
        except ValueError as e:
            raise ProtocolError(
                f"Sign-on returned non-JSON body (HTTP {resp.status_code})",
                status_code=resp.status_code,
                payload=resp.text[:200],
                endpoint=endpoints.SIGNON,
                protocol="session",
            ) from e
        if not isinstance(data, dict):
            raise ProtocolError(
                "Sign-on returned an unexpected JSON shape",
                status_code=resp.status_code,
                payload=data,
                endpoint=endpoints.SIGNON,
                protocol="session",
            )
        return data
