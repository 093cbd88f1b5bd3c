"""TickTick tools configuration loader.

Reads ~/.ticktick/config.json:

    {
      "auth_method": "session",
      "credentials": {
        "token": {"token": "..."},
        "oauth2": {"access_token": "..."},
        "session": {"username": "me@example.com", "password": "..."}
      },
      "timeout": 30
    }
"""
import json
from enum import Enum
from pathlib import Path

from .errors import ConfigError

DEFAULT_OFFICIAL_BASE_URL = "https://api.ticktick.com"
DEFAULT_SESSION_BASE_URL = "https://api.ticktick.com/api/v2"
DEFAULT_WEB_ORIGIN = "https://ticktick.com"
DEFAULT_TIMEOUT = 30.0

_config_cache = None


class AuthMethod(str, Enum):
    TOKEN = "token"
    OAUTH2 = "oauth2"
    SESSION = "session"

    @property
    def is_session(self) -> bool:
        return self is AuthMethod.SESSION


def get_config_path() -> Path:
    return Path.home() / ".ticktick" / "config.json"


def get_config() -> dict:
    """Load config from ~/.ticktick/config.json with caching."""
    global _config_cache
    if _config_cache is None:
        config_path = get_config_path()
        if config_path.exists():
            with open(config_path) as f:
                _config_cache = json.load(f)
        else:
            _config_cache = {}
    return _config_cache


def clear_config_cache():
    """Invalidate the cached config, forcing a re-read on next access."""
    global _config_cache
    _config_cache = None


def resolve_auth_method(value: str | AuthMethod | None = None) -> AuthMethod:
    """Resolve an explicit per-call auth method, else the configured default."""
    if isinstance(value, AuthMethod):
        return value
    raw = value or get_config().get("auth_method") or AuthMethod.TOKEN.value
    try:
        return AuthMethod(raw)
    except ValueError:
        valid = ", ".join(m.value for m in AuthMethod)
        raise ConfigError(f"Unknown authentication method '{raw}'. Valid: {valid}")


def get_credentials(name: AuthMethod | str) -> dict:
    """Return the stored credential object for an auth method.

    Raises:
        ConfigError: if the credential is missing or incomplete.
    """
    name = AuthMethod(name).value
    credentials = get_config().get("credentials", {}).get(name)
    if not credentials:
        raise ConfigError(
            f"No '{name}' credentials configured. "
            f"Add credentials.{name} to {get_config_path()}"
        )

    required = {
        "token": ("token",),
        "oauth2": ("access_token",),
        "session": ("username", "password"),
    }[name]
    missing = [key for key in required if not credentials.get(key)]
    if missing:
        raise ConfigError(
            f"Incomplete '{name}' credentials: missing {', '.join(missing)}"
        )
    return credentials


def get_connection_config() -> dict:
    """Base URLs and timeout with defaults applied."""
    config = get_config()
    return {
        "official_base_url": config.get("official_base_url", DEFAULT_OFFICIAL_BASE_URL),
        "session_base_url": config.get("session_base_url", DEFAULT_SESSION_BASE_URL),
        "web_origin": config.get("web_origin", DEFAULT_WEB_ORIGIN),
        "timeout": float(config.get("timeout", DEFAULT_TIMEOUT)),
    }
