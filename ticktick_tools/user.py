"""Account information. Session surface only."""
from . import endpoints
from .config import AuthMethod
from .router import ProtocolRouter


async def get_profile(router: ProtocolRouter, auth: AuthMethod) -> dict:
    profile = await router.call(auth, "GET", endpoints.USER_PROFILE)
    return {"success": True, "profile": profile}


async def get_status(router: ProtocolRouter, auth: AuthMethod) -> dict:
    status = await router.call(auth, "GET", endpoints.USER_STATUS)
    return {"success": True, "status": status}


async def get_preferences(router: ProtocolRouter, auth: AuthMethod, include_web: bool = True) -> dict:
    preferences = await router.call(
        auth,
        "GET",
        endpoints.USER_PREFERENCES_SETTINGS,
        query={"includeWeb": str(include_web).lower()},
    )
    return {"success": True, "preferences": preferences}
