"""Focus (pomodoro) statistics. Session surface only."""
from . import endpoints
from .config import AuthMethod
from .dates import format_date_yyyymmdd
from .router import ProtocolRouter


def _range(start_date: str, end_date: str) -> tuple[str, str]:
    return (
        format_date_yyyymmdd(start_date, "start_date"),
        format_date_yyyymmdd(end_date, "end_date"),
    )


async def get_heatmap(router: ProtocolRouter, auth: AuthMethod, start_date: str, end_date: str) -> dict:
    """Daily focus duration between two dates, inclusive."""
    start, end = _range(start_date, end_date)
    days = await router.call(auth, "GET", endpoints.focus_heatmap(start, end))
    return {"success": True, "from": start, "to": end, "heatmap": days or []}


async def get_distribution(router: ProtocolRouter, auth: AuthMethod, start_date: str, end_date: str) -> dict:
    """Focus time split by project and tag between two dates."""
    start, end = _range(start_date, end_date)
    dist = await router.call(auth, "GET", endpoints.focus_distribution(start, end))
    return {"success": True, "from": start, "to": end, "distribution": dist or {}}
