"""Habit operations. Session surface only.

The habits API has no single-habit read, so every mutation re-lists
/habits to get the current entity before replacing it via /habits/batch.
"""
from datetime import datetime, timezone

from . import endpoints
from .batch import (
    HABIT,
    FieldDelta,
    MutationEnvelope,
    build_create,
    build_delete,
    build_update,
    generate_id,
)
from .config import AuthMethod
from .dates import format_date_stamp, format_iso_with_millis
from .errors import ProtocolError, ValidationError
from .params import require_value
from .router import ProtocolRouter
from .sync import require_entity, submit_batch

ACTIVE = 0
ARCHIVED = 2
CHECKIN_COMPLETED = 2

HABIT_DEFAULTS = {
    "type": "Boolean",
    "color": "#97E38B",
    "iconRes": "habit_daily_check_in",
    "goal": 1,
    "step": 0,
    "unit": "Count",
    "repeatRule": "RRULE:FREQ=WEEKLY;BYDAY=SU,MO,TU,WE,TH,FR,SA",
    "targetDays": 0,
    "encouragement": "",
    "recordEnable": False,
    "sortOrder": 0,
}


def _habit_fields(fields: dict | None) -> dict:
    fields = dict(fields or {})
    if "icon" in fields:
        fields["iconRes"] = fields.pop("icon")
    return fields


async def _all_habits(router: ProtocolRouter, auth: AuthMethod) -> list[dict]:
    habits = await router.call(auth, "GET", endpoints.HABITS)
    if habits is None:
        return []
    if not isinstance(habits, list):
        raise ProtocolError(
            "Habit list returned an unexpected payload",
            payload=habits,
            endpoint=endpoints.HABITS,
            protocol=AuthMethod(auth).value,
        )
    return habits


async def _submit(router: ProtocolRouter, auth: AuthMethod, envelope: MutationEnvelope) -> dict:
    return await submit_batch(router, auth, endpoints.HABITS_BATCH, envelope)


async def list_habits(router: ProtocolRouter, auth: AuthMethod, include_archived: bool = False) -> dict:
    habits = await _all_habits(router, auth)
    if not include_archived:
        habits = [h for h in habits if h.get("status") != ARCHIVED]
    return {"success": True, "habits": habits, "count": len(habits)}


async def get_habit(router: ProtocolRouter, auth: AuthMethod, habit_id) -> dict:
    habit_id = require_value(habit_id, "habit_id")
    habit = require_entity(await _all_habits(router, auth), habit_id, "habit")
    return {"success": True, "habit": habit}


async def create_habit(
    router: ProtocolRouter, auth: AuthMethod, name: str, fields: dict | None = None
) -> dict:
    if not name or not name.strip():
        raise ValidationError("Habit name is required", "name")
    delta = FieldDelta.from_fields({**HABIT_DEFAULTS, **_habit_fields(fields), "name": name})
    body = build_create(delta, HABIT, entity_id=generate_id())
    # Empty encouragement is a real default, not an absent value
    body.setdefault("encouragement", "")
    response = await _submit(router, auth, MutationEnvelope(add=[body]))
    return {"success": True, "habit": body, "id2etag": response.get("id2etag", {})}


async def update_habit(
    router: ProtocolRouter, auth: AuthMethod, habit_id, fields: dict | None = None
) -> dict:
    habit_id = require_value(habit_id, "habit_id")
    snapshot = require_entity(await _all_habits(router, auth), habit_id, "habit")
    delta = FieldDelta.from_fields(_habit_fields(fields))
    body = build_update(snapshot, delta, habit_id, schema=HABIT)
    response = await _submit(router, auth, MutationEnvelope(update=[body]))
    return {"success": True, "habit": body, "id2etag": response.get("id2etag", {})}


async def _set_status(router: ProtocolRouter, auth: AuthMethod, habit_id, status: int) -> dict:
    habit_id = require_value(habit_id, "habit_id")
    snapshot = require_entity(await _all_habits(router, auth), habit_id, "habit")
    body = build_update(snapshot, FieldDelta(values={"status": status}), habit_id, schema=HABIT)
    response = await _submit(router, auth, MutationEnvelope(update=[body]))
    return {"success": True, "habit": body, "id2etag": response.get("id2etag", {})}


async def archive_habit(router: ProtocolRouter, auth: AuthMethod, habit_id) -> dict:
    return await _set_status(router, auth, habit_id, ARCHIVED)


async def unarchive_habit(router: ProtocolRouter, auth: AuthMethod, habit_id) -> dict:
    return await _set_status(router, auth, habit_id, ACTIVE)


async def delete_habit(router: ProtocolRouter, auth: AuthMethod, habit_id) -> dict:
    habit_id = require_value(habit_id, "habit_id")
    await _submit(router, auth, MutationEnvelope(delete=[build_delete(habit_id)]))
    return {"success": True, "deletedHabitId": habit_id}


async def checkin_habit(
    router: ProtocolRouter,
    auth: AuthMethod,
    habit_id,
    value: float = 1,
    checkin_date: str | None = None,
    now: datetime | None = None,
) -> dict:
    """Record a completed check-in for a habit on checkin_date (default today)."""
    habit_id = require_value(habit_id, "habit_id")
    habit = require_entity(await _all_habits(router, auth), habit_id, "habit")

    now = now or datetime.now(timezone.utc)
    if checkin_date:
        try:
            day = datetime.fromisoformat(checkin_date[:10]).date()
        except ValueError:
            raise ValidationError(f"Invalid checkin_date '{checkin_date}'", "checkin_date")
    else:
        day = now.astimezone().date()

    checkin = {
        "id": generate_id(),
        "habitId": habit_id,
        "checkinStamp": format_date_stamp(day),
        "checkinTime": format_iso_with_millis(now),
        "opTime": format_iso_with_millis(now),
        "value": value,
        "goal": habit.get("goal", HABIT_DEFAULTS["goal"]),
        "status": CHECKIN_COMPLETED,
    }
    response = await submit_batch(
        router, auth, endpoints.HABIT_CHECKINS_BATCH, MutationEnvelope(add=[checkin])
    )
    return {"success": True, "checkin": checkin, "id2etag": response.get("id2etag", {})}
