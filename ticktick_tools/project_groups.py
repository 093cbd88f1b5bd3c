"""Project groups (folders). Session surface only."""
from . import endpoints
from .batch import (
    PROJECT_GROUP,
    FieldDelta,
    MutationEnvelope,
    build_create,
    build_delete,
    build_update,
    generate_id,
)
from .config import AuthMethod
from .errors import ValidationError
from .params import require_value
from .router import ProtocolRouter
from .sync import fetch_state, require_entity, submit_batch


async def list_project_groups(router: ProtocolRouter, auth: AuthMethod) -> dict:
    groups = (await fetch_state(router, auth)).get("projectGroups") or []
    return {"success": True, "projectGroups": groups, "count": len(groups)}


async def create_project_group(
    router: ProtocolRouter, auth: AuthMethod, name: str, sort_order: int | None = None
) -> dict:
    if not name or not name.strip():
        raise ValidationError("Project group name is required", "name")
    delta = FieldDelta(values={"name": name, "sortOrder": sort_order or 0, "listType": "group"})
    body = build_create(delta, PROJECT_GROUP, entity_id=generate_id())
    response = await submit_batch(
        router, auth, endpoints.PROJECT_GROUPS_BATCH, MutationEnvelope(add=[body])
    )
    return {"success": True, "projectGroup": body, "id2etag": response.get("id2etag", {})}


async def update_project_group(
    router: ProtocolRouter, auth: AuthMethod, group_id, fields: dict | None = None
) -> dict:
    group_id = require_value(group_id, "project_group_id")
    state = await fetch_state(router, auth)
    snapshot = require_entity(state.get("projectGroups") or [], group_id, "project group")
    body = build_update(snapshot, FieldDelta.from_fields(fields), group_id, schema=PROJECT_GROUP)
    response = await submit_batch(
        router, auth, endpoints.PROJECT_GROUPS_BATCH, MutationEnvelope(update=[body])
    )
    return {"success": True, "projectGroup": body, "id2etag": response.get("id2etag", {})}


async def delete_project_group(router: ProtocolRouter, auth: AuthMethod, group_id) -> dict:
    group_id = require_value(group_id, "project_group_id")
    await submit_batch(
        router, auth, endpoints.PROJECT_GROUPS_BATCH,
        MutationEnvelope(delete=[build_delete(group_id)]),
    )
    return {"success": True, "deletedProjectGroupId": group_id}
