"""Project operations on both surfaces."""
from . import endpoints
from .batch import (
    PROJECT,
    FieldDelta,
    MutationEnvelope,
    build_create,
    build_delete,
    build_update,
    generate_id,
    is_present,
)
from .config import AuthMethod
from .errors import ValidationError
from .params import require_value, to_value
from .router import ProtocolRouter
from .sync import fetch_state, find_entity, require_entity, state_tasks, submit_batch


def _state_projects(state: dict) -> list[dict]:
    return state.get("projectProfiles") or []


def _normalize_group(fields: dict | None) -> dict:
    """groupId may arrive as a locator. "null" or "NONE" means ungroup."""
    fields = dict(fields or {})
    if "groupId" in fields:
        group_id = to_value(fields.pop("groupId"))
        if group_id in ("null", "NONE"):
            fields.setdefault("clearFields", [])
            fields["clearFields"] = [*fields["clearFields"], "groupId"]
        elif group_id:
            fields["groupId"] = group_id
    return fields


async def list_projects(router: ProtocolRouter, auth: AuthMethod) -> dict:
    if auth.is_session:
        projects = _state_projects(await fetch_state(router, auth))
    else:
        projects = await router.call(auth, "GET", endpoints.OPEN_V1_PROJECT) or []
    return {"success": True, "projects": projects, "count": len(projects)}


async def get_project(router: ProtocolRouter, auth: AuthMethod, project_id) -> dict:
    project_id = require_value(project_id, "project_id")
    if project_id == "inbox":
        raise ValidationError(
            "The inbox is not a regular project. Use get_project_data to read inbox tasks.",
            "project_id",
        )
    if auth.is_session:
        state = await fetch_state(router, auth)
        project = require_entity(_state_projects(state), project_id, "project")
    else:
        project = await router.call(auth, "GET", endpoints.open_project(project_id))
    return {"success": True, "project": project}


async def get_project_data(router: ProtocolRouter, auth: AuthMethod, project_id=None) -> dict:
    """A project together with its open tasks."""
    project_id = to_value(project_id) or "inbox"
    if not auth.is_session:
        data = await router.call(auth, "GET", endpoints.open_project_data(project_id)) or {}
        return {"success": True, **data}

    state = await fetch_state(router, auth)
    if project_id == "inbox":
        project_id = state.get("inboxId") or project_id
    project = find_entity(_state_projects(state), project_id) or {"id": project_id}
    tasks = [t for t in state_tasks(state) if str(t.get("projectId")) == project_id]
    # The sync payload carries no kanban columns
    return {"success": True, "project": project, "tasks": tasks, "columns": []}


async def create_project(
    router: ProtocolRouter, auth: AuthMethod, name: str, fields: dict | None = None
) -> dict:
    if not name or not name.strip():
        raise ValidationError("Project name is required", "name")
    delta = FieldDelta.from_fields({**_normalize_group(fields), "name": name})

    if auth.is_session:
        body = build_create(delta, PROJECT, entity_id=generate_id())
        response = await submit_batch(
            router, auth, endpoints.PROJECTS_BATCH, MutationEnvelope(add=[body])
        )
        return {"success": True, "project": body, "id2etag": response.get("id2etag", {})}

    project = await router.call(auth, "POST", endpoints.OPEN_V1_PROJECT, build_create(delta, PROJECT))
    return {"success": True, "project": project}


async def update_project(
    router: ProtocolRouter, auth: AuthMethod, project_id, fields: dict | None = None
) -> dict:
    project_id = require_value(project_id, "project_id")
    delta = FieldDelta.from_fields(_normalize_group(fields))

    if auth.is_session:
        state = await fetch_state(router, auth)
        snapshot = require_entity(_state_projects(state), project_id, "project")
        body = build_update(snapshot, delta, project_id, schema=PROJECT)
        response = await submit_batch(
            router, auth, endpoints.PROJECTS_BATCH, MutationEnvelope(update=[body])
        )
        return {"success": True, "project": body, "id2etag": response.get("id2etag", {})}

    # The official API merges partial bodies server-side
    body = {k: v for k, v in delta.values.items() if is_present(v)}
    for name in delta.clear:
        body[name] = PROJECT.empty_value(name)
    project = await router.call(auth, "POST", endpoints.open_project(project_id), body)
    return {"success": True, "project": project}


async def delete_project(router: ProtocolRouter, auth: AuthMethod, project_id) -> dict:
    project_id = require_value(project_id, "project_id")
    if auth.is_session:
        await submit_batch(
            router, auth, endpoints.PROJECTS_BATCH,
            MutationEnvelope(delete=[build_delete(project_id)]),
        )
    else:
        await router.call(auth, "DELETE", endpoints.open_project(project_id))
    return {"success": True, "operation": "delete", "projectId": project_id}
