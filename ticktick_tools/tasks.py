"""Task operations on both surfaces.

Session updates always re-fetch the task from the sync endpoint and
submit a full replacement through /batch/task. Two concurrent updates
to the same task race, and the last one to land wins.
"""
import logging

from . import endpoints
from .batch import (
    TASK,
    FieldDelta,
    MutationEnvelope,
    build_create,
    build_task_delete,
    build_update,
    generate_id,
)
from .config import AuthMethod
from .dates import format_completed_range
from .errors import NotFoundError, ValidationError
from .params import require_value, to_value
from .router import ProtocolRouter
from .sync import fetch_state, require_entity, state_tasks, submit_batch

logger = logging.getLogger("ticktick-tools.tasks")

COMPLETED = 2


async def _session_snapshot(router: ProtocolRouter, auth: AuthMethod, task_id: str) -> dict:
    state = await fetch_state(router, auth)
    return require_entity(state_tasks(state), task_id, "task")


async def _official_snapshot(
    router: ProtocolRouter, auth: AuthMethod, project_id: str, task_id: str
) -> dict:
    task = await router.call(auth, "GET", endpoints.open_project_task(project_id, task_id))
    if not task:
        raise NotFoundError(f"Task with ID {task_id} not found")
    return task


async def submit_task_update(router: ProtocolRouter, auth: AuthMethod, body: dict) -> dict:
    return await submit_batch(
        router, auth, endpoints.TASKS_BATCH, MutationEnvelope(update=[body]), attachments=True
    )


async def create_task(
    router: ProtocolRouter,
    auth: AuthMethod,
    title: str,
    project_id=None,
    fields: dict | None = None,
) -> dict:
    """Create a task. Without a project it lands in the inbox."""
    if not title or not title.strip():
        raise ValidationError("Task title is required and cannot be empty", "title")
    project_id = to_value(project_id)
    delta = FieldDelta.from_fields({**(fields or {}), "title": title})

    if auth.is_session:
        if not project_id:
            project_id = (await router.get_session()).inbox_id or "inbox"
        body = build_create(delta, TASK, entity_id=generate_id(), parent_id=project_id)
        response = await submit_batch(
            router, auth, endpoints.TASKS_BATCH, MutationEnvelope(add=[body]), attachments=True
        )
        return {"success": True, "task": body, "id2etag": response.get("id2etag", {})}

    body = build_create(delta, TASK, parent_id=project_id or None)
    task = await router.call(auth, "POST", endpoints.OPEN_V1_TASK, body)
    return {"success": True, "task": task}


async def get_task(router: ProtocolRouter, auth: AuthMethod, task_id, project_id=None) -> dict:
    task_id = require_value(task_id, "task_id")
    if auth.is_session:
        task = await _session_snapshot(router, auth, task_id)
    else:
        task = await _official_snapshot(router, auth, to_value(project_id) or "inbox", task_id)
    return {"success": True, "task": task}


async def update_task(
    router: ProtocolRouter,
    auth: AuthMethod,
    task_id,
    project_id=None,
    fields: dict | None = None,
) -> dict:
    """Merge fields onto the task's current server state and submit it."""
    task_id = require_value(task_id, "task_id")
    project_id = to_value(project_id)
    delta = FieldDelta.from_fields(fields)

    if auth.is_session:
        snapshot = await _session_snapshot(router, auth, task_id)
    else:
        snapshot = await _official_snapshot(router, auth, project_id or "inbox", task_id)

    body = build_update(snapshot, delta, task_id, project_id, TASK)

    if auth.is_session:
        response = await submit_task_update(router, auth, body)
        return {"success": True, "task": body, "id2etag": response.get("id2etag", {})}

    task = await router.call(auth, "POST", endpoints.open_task_update(task_id), body)
    return {"success": True, "task": task}


async def complete_task(router: ProtocolRouter, auth: AuthMethod, task_id, project_id=None) -> dict:
    task_id = require_value(task_id, "task_id")
    project_id = to_value(project_id)

    if auth.is_session:
        snapshot = await _session_snapshot(router, auth, task_id)
        body = build_update(snapshot, FieldDelta(values={"status": COMPLETED}), task_id, schema=TASK)
        await submit_task_update(router, auth, body)
        project_id = body["projectId"]
    else:
        await router.call(
            auth, "POST", endpoints.open_task_complete(project_id or "inbox", task_id)
        )
    return {"success": True, "operation": "complete", "taskId": task_id, "projectId": project_id}


async def delete_task(router: ProtocolRouter, auth: AuthMethod, task_id, project_id=None) -> dict:
    task_id = require_value(task_id, "task_id")
    project_id = to_value(project_id)

    if auth.is_session:
        snapshot = await _session_snapshot(router, auth, task_id)
        project_id = snapshot.get("projectId") or project_id or "inbox"
        envelope = MutationEnvelope(delete=[build_task_delete(task_id, project_id)])
        await submit_batch(router, auth, endpoints.TASKS_BATCH, envelope, attachments=True)
    else:
        await router.call(
            auth, "DELETE", endpoints.open_project_task(project_id or "inbox", task_id)
        )
    return {"success": True, "operation": "delete", "taskId": task_id, "projectId": project_id}


async def move_task(router: ProtocolRouter, auth: AuthMethod, task_id, to_project_id) -> dict:
    """Move a task to another project (session surface)."""
    task_id = require_value(task_id, "task_id")
    to_project_id = require_value(to_project_id, "to_project_id")

    snapshot = await _session_snapshot(router, auth, task_id)
    from_project_id = snapshot.get("projectId")
    logger.debug("Moving task %s from %s to %s", task_id, from_project_id, to_project_id)
    body = build_update(snapshot, FieldDelta(), task_id, to_project_id, TASK)
    response = await submit_task_update(router, auth, body)
    return {
        "success": True,
        "taskId": task_id,
        "fromProjectId": from_project_id,
        "toProjectId": to_project_id,
        "id2etag": response.get("id2etag", {}),
    }


async def set_task_parent(router: ProtocolRouter, auth: AuthMethod, task_id, parent_id=None) -> dict:
    """Make a task a subtask of parent_id, or a top-level task when parent_id is empty."""
    task_id = require_value(task_id, "task_id")
    parent_id = to_value(parent_id)

    snapshot = await _session_snapshot(router, auth, task_id)
    if parent_id:
        delta = FieldDelta(values={"parentId": parent_id})
    else:
        delta = FieldDelta(clear=["parentId"])
    body = build_update(snapshot, delta, task_id, schema=TASK)
    await submit_task_update(router, auth, body)
    return {
        "success": True,
        "taskId": task_id,
        "projectId": body["projectId"],
        "parentId": parent_id or None,
    }


async def list_tasks(router: ProtocolRouter, auth: AuthMethod, project_id=None) -> dict:
    """Open tasks, optionally limited to one project."""
    project_id = to_value(project_id)
    if auth.is_session:
        tasks = state_tasks(await fetch_state(router, auth))
        if project_id:
            tasks = [t for t in tasks if str(t.get("projectId")) == project_id]
    else:
        data = await router.call(auth, "GET", endpoints.open_project_data(project_id or "inbox"))
        tasks = (data or {}).get("tasks") or []
    return {"success": True, "tasks": tasks, "count": len(tasks)}


async def list_completed_tasks(
    router: ProtocolRouter, auth: AuthMethod, start_date: str, end_date: str, limit: int = 100
) -> dict:
    query = {
        "from": format_completed_range(start_date, "start_date"),
        "to": format_completed_range(end_date, "end_date"),
        "limit": limit,
    }
    response = await router.call(auth, "GET", endpoints.PROJECT_ALL_COMPLETED, query=query)
    tasks = response if isinstance(response, list) else []
    return {"success": True, "tasks": tasks, "count": len(tasks)}


async def list_deleted_tasks(router: ProtocolRouter, auth: AuthMethod, limit: int = 100) -> dict:
    query = {"start": 0, "limit": limit}
    response = await router.call(auth, "GET", endpoints.PROJECT_ALL_TRASH_PAGINATION, query=query)
    if isinstance(response, list):
        tasks = response
    else:
        tasks = (response or {}).get("tasks") or []
    return {"success": True, "tasks": tasks, "count": len(tasks)}
