"""Full-state sync and batch submission shared by the resource modules."""
import logging

from . import endpoints
from .batch import MutationEnvelope
from .config import AuthMethod
from .errors import ApiError, NotFoundError, ProtocolError
from .router import ProtocolRouter

logger = logging.getLogger("ticktick-tools.sync")


async def fetch_state(router: ProtocolRouter, auth: AuthMethod) -> dict:
    """GET /batch/check/0, the only read path for several entity kinds."""
    state = await router.call(auth, "GET", endpoints.SYNC)
    if not isinstance(state, dict):
        raise ProtocolError(
            "Sync returned an unexpected payload",
            payload=state,
            endpoint=endpoints.SYNC,
            protocol=AuthMethod(auth).value,
        )
    return state


def state_tasks(state: dict) -> list[dict]:
    return (state.get("syncTaskBean") or {}).get("update") or []


def find_entity(entities: list[dict], entity_id: str, key: str = "id") -> dict | None:
    for entity in entities:
        if str(entity.get(key)) == entity_id:
            return entity
    return None


def require_entity(entities: list[dict], entity_id: str, kind: str, key: str = "id") -> dict:
    entity = find_entity(entities, entity_id, key)
    if entity is None:
        raise NotFoundError(f"{kind.capitalize()} with ID {entity_id} not found")
    return entity


async def submit_batch(
    router: ProtocolRouter,
    auth: AuthMethod,
    endpoint: str,
    envelope: MutationEnvelope,
    attachments: bool = False,
) -> dict:
    """POST an envelope and fail loudly if any entry was rejected."""
    response = await router.call(auth, "POST", endpoint, envelope.to_payload(attachments))
    if not isinstance(response, dict):
        return {}
    rejected = response.get("id2error") or {}
    if rejected:
        logger.warning("Batch %s rejected entries: %s", endpoint, rejected)
        raise ApiError(
            f"Batch mutation rejected: {rejected}",
            payload=response,
            endpoint=endpoint,
            protocol=AuthMethod(auth).value,
        )
    return response


async def sync_all(router: ProtocolRouter, auth: AuthMethod) -> dict:
    """Complete account state: tasks, projects, groups, tags, inbox id."""
    state = await fetch_state(router, auth)
    return {"success": True, "state": state}
