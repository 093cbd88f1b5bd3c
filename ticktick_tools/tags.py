"""Tag operations. Session surface only.

Tags are keyed by their lowercase name; label is the display form.
"""
from . import endpoints
from .batch import TAG, FieldDelta, MutationEnvelope, build_create, build_update
from .config import AuthMethod
from .errors import ValidationError
from .params import require_value
from .router import ProtocolRouter
from .sync import fetch_state, require_entity, submit_batch


async def list_tags(router: ProtocolRouter, auth: AuthMethod) -> dict:
    tags = (await fetch_state(router, auth)).get("tags") or []
    return {"success": True, "tags": tags, "count": len(tags)}


async def create_tag(
    router: ProtocolRouter, auth: AuthMethod, name: str, fields: dict | None = None
) -> dict:
    if not name or not name.strip():
        raise ValidationError("Tag name is required", "name")
    name = name.strip()
    delta = FieldDelta(values={**(fields or {}), "label": name})
    body = build_create(delta, TAG, entity_id=name.lower())
    response = await submit_batch(router, auth, endpoints.TAGS_BATCH, MutationEnvelope(add=[body]))
    return {"success": True, "tag": body, "id2etag": response.get("id2etag", {})}


async def update_tag(
    router: ProtocolRouter, auth: AuthMethod, tag_name, fields: dict | None = None
) -> dict:
    tag_name = require_value(tag_name, "tag_name")
    fields = dict(fields or {})
    if fields.get("sortType") == "NONE":
        fields.pop("sortType")

    state = await fetch_state(router, auth)
    snapshot = require_entity(state.get("tags") or [], tag_name, "tag", key="name")
    body = build_update(snapshot, FieldDelta.from_fields(fields), tag_name, schema=TAG)
    body["rawName"] = tag_name
    if not body.get("label"):
        raise ValidationError("Tag label is required for update", "label")

    response = await submit_batch(router, auth, endpoints.TAGS_BATCH, MutationEnvelope(update=[body]))
    return {"success": True, "tag": body, "id2etag": response.get("id2etag", {})}


async def rename_tag(router: ProtocolRouter, auth: AuthMethod, old_name, new_name: str) -> dict:
    old_name = require_value(old_name, "old_name")
    new_name = require_value(new_name, "new_name")
    response = await router.call(
        auth, "PUT", endpoints.TAG_RENAME, {"name": old_name, "newName": new_name}
    )
    return {"success": True, "oldName": old_name, "newName": new_name, **_as_dict(response)}


async def merge_tags(router: ProtocolRouter, auth: AuthMethod, source_tag, target_tag) -> dict:
    """Fold source_tag into target_tag. source_tag stops existing."""
    source_tag = require_value(source_tag, "source_tag")
    target_tag = require_value(target_tag, "target_tag")
    response = await router.call(
        auth, "PUT", endpoints.TAG_MERGE, {"name": source_tag, "newName": target_tag}
    )
    return {"success": True, "sourceTag": source_tag, "targetTag": target_tag, **_as_dict(response)}


async def delete_tag(router: ProtocolRouter, auth: AuthMethod, tag_name) -> dict:
    tag_name = require_value(tag_name, "tag_name")
    response = await router.call(auth, "DELETE", endpoints.TAG, query={"name": tag_name})
    return {"success": True, "deletedTag": tag_name, **_as_dict(response)}


def _as_dict(response) -> dict:
    return response if isinstance(response, dict) else {}
