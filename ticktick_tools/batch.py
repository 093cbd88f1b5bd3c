"""Batch-mutation builder for the session surface's /batch endpoints.

The batch endpoints take {"add": [...], "update": [...], "delete": [...]}
and replace updated entities wholesale, so an update must carry every
field of the entity. build_update() starts from the last-known server
snapshot and layers the caller's delta on top:

1. clear-list fields are reset to their empty value
2. explicit values are applied, skipping None and ""
3. tags: (current - removed) + added, deduplicated, order preserved
4. reminders: comma-separated text, trimmed, blanks dropped
5. checklist items: rebuilt per item, contentless items dropped
6. id and parent container are stamped on the result

A missing value never overwrites existing state. Only the clear list
can empty a field.
"""
import secrets
from dataclasses import dataclass, field
from typing import Any, Iterable

from .dates import format_ticktick_date
from .params import to_values


def generate_id() -> str:
    """24 hex chars, the id shape the web client generates for new entities."""
    return secrets.token_hex(12)


def is_present(value: Any) -> bool:
    return value is not None and value != ""


@dataclass(frozen=True)
class EntitySchema:
    kind: str
    id_key: str = "id"
    parent_key: str | None = None
    parent_default: str | None = None
    date_fields: frozenset = frozenset()
    list_fields: frozenset = frozenset()
    tag_field: str | None = None
    reminder_field: str | None = None
    items_field: str | None = None
    # Fields whose "empty" value is not the type default
    clear_values: dict = field(default_factory=dict)

    def empty_value(self, name: str) -> Any:
        if name in self.clear_values:
            return self.clear_values[name]
        if name in self.date_fields:
            return None
        if name in self.list_fields:
            return []
        return ""


TASK = EntitySchema(
    kind="task",
    parent_key="projectId",
    parent_default="inbox",
    date_fields=frozenset({"dueDate", "startDate", "completedTime"}),
    list_fields=frozenset({"tags", "reminders", "items"}),
    tag_field="tags",
    reminder_field="reminders",
    items_field="items",
)

HABIT = EntitySchema(
    kind="habit",
    list_fields=frozenset({"reminders", "exDates"}),
    reminder_field="reminders",
)

PROJECT = EntitySchema(
    kind="project",
    # A project leaves its folder when groupId is the string "null"
    clear_values={"groupId": "null"},
)

PROJECT_GROUP = EntitySchema(kind="project_group")

TAG = EntitySchema(kind="tag", id_key="name")


@dataclass
class FieldDelta:
    """A caller's partial change to one entity."""

    values: dict = field(default_factory=dict)
    clear: list = field(default_factory=list)
    add_tags: list = field(default_factory=list)
    remove_tags: list = field(default_factory=list)
    reminders: Any = None
    items: list | None = None

    @classmethod
    def from_fields(cls, fields: dict | None) -> "FieldDelta":
        """Split a flat update-fields dict into its directive parts.

        Recognized directive keys: clearFields, tags, removeTags, reminders,
        items. Everything else is a plain value.
        """
        values = dict(fields or {})
        clear = values.pop("clearFields", None) or []
        if isinstance(clear, str):
            clear = [c.strip() for c in clear.split(",") if c.strip()]
        return cls(
            values=values,
            clear=list(clear),
            add_tags=to_values(values.pop("tags", None)),
            remove_tags=to_values(values.pop("removeTags", None)),
            reminders=values.pop("reminders", None),
            items=values.pop("items", None),
        )


@dataclass
class MutationEnvelope:
    add: list = field(default_factory=list)
    update: list = field(default_factory=list)
    delete: list = field(default_factory=list)

    def to_payload(self, attachments: bool = False) -> dict:
        payload = {"add": self.add, "update": self.update, "delete": self.delete}
        if attachments:
            # /batch/task expects the attachment lists even when unused
            payload.update(addAttachments=[], updateAttachments=[], deleteAttachments=[])
        return payload


def parse_reminders(value: Any) -> list[str]:
    """'TRIGGER:PT0S, ,TRIGGER:P0DT9H0M0S' -> ['TRIGGER:PT0S', 'TRIGGER:P0DT9H0M0S']"""
    if not value:
        return []
    parts = value.split(",") if isinstance(value, str) else value
    return [str(p).strip() for p in parts if p is not None and str(p).strip()]


def merge_tags(current: Iterable[str], to_add: Iterable[str], to_remove: Iterable[str]) -> list[str]:
    """(current - to_remove) + to_add, deduplicated.

    Retained tags keep their original order, followed by new tags in the
    order given.
    """
    removed = {t for t in to_remove if t}
    result = []
    for tag in current:
        if tag and tag not in removed and tag not in result:
            result.append(tag)
    for tag in to_add:
        if tag and tag not in result:
            result.append(tag)
    return result


def build_checklist_item(raw: dict) -> dict:
    """Rebuild one checklist item, keeping only fields with usable values."""
    item = {}
    if raw.get("id"):
        item["id"] = raw["id"]
    if is_present(raw.get("title")):
        item["title"] = raw["title"]
    if raw.get("status") is not None:
        item["status"] = raw["status"]
    if raw.get("isAllDay") is not None:
        item["isAllDay"] = raw["isAllDay"]
    if is_present(raw.get("sortOrder")):
        item["sortOrder"] = raw["sortOrder"]
    if raw.get("startDate"):
        item["startDate"] = format_ticktick_date(raw["startDate"], "items.startDate")
    if raw.get("completedTime"):
        item["completedTime"] = format_ticktick_date(raw["completedTime"], "items.completedTime")
    if raw.get("timeZone"):
        item["timeZone"] = raw["timeZone"]
    return item


def build_checklist(raw_items: list | None) -> list[dict]:
    items = [build_checklist_item(raw) for raw in raw_items or []]
    return [i for i in items if "title" in i or "status" in i]


def _apply_values(body: dict, values: dict, schema: EntitySchema):
    for name, value in values.items():
        if not is_present(value):
            continue
        if name in schema.date_fields:
            value = format_ticktick_date(value, name)
        body[name] = value


def build_update(
    snapshot: dict,
    delta: FieldDelta,
    entity_id: str,
    parent_id: str | None = None,
    schema: EntitySchema = TASK,
) -> dict:
    """Merge delta onto snapshot, producing a complete replacement entity."""
    body = dict(snapshot)
    clear = set(delta.clear)

    for name in clear:
        if name == schema.tag_field:
            continue
        body[name] = schema.empty_value(name)

    _apply_values(body, delta.values, schema)

    if schema.tag_field:
        tags_cleared = schema.tag_field in clear
        if tags_cleared or delta.add_tags or delta.remove_tags:
            current = [] if tags_cleared else snapshot.get(schema.tag_field) or []
            body[schema.tag_field] = merge_tags(current, delta.add_tags, delta.remove_tags)

    if schema.reminder_field:
        reminders = parse_reminders(delta.reminders)
        if reminders:
            body[schema.reminder_field] = reminders

    if schema.items_field and delta.items:
        items = build_checklist(delta.items)
        if items:
            body[schema.items_field] = items

    body[schema.id_key] = entity_id
    if schema.parent_key:
        body[schema.parent_key] = (
            parent_id or snapshot.get(schema.parent_key) or schema.parent_default
        )
    return body


def build_create(
    delta: FieldDelta,
    schema: EntitySchema = TASK,
    entity_id: str | None = None,
    parent_id: str | None = None,
) -> dict:
    """Build a new entity from the present fields of delta."""
    body = {}
    _apply_values(body, delta.values, schema)

    if schema.tag_field and delta.add_tags:
        body[schema.tag_field] = merge_tags([], delta.add_tags, [])
    if schema.reminder_field:
        reminders = parse_reminders(delta.reminders)
        if reminders:
            body[schema.reminder_field] = reminders
    if schema.items_field and delta.items:
        items = build_checklist(delta.items)
        if items:
            body[schema.items_field] = items

    if entity_id:
        body[schema.id_key] = entity_id
    if schema.parent_key and parent_id:
        body[schema.parent_key] = parent_id
    return body


def build_delete(entity_id: str) -> str:
    return entity_id


def build_task_delete(task_id: str, project_id: str) -> dict:
    """Task deletions are addressed by (projectId, taskId)."""
    return {"projectId": project_id, "taskId": task_id}
