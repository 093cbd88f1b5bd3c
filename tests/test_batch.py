"""Tests for the batch-mutation builder."""
import re

import pytest

from ticktick_tools.batch import (
    HABIT,
    PROJECT,
    TAG,
    TASK,
    FieldDelta,
    MutationEnvelope,
    build_checklist,
    build_create,
    build_delete,
    build_task_delete,
    build_update,
    generate_id,
    merge_tags,
    parse_reminders,
)
from ticktick_tools.errors import ValidationError


@pytest.fixture
def snapshot():
    return {
        "id": "task1",
        "projectId": "proj1",
        "title": "Write report",
        "content": "Quarterly numbers",
        "priority": 3,
        "dueDate": "2024-03-20T09:00:00+0000",
        "tags": ["work", "urgent"],
        "reminders": ["TRIGGER:PT0S"],
        "items": [{"id": "item1", "title": "Gather data", "status": 0}],
        "etag": "abc123xy",
    }


class TestBuildUpdate:
    def test_omitted_fields_are_preserved(self, snapshot):
        body = build_update(snapshot, FieldDelta(values={"priority": 5}), "task1")

        assert body["priority"] == 5
        for key in ("title", "content", "dueDate", "tags", "reminders", "items", "etag"):
            assert body[key] == snapshot[key]

    def test_none_and_empty_string_never_overwrite(self, snapshot):
        delta = FieldDelta(values={"content": "", "dueDate": None, "title": None})
        body = build_update(snapshot, delta, "task1")

        assert body["content"] == "Quarterly numbers"
        assert body["dueDate"] == snapshot["dueDate"]
        assert body["title"] == "Write report"

    def test_explicit_clear(self, snapshot):
        delta = FieldDelta(clear=["content", "dueDate", "reminders", "items"])
        body = build_update(snapshot, delta, "task1")

        assert body["content"] == ""
        assert body["dueDate"] is None
        assert body["reminders"] == []
        assert body["items"] == []
        assert body["title"] == "Write report"

    def test_value_wins_over_clear_of_same_field(self, snapshot):
        delta = FieldDelta(values={"content": "New"}, clear=["content"])
        assert build_update(snapshot, delta, "task1")["content"] == "New"

    def test_does_not_mutate_snapshot(self, snapshot):
        original = dict(snapshot)
        build_update(snapshot, FieldDelta(values={"title": "x"}, clear=["tags"]), "task1")
        assert snapshot == original

    def test_tag_algebra(self, snapshot):
        delta = FieldDelta(add_tags=["important", "work"], remove_tags=["urgent"])
        body = build_update(snapshot, delta, "task1")
        assert body["tags"] == ["work", "important"]

    def test_clear_tags_then_add(self, snapshot):
        delta = FieldDelta(clear=["tags"], add_tags=["fresh"])
        assert build_update(snapshot, delta, "task1")["tags"] == ["fresh"]

    def test_clear_tags_alone(self, snapshot):
        assert build_update(snapshot, FieldDelta(clear=["tags"]), "task1")["tags"] == []

    def test_reminders_replace_when_given(self, snapshot):
        delta = FieldDelta(reminders="TRIGGER:P0DT9H0M0S, ,TRIGGER:-PT30M")
        body = build_update(snapshot, delta, "task1")
        assert body["reminders"] == ["TRIGGER:P0DT9H0M0S", "TRIGGER:-PT30M"]

    def test_blank_reminders_preserve_existing(self, snapshot):
        body = build_update(snapshot, FieldDelta(reminders=" , "), "task1")
        assert body["reminders"] == ["TRIGGER:PT0S"]

    def test_checklist_items_rebuilt(self, snapshot):
        items = [
            {"id": "item1", "title": "Gather data", "status": 1, "junk": "x"},
            {"title": "", "sortOrder": ""},
            {"title": "Draft", "startDate": "2024-03-18T09:00:00Z"},
        ]
        body = build_update(snapshot, FieldDelta(items=items), "task1")

        assert body["items"] == [
            {"id": "item1", "title": "Gather data", "status": 1},
            {"title": "Draft", "startDate": "2024-03-18T09:00:00+0000"},
        ]

    def test_dates_are_formatted(self, snapshot):
        delta = FieldDelta(values={"dueDate": "2024-04-01T17:00:00+02:00"})
        assert build_update(snapshot, delta, "task1")["dueDate"] == "2024-04-01T17:00:00+0200"

    def test_invalid_date_rejected(self, snapshot):
        with pytest.raises(ValidationError):
            build_update(snapshot, FieldDelta(values={"dueDate": "someday"}), "task1")

    def test_parent_container(self, snapshot):
        assert build_update(snapshot, FieldDelta(), "task1", "proj9")["projectId"] == "proj9"
        assert build_update(snapshot, FieldDelta(), "task1")["projectId"] == "proj1"

        orphan = {k: v for k, v in snapshot.items() if k != "projectId"}
        assert build_update(orphan, FieldDelta(), "task1")["projectId"] == "inbox"

    def test_id_is_stamped(self, snapshot):
        assert build_update(snapshot, FieldDelta(), "task1")["id"] == "task1"

    def test_project_group_clear_value(self):
        project = {"id": "p1", "name": "Work", "groupId": "grp1"}
        body = build_update(project, FieldDelta(clear=["groupId"]), "p1", schema=PROJECT)
        assert body["groupId"] == "null"
        assert "projectId" not in body

    def test_tag_schema_keys_by_name(self):
        tag = {"name": "work", "label": "Work", "color": "#fff"}
        body = build_update(tag, FieldDelta(values={"color": "#000"}), "work", schema=TAG)
        assert body == {"name": "work", "label": "Work", "color": "#000"}

    def test_habit_schema_ignores_tag_directives(self):
        habit = {"id": "h1", "name": "Read", "reminders": ["09:00"]}
        delta = FieldDelta(values={"goal": 2}, add_tags=["x"])
        body = build_update(habit, delta, "h1", schema=HABIT)
        assert body == {"id": "h1", "name": "Read", "reminders": ["09:00"], "goal": 2}


class TestBuildCreate:
    def test_only_present_fields(self):
        delta = FieldDelta.from_fields(
            {"title": "New", "content": "", "priority": None, "tags": ["a", "a", "b"]}
        )
        body = build_create(delta, entity_id="new1", parent_id="proj1")
        assert body == {"title": "New", "tags": ["a", "b"], "id": "new1", "projectId": "proj1"}

    def test_without_id_or_parent(self):
        body = build_create(FieldDelta(values={"title": "x"}))
        assert body == {"title": "x"}


class TestFieldDelta:
    def test_from_fields_splits_directives(self):
        delta = FieldDelta.from_fields(
            {
                "title": "x",
                "clearFields": "content, dueDate",
                "tags": ["a", {"mode": "list", "value": "b"}],
                "removeTags": "c",
                "reminders": "TRIGGER:PT0S",
                "items": [{"title": "i"}],
            }
        )
        assert delta.values == {"title": "x"}
        assert delta.clear == ["content", "dueDate"]
        assert delta.add_tags == ["a", "b"]
        assert delta.remove_tags == ["c"]
        assert delta.reminders == "TRIGGER:PT0S"
        assert delta.items == [{"title": "i"}]

    def test_from_fields_does_not_mutate_input(self):
        fields = {"title": "x", "tags": ["a"]}
        FieldDelta.from_fields(fields)
        assert fields == {"title": "x", "tags": ["a"]}

    def test_from_none(self):
        delta = FieldDelta.from_fields(None)
        assert delta.values == {} and delta.clear == []


class TestHelpers:
    def test_merge_tags_dedupes(self):
        assert merge_tags(["a", "a", "b"], ["b", "c", "c"], []) == ["a", "b", "c"]

    def test_parse_reminders_list_input(self):
        assert parse_reminders([" a ", "", None, "b"]) == ["a", "b"]

    def test_checklist_drops_contentless(self):
        assert build_checklist([{"id": "x"}, {"status": 0}]) == [{"status": 0}]

    def test_generate_id_shape(self):
        assert re.fullmatch(r"[0-9a-f]{24}", generate_id())
        assert generate_id() != generate_id()

    def test_envelope_payload(self):
        envelope = MutationEnvelope(add=[{"id": "a"}], delete=[build_delete("b")])
        assert envelope.to_payload() == {"add": [{"id": "a"}], "update": [], "delete": ["b"]}

    def test_envelope_with_attachments(self):
        envelope = MutationEnvelope(delete=[build_task_delete("t1", "p1")])
        payload = envelope.to_payload(attachments=True)
        assert payload["delete"] == [{"projectId": "p1", "taskId": "t1"}]
        assert payload["addAttachments"] == []
        assert payload["updateAttachments"] == []
        assert payload["deleteAttachments"] == []
