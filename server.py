#!/usr/bin/env python3
"""
TickTick MCP Server

Local stdio MCP server over both TickTick APIs: the official token/OAuth
REST API (projects and tasks) and the web client's session API (tasks,
projects, project groups, tags, habits, focus statistics, user settings).

Every tool accepts an optional "authentication" argument ("token",
"oauth2" or "session"); the default comes from ~/.ticktick/config.json.

Tools:
- create_task, get_task, update_task, complete_task, delete_task
- move_task, set_task_parent, list_tasks, list_completed_tasks, list_deleted_tasks
- list_projects, get_project, get_project_data, create_project, update_project, delete_project
- list_project_groups, create_project_group, update_project_group, delete_project_group
- list_tags, create_tag, update_tag, rename_tag, merge_tags, delete_tag
- list_habits, get_habit, create_habit, update_habit, archive_habit,
  unarchive_habit, delete_habit, checkin_habit
- focus_heatmap, focus_distribution
- user_profile, user_status, user_preferences, sync_all
"""
import asyncio
import json
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from ticktick_tools import (
    focus,
    habits,
    project_groups,
    projects,
    sync,
    tags,
    tasks,
    user,
)
from ticktick_tools.config import resolve_auth_method
from ticktick_tools.errors import TickTickError
from ticktick_tools.router import ProtocolRouter

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("ticktick-tools")

server = Server("ticktick")

_router: ProtocolRouter | None = None


def _get_router() -> ProtocolRouter:
    """Lazy singleton router built from config."""
    global _router
    if _router is None:
        _router = ProtocolRouter.from_config()
    return _router


def reset_router():
    """Drop the router and its session cache. Used for testing."""
    global _router
    _router = None


AUTH_PROPERTY = {
    "type": "string",
    "enum": ["token", "oauth2", "session"],
    "description": "API surface to use. Defaults to config auth_method.",
}

ID = {"type": "string"}
FIELDS = {"type": "object", "description": "Fields to set. See tool description."}
DATE = {"type": "string", "description": "ISO 8601 date or datetime."}


def _tool(name: str, description: str, properties: dict | None = None, required: list | None = None) -> Tool:
    schema = {"type": "object", "properties": {"authentication": AUTH_PROPERTY, **(properties or {})}}
    if required:
        schema["required"] = required
    return Tool(name=name, description=description, inputSchema=schema)


TASK_FIELDS_HELP = (
    "fields: title, content, desc, dueDate, startDate, completedTime, isAllDay, "
    "priority (0 none, 1 low, 3 medium, 5 high), status, repeatFlag, sortOrder, "
    "timeZone, reminders (comma-separated triggers), items (checklist objects), "
    "tags (to add), removeTags, clearFields (names to reset to empty)."
)

TOOLS = [
    # Tasks
    _tool("create_task", "Create a task. " + TASK_FIELDS_HELP,
          {"title": {"type": "string"}, "projectId": ID, "fields": FIELDS}, ["title"]),
    _tool("get_task", "Get one task.", {"taskId": ID, "projectId": ID}, ["taskId"]),
    _tool("update_task",
          "Update a task, keeping every field not mentioned. " + TASK_FIELDS_HELP,
          {"taskId": ID, "projectId": ID, "fields": FIELDS}, ["taskId"]),
    _tool("complete_task", "Mark a task completed.", {"taskId": ID, "projectId": ID}, ["taskId"]),
    _tool("delete_task", "Delete a task.", {"taskId": ID, "projectId": ID}, ["taskId"]),
    _tool("move_task", "Move a task to another project (session only).",
          {"taskId": ID, "toProjectId": ID}, ["taskId", "toProjectId"]),
    _tool("set_task_parent", "Make a task a subtask, or top-level when parentId is empty (session only).",
          {"taskId": ID, "parentId": ID}, ["taskId"]),
    _tool("list_tasks", "List open tasks, optionally for one project.", {"projectId": ID}),
    _tool("list_completed_tasks", "List tasks completed in a date range (session only).",
          {"startDate": DATE, "endDate": DATE, "limit": {"type": "integer", "default": 100}},
          ["startDate", "endDate"]),
    _tool("list_deleted_tasks", "List tasks in the trash (session only).",
          {"limit": {"type": "integer", "default": 100}}),
    # Projects
    _tool("list_projects", "List all projects."),
    _tool("get_project", "Get one project.", {"projectId": ID}, ["projectId"]),
    _tool("get_project_data", "Get a project with its open tasks. Defaults to the inbox.",
          {"projectId": ID}),
    _tool("create_project", "Create a project. fields: color, kind, sortOrder, viewMode, groupId.",
          {"name": {"type": "string"}, "fields": FIELDS}, ["name"]),
    _tool("update_project",
          "Update a project. fields: name, color, kind, sortOrder, viewMode, groupId "
          "(\"null\" to ungroup), clearFields.",
          {"projectId": ID, "fields": FIELDS}, ["projectId"]),
    _tool("delete_project", "Delete a project.", {"projectId": ID}, ["projectId"]),
    # Project groups
    _tool("list_project_groups", "List project groups (session only)."),
    _tool("create_project_group", "Create a project group (session only).",
          {"name": {"type": "string"}, "sortOrder": {"type": "integer"}}, ["name"]),
    _tool("update_project_group", "Update a project group. fields: name, sortOrder (session only).",
          {"projectGroupId": ID, "fields": FIELDS}, ["projectGroupId"]),
    _tool("delete_project_group", "Delete a project group (session only).",
          {"projectGroupId": ID}, ["projectGroupId"]),
    # Tags
    _tool("list_tags", "List tags (session only)."),
    _tool("create_tag", "Create a tag. fields: color, parent, sortOrder (session only).",
          {"name": {"type": "string"}, "fields": FIELDS}, ["name"]),
    _tool("update_tag", "Update a tag. fields: label, color, parent, sortType, sortOrder (session only).",
          {"tagName": ID, "fields": FIELDS}, ["tagName"]),
    _tool("rename_tag", "Rename a tag (session only).",
          {"oldName": ID, "newName": ID}, ["oldName", "newName"]),
    _tool("merge_tags", "Merge sourceTag into targetTag (session only).",
          {"sourceTag": ID, "targetTag": ID}, ["sourceTag", "targetTag"]),
    _tool("delete_tag", "Delete a tag (session only).", {"tagName": ID}, ["tagName"]),
    # Habits
    _tool("list_habits", "List habits (session only).",
          {"includeArchived": {"type": "boolean", "default": False}}),
    _tool("get_habit", "Get one habit (session only).", {"habitId": ID}, ["habitId"]),
    _tool("create_habit",
          "Create a habit. fields: type, color, icon, goal, step, unit, repeatRule, "
          "targetDays, encouragement, reminders (session only).",
          {"name": {"type": "string"}, "fields": FIELDS}, ["name"]),
    _tool("update_habit", "Update a habit, keeping every field not mentioned (session only).",
          {"habitId": ID, "fields": FIELDS}, ["habitId"]),
    _tool("archive_habit", "Archive a habit (session only).", {"habitId": ID}, ["habitId"]),
    _tool("unarchive_habit", "Unarchive a habit (session only).", {"habitId": ID}, ["habitId"]),
    _tool("delete_habit", "Delete a habit (session only).", {"habitId": ID}, ["habitId"]),
    _tool("checkin_habit", "Check in a habit for a day, default today (session only).",
          {"habitId": ID, "value": {"type": "number", "default": 1}, "checkinDate": DATE},
          ["habitId"]),
    # Focus, user, sync
    _tool("focus_heatmap", "Daily focus time for a date range (session only).",
          {"startDate": DATE, "endDate": DATE}, ["startDate", "endDate"]),
    _tool("focus_distribution", "Focus time by project and tag for a date range (session only).",
          {"startDate": DATE, "endDate": DATE}, ["startDate", "endDate"]),
    _tool("user_profile", "Get the account profile (session only)."),
    _tool("user_status", "Get the account subscription status (session only)."),
    _tool("user_preferences", "Get the account preferences (session only)."),
    _tool("sync_all", "Get the complete account state (session only)."),
]

# Map tool names to handlers with argument translation
HANDLERS = {
    "create_task": lambda r, auth, args: tasks.create_task(
        r, auth, args.get("title", ""), args.get("projectId"), args.get("fields")
    ),
    "get_task": lambda r, auth, args: tasks.get_task(r, auth, args.get("taskId"), args.get("projectId")),
    "update_task": lambda r, auth, args: tasks.update_task(
        r, auth, args.get("taskId"), args.get("projectId"), args.get("fields")
    ),
    "complete_task": lambda r, auth, args: tasks.complete_task(
        r, auth, args.get("taskId"), args.get("projectId")
    ),
    "delete_task": lambda r, auth, args: tasks.delete_task(
        r, auth, args.get("taskId"), args.get("projectId")
    ),
    "move_task": lambda r, auth, args: tasks.move_task(
        r, auth, args.get("taskId"), args.get("toProjectId")
    ),
    "set_task_parent": lambda r, auth, args: tasks.set_task_parent(
        r, auth, args.get("taskId"), args.get("parentId")
    ),
    "list_tasks": lambda r, auth, args: tasks.list_tasks(r, auth, args.get("projectId")),
    "list_completed_tasks": lambda r, auth, args: tasks.list_completed_tasks(
        r, auth, args.get("startDate"), args.get("endDate"), args.get("limit", 100)
    ),
    "list_deleted_tasks": lambda r, auth, args: tasks.list_deleted_tasks(r, auth, args.get("limit", 100)),
    "list_projects": lambda r, auth, args: projects.list_projects(r, auth),
    "get_project": lambda r, auth, args: projects.get_project(r, auth, args.get("projectId")),
    "get_project_data": lambda r, auth, args: projects.get_project_data(r, auth, args.get("projectId")),
    "create_project": lambda r, auth, args: projects.create_project(
        r, auth, args.get("name", ""), args.get("fields")
    ),
    "update_project": lambda r, auth, args: projects.update_project(
        r, auth, args.get("projectId"), args.get("fields")
    ),
    "delete_project": lambda r, auth, args: projects.delete_project(r, auth, args.get("projectId")),
    "list_project_groups": lambda r, auth, args: project_groups.list_project_groups(r, auth),
    "create_project_group": lambda r, auth, args: project_groups.create_project_group(
        r, auth, args.get("name", ""), args.get("sortOrder")
    ),
    "update_project_group": lambda r, auth, args: project_groups.update_project_group(
        r, auth, args.get("projectGroupId"), args.get("fields")
    ),
    "delete_project_group": lambda r, auth, args: project_groups.delete_project_group(
        r, auth, args.get("projectGroupId")
    ),
    "list_tags": lambda r, auth, args: tags.list_tags(r, auth),
    "create_tag": lambda r, auth, args: tags.create_tag(r, auth, args.get("name", ""), args.get("fields")),
    "update_tag": lambda r, auth, args: tags.update_tag(r, auth, args.get("tagName"), args.get("fields")),
    "rename_tag": lambda r, auth, args: tags.rename_tag(r, auth, args.get("oldName"), args.get("newName")),
    "merge_tags": lambda r, auth, args: tags.merge_tags(
        r, auth, args.get("sourceTag"), args.get("targetTag")
    ),
    "delete_tag": lambda r, auth, args: tags.delete_tag(r, auth, args.get("tagName")),
    "list_habits": lambda r, auth, args: habits.list_habits(r, auth, args.get("includeArchived", False)),
    "get_habit": lambda r, auth, args: habits.get_habit(r, auth, args.get("habitId")),
    "create_habit": lambda r, auth, args: habits.create_habit(
        r, auth, args.get("name", ""), args.get("fields")
    ),
    "update_habit": lambda r, auth, args: habits.update_habit(
        r, auth, args.get("habitId"), args.get("fields")
    ),
    "archive_habit": lambda r, auth, args: habits.archive_habit(r, auth, args.get("habitId")),
    "unarchive_habit": lambda r, auth, args: habits.unarchive_habit(r, auth, args.get("habitId")),
    "delete_habit": lambda r, auth, args: habits.delete_habit(r, auth, args.get("habitId")),
    "checkin_habit": lambda r, auth, args: habits.checkin_habit(
        r, auth, args.get("habitId"), args.get("value", 1), args.get("checkinDate")
    ),
    "focus_heatmap": lambda r, auth, args: focus.get_heatmap(r, auth, args.get("startDate"), args.get("endDate")),
    "focus_distribution": lambda r, auth, args: focus.get_distribution(
        r, auth, args.get("startDate"), args.get("endDate")
    ),
    "user_profile": lambda r, auth, args: user.get_profile(r, auth),
    "user_status": lambda r, auth, args: user.get_status(r, auth),
    "user_preferences": lambda r, auth, args: user.get_preferences(r, auth),
    "sync_all": lambda r, auth, args: sync.sync_all(r, auth),
}


@server.list_tools()
async def list_tools():
    return TOOLS


@server.call_tool()
async def call_tool(name: str, arguments: dict):
    arguments = arguments or {}
    handler = HANDLERS.get(name)
    if not handler:
        result = {"success": False, "error": f"Unknown tool: {name}"}
    else:
        try:
            # Resolved once here and passed down; handlers never re-probe it
            auth = resolve_auth_method(arguments.get("authentication"))
            result = await handler(_get_router(), auth, arguments)
        except TickTickError as e:
            logger.warning("%s failed: %s", name, e)
            result = e.to_dict()
        except Exception as e:
            logger.error(f"Error: {e}", exc_info=True)
            result = {"success": False, "error": f"Tool execution error: {str(e)}"}

    return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]


async def main():
    logger.info("Starting TickTick MCP Server")
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        if _router is not None:
            await _router.aclose()


def main_sync():
    """Synchronous entry point for uvx/pip scripts."""
    asyncio.run(main())


if __name__ == "__main__":
    main_sync()
