"""Endpoint templates for both TickTick API surfaces.

Any caller-supplied value interpolated into a path segment goes through
validate_path_param() first, so a crafted identifier cannot traverse
paths or smuggle a query string.
"""
import re

from .errors import ValidationError

PATH_PARAM_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

# Prefix served only by the official (token/OAuth) surface
OFFICIAL_PREFIX = "/open/v1/"


def validate_path_param(value: str, field_name: str) -> str:
    """Return value unchanged if it is safe to interpolate into a path."""
    if not isinstance(value, str) or not PATH_PARAM_PATTERN.fullmatch(value):
        raise ValidationError(
            f"Invalid {field_name} '{value}'. Must match [A-Za-z0-9_-]+",
            field_name,
        )
    return value


def is_official_path(path: str) -> bool:
    return path.startswith(OFFICIAL_PREFIX)


# ---------------------------------------------------------------------------
# Session surface (relative to the /api/v2 base)
# ---------------------------------------------------------------------------

SIGNON = "/user/signon"
SYNC = "/batch/check/0"

TASKS_BATCH = "/batch/task"
PROJECTS_BATCH = "/batch/project"
PROJECT_GROUPS_BATCH = "/batch/projectGroup"
TAGS_BATCH = "/batch/tag"

HABITS = "/habits"
HABITS_BATCH = "/habits/batch"
HABIT_CHECKINS_BATCH = "/habitCheckins/batch"

TAG = "/tag"
TAG_RENAME = "/tag/rename"
TAG_MERGE = "/tag/merge"

PROJECT_ALL_COMPLETED = "/project/all/completed"
PROJECT_ALL_TRASH_PAGINATION = "/project/all/trash/pagination"

USER_PROFILE = "/user/profile"
USER_STATUS = "/user/status"
USER_PREFERENCES_SETTINGS = "/user/preferences/settings"


def focus_heatmap(start: str, end: str) -> str:
    start = validate_path_param(start, "start_date")
    end = validate_path_param(end, "end_date")
    return f"/pomodoros/statistics/heatmap/{start}/{end}"


def focus_distribution(start: str, end: str) -> str:
    start = validate_path_param(start, "start_date")
    end = validate_path_param(end, "end_date")
    return f"/pomodoros/statistics/dist/{start}/{end}"


# ---------------------------------------------------------------------------
# Official surface
# ---------------------------------------------------------------------------

OPEN_V1_PROJECT = "/open/v1/project"
OPEN_V1_TASK = "/open/v1/task"


def open_project(project_id: str) -> str:
    return f"{OPEN_V1_PROJECT}/{validate_path_param(project_id, 'project_id')}"


def open_project_data(project_id: str) -> str:
    return f"{open_project(project_id)}/data"


def open_task_update(task_id: str) -> str:
    return f"{OPEN_V1_TASK}/{validate_path_param(task_id, 'task_id')}"


def open_project_task(project_id: str, task_id: str) -> str:
    task_id = validate_path_param(task_id, "task_id")
    return f"{open_project(project_id)}/task/{task_id}"


def open_task_complete(project_id: str, task_id: str) -> str:
    return f"{open_project_task(project_id, task_id)}/complete"
