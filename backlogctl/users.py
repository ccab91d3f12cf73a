"""Commands that read users of a Backlog space and their activity."""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from termcolor import colored

Params = list[tuple[str, str]]


def _validate_count(count: int) -> None:
    if not 1 <= count <= 100:
        raise ValueError("count must be between 1 and 100")


def _colour_enabled() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _bold(text: str) -> str:
    return colored(text, attrs=["bold"], force_color=True) if _colour_enabled() else text


def _print_json(value: Any) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


def _or_dash(value: Any) -> str:
    return "-" if value is None else str(value)


@dataclass(frozen=True)
class UserActivitiesArgs:
    """Options for listing a user's recent activities."""

    user_id: int
    json: bool = False
    activity_type_ids: Sequence[int] = field(default_factory=tuple)
    min_id: int | None = None
    max_id: int | None = None
    count: int = 20
    order: str | None = None

    def __post_init__(self) -> None:
        _validate_count(self.count)
        if self.min_id is not None and self.max_id is not None and self.min_id > self.max_id:
            raise ValueError("min-id must be less than or equal to max-id")

    def query_params(self) -> Params:
        """Return the query parameters for the activities request."""
        params: Params = [("activityTypeId[]", str(i)) for i in self.activity_type_ids]
        if self.min_id is not None:
            params.append(("minId", str(self.min_id)))
        if self.max_id is not None:
            params.append(("maxId", str(self.max_id)))
        params.append(("count", str(self.count)))
        if self.order is not None:
            params.append(("order", self.order))
        return params


@dataclass(frozen=True)
class UserListArgs:
    """Options for listing the users of the space."""

    json: bool = False


@dataclass(frozen=True)
class UserRecentlyViewedArgs:
    """Options for listing the issues the authenticated user viewed recently."""

    json: bool = False
    count: int = 20
    offset: int = 0
    order: str | None = None

    def __post_init__(self) -> None:
        _validate_count(self.count)

    def query_params(self) -> Params:
        """Return the query parameters for the recently viewed request."""
        params: Params = [("count", str(self.count)), ("offset", str(self.offset))]
        if self.order is not None:
            params.append(("order", self.order))
        return params


@dataclass(frozen=True)
class UserShowArgs:
    """Options for showing one user."""

    id: int
    json: bool = False


def activities_with(args: UserActivitiesArgs, api: Any) -> list[dict[str, Any]]:
    """Fetch and print a user's activities; return them."""
    activities = api.get_user_activities(args.user_id, args.query_params())
    if args.json:
        _print_json(activities)
    else:
        for activity in activities:
            print(format_activity_row(activity))
    return activities


def format_activity_row(activity: dict[str, Any]) -> str:
    """Render one activity as a single line."""
    project = activity.get("project") or {}
    project_key = project.get("projectKey") or "-"
    user = activity.get("createdUser") or {}
    return (
        f"[{activity.get('id')}] type={activity.get('type')} project={project_key} "
        f"user={user.get('name', '')} created={activity.get('created', '')}"
    )


def list_with(args: UserListArgs, api: Any) -> list[dict[str, Any]]:
    """Fetch and print the users of the space; return them."""
    users = api.get_users()
    if args.json:
        _print_json(users)
    else:
        for user in users:
            print(format_user_row(user))
    return users


def format_user_row(user: dict[str, Any]) -> str:
    """Render one user as a single line, with the login id when known."""
    login = user.get("userId")
    if login:
        return f"[{user.get('id')}] {user.get('name', '')} ({login})"
    return f"[{user.get('id')}] {user.get('name', '')}"


def recently_viewed_with(args: UserRecentlyViewedArgs, api: Any) -> list[dict[str, Any]]:
    """Fetch and print recently viewed issues; return them."""
    items = api.get_recently_viewed_issues(args.query_params())
    if args.json:
        _print_json(items)
    else:
        for item in items:
            print(format_recently_viewed_row(item))
    return items


def format_recently_viewed_row(item: dict[str, Any]) -> str:
    """Render one recently viewed issue as a single line."""
    issue = item.get("issue") or {}
    status = (issue.get("status") or {}).get("name", "")
    assignee = (issue.get("assignee") or {}).get("name") or "-"
    return f"[{issue.get('issueKey', '')}] {issue.get('summary', '')} ({status}, {assignee})"


def show_with(args: UserShowArgs, api: Any) -> dict[str, Any]:
    """Fetch and print one user; return it."""
    user = api.get_user(args.id)
    if args.json:
        _print_json(user)
    else:
        print(format_user_text(user))
    return user


def format_user_text(user: dict[str, Any]) -> str:
    """Render a user's details as labelled lines."""
    lines = [
        f"ID:           {_bold(str(user.get('id')))}",
        f"User ID:      {_or_dash(user.get('userId'))}",
        f"Name:         {user.get('name', '')}",
        f"Mail:         {_or_dash(user.get('mailAddress'))}",
        f"Role:         {user.get('roleType')}",
        f"Lang:         {_or_dash(user.get('lang'))}",
        f"Last login:   {_or_dash(user.get('lastLoginTime'))}",
    ]
    return "\n".join(lines)