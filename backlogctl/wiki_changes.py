"""Commands that create, update and delete wiki pages."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from backlogctl.wiki import print_wiki

Params = list[tuple[str, str]]


def _print_json(value: Any) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


def _report(wiki: dict[str, Any], as_json: bool) -> None:
    if as_json:
        _print_json(wiki)
    else:
        print_wiki(wiki)


@dataclass(frozen=True)
class WikiCreateArgs:
    """Options for creating a wiki page."""

    project_id: int
    name: str
    content: str
    mail_notify: bool = False
    json: bool = False

    def form_params(self) -> Params:
        """Return the form parameters for the create request."""
        params: Params = [
            ("projectId", str(self.project_id)),
            ("name", self.name),
            ("content", self.content),
        ]
        if self.mail_notify:
            params.append(("mailNotify", "true"))
        return params


@dataclass(frozen=True)
class WikiDeleteArgs:
    """Options for deleting a wiki page."""

    wiki_id: int
    mail_notify: bool = False
    json: bool = False

    def form_params(self) -> Params:
        """Return the form parameters for the delete request."""
        return [("mailNotify", "true")] if self.mail_notify else []


@dataclass(frozen=True)
class WikiUpdateArgs:
    """Options for updating a wiki page; a name or content must be given."""

    wiki_id: int
    name: str | None = None
    content: str | None = None
    mail_notify: bool = False
    json: bool = False

    def __post_init__(self) -> None:
        if self.name is None and self.content is None:
            raise ValueError("at least one of --name or --content must be specified")

    def form_params(self) -> Params:
        """Return the form parameters for the update request."""
        params: Params = []
        if self.name is not None:
            params.append(("name", self.name))
        if self.content is not None:
            params.append(("content", self.content))
        if self.mail_notify:
            params.append(("mailNotify", "true"))
        return params


def create_with(args: WikiCreateArgs, api: Any) -> dict[str, Any]:
    """Create a wiki page, print it and return it."""
    wiki = api.create_wiki(args.form_params())
    _report(wiki, args.json)
    return wiki


def delete_with(args: WikiDeleteArgs, api: Any) -> dict[str, Any]:
    """Delete a wiki page, print what was removed and return it."""
    wiki = api.delete_wiki(args.wiki_id, args.form_params())
    _report(wiki, args.json)
    return wiki


def update_with(args: WikiUpdateArgs, api: Any) -> dict[str, Any]:
    """Update a wiki page, print it and return it."""
    wiki = api.update_wiki(args.wiki_id, args.form_params())
    _report(wiki, args.json)
    return wiki