"""Commands that read wiki pages, their history and their attachments."""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from typing import Any

from termcolor import colored

Params = list[tuple[str, str]]


def _colour_enabled() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _cyan(text: str, bold: bool = False) -> str:
    if not _colour_enabled():
        return text
    attrs = ["bold"] if bold else None
    return colored(text, "cyan", attrs=attrs, force_color=True)


def _print_json(value: Any) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


def _tag_names(wiki: dict[str, Any]) -> list[str]:
    return [str(tag.get("name", "")) for tag in wiki.get("tags") or []]


@dataclass(frozen=True)
class WikiListArgs:
    """Options for listing the wiki pages of a project."""

    project_id_or_key: str
    keyword: str | None = None
    json: bool = False

    def query_params(self) -> Params:
        """Return the query parameters for the wiki list request."""
        params: Params = [("projectIdOrKey", self.project_id_or_key)]
        if self.keyword is not None:
            params.append(("keyword", self.keyword))
        return params


@dataclass(frozen=True)
class WikiShowArgs:
    """Options for showing one wiki page."""

    wiki_id: int
    json: bool = False


@dataclass(frozen=True)
class WikiHistoryArgs:
    """Options for showing the history of a wiki page."""

    wiki_id: int
    json: bool = False


@dataclass(frozen=True)
class WikiAttachmentListArgs:
    """Options for listing the attachments of a wiki page."""

    wiki_id: int
    json: bool = False


def list_with(args: WikiListArgs, api: Any) -> list[dict[str, Any]]:
    """Fetch and print the wiki pages of a project; return them."""
    wikis = api.get_wikis(args.query_params())
    if args.json:
        _print_json(wikis)
    else:
        for wiki in wikis:
            print(format_wiki_row(wiki))
    return wikis


def format_wiki_row(wiki: dict[str, Any]) -> str:
    """Render a wiki page name followed by its tags, if any."""
    tags = _tag_names(wiki)
    suffix = f" [{', '.join(tags)}]" if tags else ""
    return f"{_cyan(str(wiki.get('name', '')), bold=True)}{suffix}"


def show_with(args: WikiShowArgs, api: Any) -> dict[str, Any]:
    """Fetch and print one wiki page; return it."""
    wiki = api.get_wiki(args.wiki_id)
    if args.json:
        _print_json(wiki)
    else:
        print_wiki(wiki)
    return wiki


def print_wiki(wiki: dict[str, Any]) -> None:
    """Print a wiki page's name, tags, timestamps and content."""
    print(_cyan(str(wiki.get("name", "")), bold=True))
    tags = _tag_names(wiki)
    if tags:
        print(f"  Tags:    {', '.join(tags)}")
    print(f"  Created: {wiki.get('created', '')}")
    print(f"  Updated: {wiki.get('updated', '')}")
    content = wiki.get("content") or ""
    if content:
        print(f"\n{content}")


def history_with(args: WikiHistoryArgs, api: Any) -> list[dict[str, Any]]:
    """Fetch and print the history of a wiki page; return it."""
    entries = api.get_wiki_history(args.wiki_id)
    if args.json:
        _print_json(entries)
    else:
        for entry in entries:
            print(format_history_row(entry))
    return entries


def format_history_row(entry: dict[str, Any]) -> str:
    """Render one history entry as ``vN name — created``."""
    version = _cyan(f"v{entry.get('version')}", bold=True)
    return f"{version} {entry.get('name', '')} — {entry.get('created', '')}"


def attachment_list_with(args: WikiAttachmentListArgs, api: Any) -> list[dict[str, Any]]:
    """Fetch and print the attachments of a wiki page; return them."""
    attachments = api.get_wiki_attachments(args.wiki_id)
    if args.json:
        _print_json(attachments)
    else:
        for attachment in attachments:
            print(format_attachment_row(attachment))
    return attachments


def format_attachment_row(attachment: dict[str, Any]) -> str:
    """Render one attachment as ``[id] name (size bytes)``."""
    return (
        f"[{_cyan(str(attachment.get('id')))}] {attachment.get('name', '')} "
        f"({attachment.get('size')} bytes)"
    )