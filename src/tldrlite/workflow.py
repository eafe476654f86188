"""Launcher (Alfred script filter) output.

Emits {"items": [...]} JSON, one item per example, or one item per fuzzy
suggestion when the page is missing. The launcher never shows the cache
expired warning.
"""

import json
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any, TextIO

from tldrlite.fuzzy_index import CmdInfo
from tldrlite.page_resolver import Page


@dataclass
class WorkflowItem:
    """One script filter row."""

    title: str
    subtitle: str = ""
    autocomplete: str | None = None
    arg: str | None = None
    valid: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class Workflow:
    """Collect items and print them as script filter JSON."""

    def __init__(self) -> None:
        self.items: list[WorkflowItem] = []
        self._empty_warning: WorkflowItem | None = None

    def append(self, item: WorkflowItem) -> None:
        self.items.append(item)

    def empty_warning(self, title: str, subtitle: str) -> None:
        """Item shown when nothing else was appended."""
        self._empty_warning = WorkflowItem(title=title, subtitle=subtitle, valid=False)

    def fatal(self, title: str, subtitle: str = "") -> None:
        """Replace all items with a single error row."""
        self.items = [WorkflowItem(title=title, subtitle=subtitle, valid=False)]

    def to_dict(self) -> dict[str, Any]:
        items = self.items
        if not items and self._empty_warning is not None:
            items = [self._empty_warning]
        return {"items": [item.to_dict() for item in items]}

    def output(self, stream: TextIO) -> None:
        stream.write(json.dumps(self.to_dict(), ensure_ascii=False))
        stream.write("\n")


def page_items(page: Page | None) -> list[WorkflowItem]:
    if page is None:
        return []
    return [
        WorkflowItem(
            title=example.cmd,
            subtitle=example.description,
            autocomplete=example.cmd,
            arg=example.cmd,
        )
        for example in page.cmd_examples
    ]


def suggestion_items(suggestions: Sequence[CmdInfo]) -> list[WorkflowItem]:
    return [
        WorkflowItem(
            title=cmd.name,
            subtitle=f"Platforms: {','.join(cmd.platform)}",
            autocomplete=cmd.name,
            valid=False,
        )
        for cmd in suggestions
    ]
