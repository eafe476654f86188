"""Terminal rendering of pages and suggestions using Rich.

Layout:
    <bold name>

    <description>
    - <green example description>
    <red command with blue placeholders>

Colors are dropped automatically when output is not a terminal.
"""

from collections.abc import Sequence

from rich.console import Console
from rich.text import Text

from tldrlite.fuzzy_index import CmdInfo
from tldrlite.page_resolver import Example, Page

NOT_FOUND_MESSAGE = (
    "This page doesn't exist yet!\nSubmit new pages here: https://github.com/tldr-pages/tldr"
)


def example_command_text(example: Example) -> Text:
    """Command template as Rich text, placeholders highlighted."""
    text = Text(style="red")
    for segment, is_placeholder in example.segments():
        text.append(segment, style="blue" if is_placeholder else None)
    return text


class PageRenderer:
    """Print pages to a Rich console."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console(highlight=False, soft_wrap=True)

    def render_page(self, page: Page) -> None:
        self.console.print(Text(page.cmd_name, style="bold"))
        self.console.print()
        if page.cmd_description:
            self.console.print(Text(page.cmd_description))
        for example in page.cmd_examples:
            line = Text("- ")
            line.append(example.description, style="green")
            self.console.print(line)
            self.console.print(example_command_text(example))
            self.console.print()

    def render_suggestions(self, suggestions: Sequence[CmdInfo]) -> None:
        if not suggestions:
            return
        self.console.print(Text("Did you mean:", style="bold"))
        for cmd in suggestions:
            line = Text(f"  {cmd.name}")
            line.append(f"  ({', '.join(cmd.platform)})", style="dim")
            self.console.print(line)
