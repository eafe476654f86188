"""Tests for terminal rendering."""

import io

from conftest import GIT_CHECKOUT_PAGE, TAR_PAGE
from rich.console import Console

from tldrlite.fuzzy_index import CmdInfo
from tldrlite.page_resolver import Example, parse_page
from tldrlite.renderer import PageRenderer, example_command_text


def plain_console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, highlight=False, soft_wrap=True, color_system=None), buffer


class TestPageRenderer:
    def test_render_page_layout(self):
        console, buffer = plain_console()
        PageRenderer(console).render_page(parse_page(GIT_CHECKOUT_PAGE))

        assert buffer.getvalue().splitlines() == [
            "git checkout",
            "",
            "Checkout a branch or paths to the working tree.",
            "- Switch to an existing branch:",
            "git checkout branch",
            "",
        ]

    def test_render_every_example(self):
        console, buffer = plain_console()
        PageRenderer(console).render_page(parse_page(TAR_PAGE))
        assert buffer.getvalue().count("\n- ") == 3

    def test_render_suggestions(self):
        console, buffer = plain_console()
        PageRenderer(console).render_suggestions(
            [CmdInfo("git checkout", ("common",)), CmdInfo("ls", ("linux", "osx"))]
        )
        output = buffer.getvalue()
        assert "Did you mean:" in output
        assert "git checkout  (common)" in output
        assert "ls  (linux, osx)" in output

    def test_no_suggestions_prints_nothing(self):
        console, buffer = plain_console()
        PageRenderer(console).render_suggestions([])
        assert buffer.getvalue() == ""


class TestCommandText:
    def test_placeholders_styled_blue(self):
        text = example_command_text(Example("", "tar xf {{file}}"))
        assert text.plain == "tar xf file"
        assert str(text.style) == "red"
        assert [(s.start, s.end, str(s.style)) for s in text.spans] == [(7, 11, "blue")]
