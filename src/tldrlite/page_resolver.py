"""Page resolution and parsing.

Maps command tokens to a page file in the snapshot, walking the language
and platform fallback chain, and parses the page's markdown into a typed
Page.

Page format:
    # git checkout
    > Checkout a branch or paths to the working tree.
    > More information: <https://git-scm.com/docs/git-checkout>.
    - Switch to an existing branch:
    `git checkout {{branch_name}}`

Public API:
    PageResolver: Find and parse the page for a command
    Page, Example: Parsed page data
    parse_page: Parse page text
    canonical_name: Tokens -> page file stem
    PageNotFoundError: No page in any fallback directory
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from tldrlite.config_manager import TldrOptions
from tldrlite.page_store import DEFAULT_LANGUAGES, PageStore
from tldrlite.platform_detector import fallback_platforms

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{\{(.*?)\}\}")
_CITATION_PREFIXES = ("More information:", "More info:")
_UNSAFE_NAME_RE = re.compile(r"[/\\]|\.\.")


class PageNotFoundError(Exception):
    """Raised when no fallback directory holds a page for the command."""

    def __init__(self, name: str):
        super().__init__(f"page not found: {name}")
        self.name = name


@dataclass(frozen=True)
class Example:
    """One example of a page: a description and a command template."""

    description: str
    cmd: str

    @property
    def placeholders(self) -> list[str]:
        """Placeholder names in document order.

        Example:
            >>> Example("", "git checkout {{branch}}").placeholders
            ['branch']
        """
        return _PLACEHOLDER_RE.findall(self.cmd)

    def segments(self) -> list[tuple[str, bool]]:
        """Split cmd into (text, is_placeholder) pairs, dropping empty text."""
        parts = _PLACEHOLDER_RE.split(self.cmd)
        # re.split with one group alternates literal, placeholder, literal, ...
        return [(text, i % 2 == 1) for i, text in enumerate(parts) if text]


@dataclass(frozen=True)
class Page:
    """Parsed tldr page."""

    cmd_name: str
    cmd_description: str
    cmd_examples: tuple[Example, ...] = field(default_factory=tuple)


def canonical_name(tokens: Sequence[str]) -> str:
    """Join command tokens into a page file stem.

    Example:
        >>> canonical_name(["git", "Checkout"])
        'git-checkout'
    """
    return "-".join(tokens).lower()


def _code_line(line: str) -> str | None:
    if len(line) >= 2 and line.startswith("`") and line.endswith("`"):
        return line[1:-1]
    return None


def parse_page(text: str, default_name: str = "") -> Page:
    """Parse page markdown.

    The first "# " heading is the name, the first ">" paragraph is the
    description (citation lines removed), and each "- " bullet followed by a
    backticked line forms one example. A bullet without a code line, or a code
    line without a bullet, is skipped.

    Args:
        text: Page markdown
        default_name: Name used when the page has no heading

    Returns:
        Parsed Page
    """
    name: str | None = None
    description: list[str] = []
    description_done = False
    examples: list[Example] = []
    pending: str | None = None
    in_fence = False

    for raw in text.splitlines():
        line = raw.strip()

        if line.startswith("```"):
            in_fence = not in_fence
            continue

        if not line:
            if description:
                description_done = True
            continue

        if in_fence:
            # First line inside a fenced block is the command
            if pending is not None:
                examples.append(Example(pending, line))
                pending = None
            continue

        if line.startswith(">"):
            if not description_done:
                quoted = line[1:].strip()
                if quoted and not quoted.startswith(_CITATION_PREFIXES):
                    description.append(quoted)
            continue
        if description:
            description_done = True

        if line.startswith("# ") and name is None:
            name = line[2:].strip()
        elif line.startswith("-"):
            if pending is not None:
                logger.debug(f"Skipping example without command: {pending!r}")
            pending = line[1:].strip()
        elif (cmd := _code_line(line)) is not None:
            if pending is None:
                logger.debug(f"Skipping command without description: {cmd!r}")
                continue
            examples.append(Example(pending, cmd))
            pending = None

    return Page(
        cmd_name=name if name is not None else default_name,
        cmd_description="\n".join(description),
        cmd_examples=tuple(examples),
    )


class PageResolver:
    """Locate and parse pages in a snapshot.

    Search order for language L and platform P:
        pages.L/P, pages.L/common, pages.L/<other platforms>,
        then the same platforms under pages/ when L is not English.
    The first hit wins.

    Example:
        >>> resolver = PageResolver(PageStore(Path("~/.tldr").expanduser()))
        >>> page = resolver.find_page(["git", "checkout"], TldrOptions(platform="osx"))
    """

    def __init__(self, store: PageStore):
        self.store = store

    def candidates(self, options: TldrOptions) -> list[tuple[str, str]]:
        """Ordered (language, platform) pairs to search."""
        languages = [options.language]
        if options.language not in DEFAULT_LANGUAGES:
            languages.append("")
        platforms = fallback_platforms(options.platform)
        return [(lang, plat) for lang in languages for plat in platforms]

    def find_page(self, tokens: Sequence[str], options: TldrOptions) -> Page:
        """Find and parse the page for command tokens.

        Args:
            tokens: Command and sub-command words, e.g. ["git", "checkout"]
            options: Platform/language preference

        Returns:
            Parsed Page

        Raises:
            PageNotFoundError: If no candidate directory holds the page
        """
        name = canonical_name(tokens)
        if not name or _UNSAFE_NAME_RE.search(name):
            raise PageNotFoundError(name)

        for language, platform in self.candidates(options):
            text = self.store.read_page(platform, name, language)
            if text is not None:
                logger.debug(f"Resolved {name!r} in {platform!r} (language {language!r})")
                return parse_page(text, default_name=" ".join(tokens))

        raise PageNotFoundError(name)
