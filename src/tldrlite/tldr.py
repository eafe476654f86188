"""Facade over the cache store, page resolver and fuzzy index.

One Tldr object serves one invocation:

    initialize() -> find_page(tokens) -> (on miss) suggest(tokens)

It returns typed results and raises typed errors; printing is left to the
presentation layer (renderer, workflow, cli).
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from tldrlite.archive_fetcher import ArchiveFetcher
from tldrlite.cache_store import CacheState, CacheStore
from tldrlite.config_manager import TldrConfig, TldrOptions
from tldrlite.fuzzy_index import CmdInfo, CmdsIndex, FuzzyIndex
from tldrlite.page_resolver import Page, PageNotFoundError, PageResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LookupResult:
    """Outcome of Tldr.lookup.

    Attributes:
        page: Resolved page, or None when no page exists
        suggestions: Fuzzy suggestions (filled when fuzzy is on and there are no examples)
    """

    page: Page | None
    suggestions: tuple[CmdInfo, ...] = field(default_factory=tuple)

    @property
    def found(self) -> bool:
        return self.page is not None


class Tldr:
    """Entry point used by the CLI.

    Example:
        >>> t = Tldr(Path("~/.tldr").expanduser(), TldrOptions(platform="linux"))
        >>> state = t.initialize()
        >>> page = t.find_page(["tar"])
    """

    def __init__(
        self,
        path: Path,
        options: TldrOptions,
        config: TldrConfig | None = None,
        fetcher: ArchiveFetcher | None = None,
    ):
        config = config or TldrConfig()
        self.options = options
        self.cache = CacheStore(
            path,
            ttl=config.cache_ttl_seconds,
            fetcher=fetcher,
            source_url=config.source_url,
            fetch_timeout=config.fetch_timeout,
        )
        self.resolver = PageResolver(self.cache.store)
        self.index = FuzzyIndex(self.cache.store)

    def initialize(self) -> CacheState:
        """Prepare the snapshot. Raises CacheStoreError when none is usable."""
        return self.cache.initialize(self.options)

    def find_page(self, tokens: Sequence[str]) -> Page:
        """Resolve a page. Raises PageNotFoundError on a miss."""
        return self.resolver.find_page(tokens, self.options)

    def load_index_file(self) -> CmdsIndex:
        """Load index.json. Raises IndexLoadError."""
        return self.index.load_index_file()

    def suggest(self, tokens: Sequence[str]) -> list[CmdInfo]:
        """Fuzzy suggestions for tokens. Raises IndexLoadError."""
        return self.index.search(tokens)

    def lookup(self, tokens: Sequence[str], fuzzy: bool = False) -> LookupResult:
        """Find a page, falling back to suggestions when fuzzy is enabled.

        A page without examples also gets suggestions.

        Raises:
            IndexLoadError: If suggestions are requested and the index is unusable
        """
        page = None
        try:
            page = self.find_page(tokens)
        except PageNotFoundError as e:
            logger.debug(str(e))

        if not fuzzy or (page is not None and page.cmd_examples):
            return LookupResult(page=page)
        return LookupResult(page=page, suggestions=tuple(self.suggest(tokens)))
