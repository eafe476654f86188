"""CLI entry point for tldr.

This module wires the flags to the Tldr facade and prints its results:
- Colored page output (terminal)
- Script filter JSON (launcher workflow, -w)
- Fuzzy command suggestions on a miss (-f)

Commands:
    tldr <cmd> [<subcmd>...]     # Show examples for a command
    tldr -u                      # Refresh the local snapshot
    tldr -w -f <partial>         # Launcher output with suggestions
    tldr --save -p <platform>    # Store platform/language defaults

Exit codes:
    0  Page shown, page missing, or stale snapshot served
    1  No usable snapshot, unreadable index, or bad configuration
"""

import logging
import sys

import click

from tldrlite import __version__
from tldrlite.cache_store import CacheState, CacheStoreError
from tldrlite.click_command import TldrCommand
from tldrlite.config_manager import (
    ConfigError,
    ConfigManager,
    build_options,
    resolve_cache_root,
)
from tldrlite.fuzzy_index import IndexLoadError
from tldrlite.page_resolver import PageNotFoundError
from tldrlite.platform_detector import PlatformDetector
from tldrlite.renderer import NOT_FOUND_MESSAGE, PageRenderer
from tldrlite.tldr import Tldr
from tldrlite.workflow import Workflow, page_items, suggestion_items

logger = logging.getLogger(__name__)


class TldrError(Exception):
    """Raised for fatal CLI errors."""

    pass


def render_to_out(t: Tldr, cmds: tuple[str, ...], enable_fuzzy: bool) -> None:
    """Print the page, or the not-found message and optional suggestions."""
    renderer = PageRenderer()
    try:
        page = t.find_page(cmds)
    except PageNotFoundError:
        click.echo(NOT_FOUND_MESSAGE, err=True)
        if enable_fuzzy:
            try:
                renderer.render_suggestions(t.suggest(cmds))
            except IndexLoadError as e:
                raise TldrError(str(e)) from e
        return

    renderer.render_page(page)


def render_to_workflow(t: Tldr, cmds: tuple[str, ...], enable_fuzzy: bool) -> None:
    """Print script filter JSON for the launcher."""
    wf = Workflow()
    wf.empty_warning("No matching query", "Try a different query")

    try:
        result = t.lookup(cmds, fuzzy=enable_fuzzy)
    except IndexLoadError as e:
        wf.fatal(f"an error occurs: {e}")
    else:
        for item in page_items(result.page) + suggestion_items(result.suggestions):
            wf.append(item)

    wf.output(sys.stdout)


def save_preferences(platform: str | None, language: str | None) -> None:
    """Persist the platform and language flags to the config file.

    Raises:
        TldrError: If the config file cannot be read or written
    """
    try:
        root = resolve_cache_root()
        config = ConfigManager.load_config(root)
        if platform is not None:
            config.platform = PlatformDetector.normalize(platform)
        if language is not None:
            config.language = language
        ConfigManager.save_config(config, root)
    except ConfigError as e:
        raise TldrError(str(e)) from e

    click.echo(f"Saved preferences to {ConfigManager.get_config_path(root)}", err=True)


def initialize(
    platform: str | None, language: str | None, update: bool
) -> tuple[Tldr, CacheState]:
    """Build the facade from config and flags and prepare the snapshot.

    Raises:
        TldrError: If configuration or the snapshot is unusable
    """
    try:
        root = resolve_cache_root()
        config = ConfigManager.load_config(root)
        options = build_options(config, platform=platform, language=language, force_update=update)
        logger.debug(f"Cache root: {root}, options: {options}")
        t = Tldr(root, options, config)
        return t, t.initialize()
    except (ConfigError, CacheStoreError) as e:
        raise TldrError(str(e)) from e


@click.command(
    cls=TldrCommand,
    context_settings={"help_option_names": ["--help", "-h"]},
)
@click.argument("command", nargs=-1)
@click.option(
    "--platform", "-p", default=None, help="Platform tag (linux, osx, windows, freebsd, common, ...)"
)
@click.option("--language", "-l", default=None, help="Language tag, e.g. es, pt_BR")
@click.option("--update", "-u", is_flag=True, help="Update the local tldr pages")
@click.option("--workflow", "-w", is_flag=True, help="Render for a launcher workflow (JSON)")
@click.option("--fuzzy", "-f", is_flag=True, help="Suggest commands when no page exists")
@click.option("--save", is_flag=True, help="Store -p/-l as defaults in the config file")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: click.Context,
    command: tuple[str, ...],
    platform: str | None,
    language: str | None,
    update: bool,
    workflow: bool,
    fuzzy: bool,
    save: bool,
    verbose: bool,
) -> None:
    """tldr - show command examples.

    \b
    EXAMPLES:
        $ tldr tar
        $ tldr git checkout
        $ tldr -p osx ls
        $ tldr -u
        $ tldr -w -f gti
        $ tldr --save -p linux -l es

    \b
    CONFIGURATION:
        Cache: ~/.tldr (override with TLDR_HOME)
        Config file: ~/.tldr.toml
        Keys: platform, language, cache_ttl_days, source_url, fetch_timeout
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format="%(message)s")

    if not command and not update and not save:
        click.echo(ctx.get_help())
        ctx.exit(0)

    try:
        if save:
            save_preferences(platform, language)
            if not command and not update:
                ctx.exit(0)

        t, state = initialize(platform, language, update)

        if not command:
            if state.warning:
                click.echo(state.warning, err=True)
            ctx.exit(0)

        # workflow will not show cache expired message
        if workflow:
            render_to_workflow(t, command, fuzzy)
            return

        if state.warning:
            click.echo(state.warning, err=True)
        render_to_out(t, command, fuzzy)

    except TldrError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


if __name__ == "__main__":
    main()
