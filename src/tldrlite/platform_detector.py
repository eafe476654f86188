"""Host platform detection for tldr page directories.

tldr-pages stores pages in one directory per platform tag. The tags do not
match Python's platform.system() names, so this module owns the mapping and
the fixed order in which platform directories are searched.

Public API:
    PlatformDetector: Detect the tldr platform tag of the running host
    KNOWN_PLATFORMS: Platform directories shipped in the archive
    fallback_platforms: Ordered, de-duplicated platform search chain
"""

import logging
import platform
import re

logger = logging.getLogger(__name__)

COMMON_PLATFORM = "common"

_TAG_RE = re.compile(r"^[a-z0-9_]+$")

# Search order after the configured platform and "common"
KNOWN_PLATFORMS = ("linux", "osx", "windows", "android", "sunos", "freebsd", "openbsd", "netbsd")

_SYSTEM_TO_PLATFORM = {
    "Darwin": "osx",
    "Linux": "linux",
    "Windows": "windows",
    "SunOS": "sunos",
    "FreeBSD": "freebsd",
    "OpenBSD": "openbsd",
    "NetBSD": "netbsd",
}


class PlatformDetector:
    """Detect tldr platform tag for the current host."""

    @classmethod
    def detect_platform(cls) -> str:
        """Detect operating platform.

        Returns:
            Tag from KNOWN_PLATFORMS, or "common" when the host is unknown
        """
        system = platform.system()
        return _SYSTEM_TO_PLATFORM.get(system, COMMON_PLATFORM)

    @classmethod
    def normalize(cls, name: str) -> str:
        """Map an OS or kernel name to its tldr platform tag.

        Accepts platform.system() names ("Darwin") as well as tags that are
        already normalized ("osx", "macos"). Any other tag is passed through
        lowercased, so platform directories not listed in KNOWN_PLATFORMS
        can still be selected.

        Args:
            name: OS name or platform tag

        Returns:
            tldr platform tag

        Example:
            >>> PlatformDetector.normalize("Darwin")
            'osx'
        """
        if name in _SYSTEM_TO_PLATFORM:
            return _SYSTEM_TO_PLATFORM[name]

        lowered = name.strip().lower()
        if not lowered:
            return COMMON_PLATFORM
        if lowered in ("darwin", "macos"):
            return "osx"
        if lowered.startswith("win"):
            return "windows"
        if not _TAG_RE.match(lowered):
            logger.debug(f"Ignoring invalid platform tag: {name!r}")
            return COMMON_PLATFORM
        return lowered


def fallback_platforms(configured: str) -> list[str]:
    """Build the platform directory search chain.

    Order: configured platform, "common", then KNOWN_PLATFORMS in their fixed
    order. Each tag appears once.

    Args:
        configured: Platform tag chosen by the user or detected from the host

    Returns:
        Ordered list of platform tags

    Example:
        >>> fallback_platforms("osx")
        ['osx', 'common', 'linux', 'windows', 'android', 'sunos', 'freebsd', 'openbsd', 'netbsd']
    """
    chain: list[str] = []
    for tag in (configured, COMMON_PLATFORM, *KNOWN_PLATFORMS):
        if tag and tag not in chain:
            chain.append(tag)
    return chain
