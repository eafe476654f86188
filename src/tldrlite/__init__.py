"""tldrlite - example-driven command help from a cached tldr-pages snapshot

Philosophy:
- Ruthless simplicity
- Brick architecture (self-contained modules)
- Serve a stale snapshot rather than fail offline
- Fail fast with helpful guidance

tldrlite keeps a local copy of the tldr-pages archive under ~/.tldr, resolves
a command name to its page across a platform/language fallback chain, and
suggests close command names when no page exists.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
