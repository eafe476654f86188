"""Allow `python -m tldrlite`."""

from tldrlite.cli import main

if __name__ == "__main__":
    main()
