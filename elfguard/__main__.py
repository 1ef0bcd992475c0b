"""Entry point for ``python -m elfguard``."""

from elfguard.cli import main

if __name__ == "__main__":
    main()
