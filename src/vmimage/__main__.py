"""Main entry point for ``python -m vmimage``."""

from vmimage.cli.main import main


if __name__ == "__main__":
    main()
