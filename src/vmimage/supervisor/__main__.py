"""Supervisor entry point for running ``python -m vmimage.supervisor``."""

from vmimage.cli.main import supervise_main


if __name__ == "__main__":
    supervise_main()
