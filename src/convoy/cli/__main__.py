"""Entry point for running the CLI as a module."""

from convoy.cli.main import main


if __name__ == "__main__":
    main()
