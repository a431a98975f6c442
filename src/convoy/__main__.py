"""Main entry point dispatcher for convoy commands."""

from convoy.cli.main import main


if __name__ == "__main__":
    main()
