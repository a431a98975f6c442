"""Tests for logging setup."""

import logging

from rich.logging import RichHandler

from convoy.utils.logging import setup_logging


def test_plain_handler():
    setup_logging("debug")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert isinstance(root.handlers[0], logging.StreamHandler)
    assert logging.getLogger("docker").level == logging.WARNING


def test_rich_handler():
    setup_logging("WARNING", rich_output=True)

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert isinstance(root.handlers[0], RichHandler)


def test_unknown_level_defaults_to_info():
    setup_logging("chatty")

    assert logging.getLogger().level == logging.INFO
