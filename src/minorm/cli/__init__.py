"""minorm command-line interface."""

from minorm.cli.app import app

__all__ = ["app"]
