"""Perfwatch command line interface."""

from perfwatch.cli.main import app

__all__ = ["app"]
