"""The bzlwatch command line."""

from ._app import create_app, main, run_watch

__all__ = ["create_app", "main", "run_watch"]
