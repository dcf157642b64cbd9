"""Web interface for Course Shelf."""

from .server import create_app

__all__ = ["create_app"]
