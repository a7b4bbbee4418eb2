"""API module."""

from .main import app, create_app, main
from .routes import router

__all__ = ["app", "create_app", "main", "router"]
