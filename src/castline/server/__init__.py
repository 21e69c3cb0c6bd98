"""HTTP API for castline."""

from .app import create_app
from .server import create_server

__all__ = ["create_app", "create_server"]
