"""HTTP interface for pathway classification."""

from .app import create_app

__all__ = ["create_app"]
