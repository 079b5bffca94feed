"""HTTP API for sessionlens."""

from sessionlens.api.server import create_app

__all__ = ["create_app"]
