"""HTTP API for PanPal."""

from panpal.api.app import create_app

__all__ = ["create_app"]
