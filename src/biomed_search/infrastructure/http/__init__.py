"""HTTP infrastructure shared by JSON API backends."""

from .base_client import BaseAPIClient

__all__ = ["BaseAPIClient"]
