"""REST transport abstractions and implementations."""

from .base import AdminTransport
from .http import HttpTransport

__all__ = ["AdminTransport", "HttpTransport"]
