"""Nozule hotel admin: explicit-state screens over the Nozule REST API."""

__version__ = "0.1.0"
