"""Audited read-only SQL query tool."""

from audited_query.__about__ import __version__

__all__ = ["__version__"]
