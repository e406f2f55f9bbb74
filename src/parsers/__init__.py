"""Webhook parsers."""

from .asana_parser import AsanaEventParser

__all__ = [
    "AsanaEventParser",
]
