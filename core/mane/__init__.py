"""Mane Core - natural-language file organisation agent."""

__version__ = "0.1.0"
