"""Treasure hunting across nested iframes and popup windows."""

__version__ = "0.1.0"
