"""Tacitus: location-aware question answering backend."""

__version__ = "0.1.0"
