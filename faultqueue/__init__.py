"""Fault queue reconciler for media acquisition requests."""

__version__ = "0.1.0"
