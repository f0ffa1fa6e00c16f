"""Persistence-facing services used by the reconciler and the operator API."""
