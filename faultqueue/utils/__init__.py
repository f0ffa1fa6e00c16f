"""Utility helpers for the fault queue reconciler."""
