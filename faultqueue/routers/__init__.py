"""Operator API routers."""
