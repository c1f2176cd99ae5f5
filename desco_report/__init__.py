"""DESCO report server."""
