"""Core helpers: security, storage and time utilities."""
