"""Monitoring helpers and the metric registry."""

from . import metrics, registry

__all__ = ["metrics", "registry"]
