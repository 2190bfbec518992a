"""Domain port definitions for adapters."""

from __future__ import annotations

from .clock import Clock, utcnow
from .stores import ObjectStore, PolicyStore

__all__ = [
    "Clock",
    "ObjectStore",
    "PolicyStore",
    "utcnow",
]
