"""Controller runtime: work queue, workers and watch feeds."""

from __future__ import annotations

from .controller import Controller
from .queue import WorkQueue

__all__ = ["Controller", "WorkQueue"]
