"""
Background Tasks

Periodic maintenance run inside the application process.
"""

from .cleanup_task import TokenJanitor

__all__ = ["TokenJanitor"]
