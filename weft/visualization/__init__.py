"""Terminal visualization of agent runs."""

from .console import RichTraceHandler

__all__ = ["RichTraceHandler"]
