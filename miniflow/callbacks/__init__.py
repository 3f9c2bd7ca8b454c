"""Callback/hook system for miniflow run lifecycle events."""

from miniflow.callbacks.base import BaseCallback, MiniflowCallback
from miniflow.callbacks.logging import LoggingCallback

__all__ = ["BaseCallback", "MiniflowCallback", "LoggingCallback"]
