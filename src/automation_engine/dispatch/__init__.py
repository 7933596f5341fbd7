"""
Action dispatch for workflow action nodes.
"""

from .base import ActionDispatcher, ActionHandler, DispatcherSettings
from .registry import ActionRegistry, create_default_dispatcher

__all__ = [
    "ActionDispatcher",
    "ActionHandler",
    "DispatcherSettings",
    "ActionRegistry",
    "create_default_dispatcher",
]
