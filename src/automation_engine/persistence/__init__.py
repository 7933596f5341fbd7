"""
Persistence layer for the automation engine.
"""

from .base import WorkflowStore
from .memory import InMemoryWorkflowStore
from .repository import PostgresWorkflowStore

__all__ = ["WorkflowStore", "InMemoryWorkflowStore", "PostgresWorkflowStore"]
