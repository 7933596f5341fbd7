"""
Workflow automation engine: definitions, lifecycle rules and execution.
"""

from .engine import WorkflowExecutor, evaluate_conditions, interpolate
from .dispatch import ActionDispatcher, create_default_dispatcher
from .persistence import WorkflowStore, InMemoryWorkflowStore
from .service import WorkflowService

__version__ = "1.0.0"

__all__ = [
    "WorkflowExecutor",
    "evaluate_conditions",
    "interpolate",
    "ActionDispatcher",
    "create_default_dispatcher",
    "WorkflowStore",
    "InMemoryWorkflowStore",
    "WorkflowService",
]
