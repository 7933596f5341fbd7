"""
Workflow evaluation and execution.
"""

from .conditions import evaluate_conditions, resolve_path, MISSING
from .templates import interpolate, interpolate_value
from .lifecycle import validate_for_activation, toggle_status, duplicate, node_display_name
from .executor import WorkflowExecutor, ExecutionListener

__all__ = [
    "evaluate_conditions",
    "resolve_path",
    "MISSING",
    "interpolate",
    "interpolate_value",
    "validate_for_activation",
    "toggle_status",
    "duplicate",
    "node_display_name",
    "WorkflowExecutor",
    "ExecutionListener",
]
