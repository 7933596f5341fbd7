"""
Automation engine data models.
"""

from .workflow import (
    Workflow,
    WorkflowStatus,
    WorkflowNode,
    TriggerNode,
    ActionNode,
    TriggerType,
    ActionType,
    WorkflowConnection,
    Condition,
    ConditionOperator,
    ConditionLogic,
    Position,
    WorkflowCreate,
    WorkflowUpdate,
    WorkflowExport,
    ExecuteRequest,
)
from .execution import (
    WorkflowExecution,
    ExecutionStatus,
    ExecutionStep,
    StepStatus,
    ExecutionSummary,
)

__all__ = [
    "Workflow",
    "WorkflowStatus",
    "WorkflowNode",
    "TriggerNode",
    "ActionNode",
    "TriggerType",
    "ActionType",
    "WorkflowConnection",
    "Condition",
    "ConditionOperator",
    "ConditionLogic",
    "Position",
    "WorkflowCreate",
    "WorkflowUpdate",
    "WorkflowExport",
    "ExecuteRequest",
    "WorkflowExecution",
    "ExecutionStatus",
    "ExecutionStep",
    "StepStatus",
    "ExecutionSummary",
]
