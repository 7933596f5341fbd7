"""
Workflow execution tracking models.
"""

from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime
from pydantic import BaseModel, Field


class ExecutionStatus(str, Enum):
    """Workflow execution status."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class StepStatus(str, Enum):
    """Status of a single node visit."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class ExecutionStep(BaseModel):
    """A single node visit in a workflow execution."""
    id: str
    node_id: str
    node_name: str
    status: StepStatus = StepStatus.PENDING
    start_time: datetime
    end_time: Optional[datetime] = None
    error: Optional[str] = None
    output: Optional[Dict[str, Any]] = None


class WorkflowExecution(BaseModel):
    """Complete workflow execution record."""
    id: str
    workflow_id: str
    tenant_id: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    trigger_data: Dict[str, Any] = Field(default_factory=dict)
    steps: List[ExecutionStep] = Field(default_factory=list)
    started_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def is_finished(self) -> bool:
        return self.status != ExecutionStatus.RUNNING

    def successful_step(self, node_id: str) -> Optional[ExecutionStep]:
        """Return the successful step for a node, if the node already ran."""
        for step in self.steps:
            if step.node_id == node_id and step.status == StepStatus.SUCCESS:
                return step
        return None


class ExecutionSummary(BaseModel):
    """Summary of an execution for list views."""
    id: str
    workflow_id: str
    status: ExecutionStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    step_count: int = 0
    duration_ms: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def from_execution(cls, execution: WorkflowExecution) -> "ExecutionSummary":
        duration_ms = None
        if execution.completed_at:
            duration_ms = int((execution.completed_at - execution.started_at).total_seconds() * 1000)
        return cls(
            id=execution.id,
            workflow_id=execution.workflow_id,
            status=execution.status,
            started_at=execution.started_at,
            completed_at=execution.completed_at,
            step_count=len(execution.steps),
            duration_ms=duration_ms,
            error=execution.error,
        )
