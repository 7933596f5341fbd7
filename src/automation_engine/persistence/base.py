"""
Store interface for workflow definitions and execution records.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..models.workflow import Workflow, WorkflowStatus
from ..models.execution import WorkflowExecution


class WorkflowStore(ABC):
    """
    Persistence contract used by the service and the execution engine.

    Every lookup is scoped by tenant_id together with the primary key.
    """

    async def close(self) -> None:
        return None

    # Workflow Definitions

    @abstractmethod
    async def create_workflow(self, workflow: Workflow) -> Workflow:
        """Insert a workflow, assigning an id if it has none."""
        pass

    @abstractmethod
    async def get_workflow(self, workflow_id: str, tenant_id: str) -> Optional[Workflow]:
        pass

    @abstractmethod
    async def list_workflows(
        self,
        tenant_id: str,
        status: Optional[WorkflowStatus] = None,
        search: Optional[str] = None,
    ) -> List[Workflow]:
        pass

    @abstractmethod
    async def update_workflow(self, workflow: Workflow) -> Workflow:
        """
        Replace the stored definition. Run statistics are not overwritten.

        Raises:
            WorkflowNotFoundError: No such workflow for the tenant
        """
        pass

    @abstractmethod
    async def delete_workflow(self, workflow_id: str, tenant_id: str) -> bool:
        pass

    @abstractmethod
    async def increment_run_count(self, workflow_id: str, tenant_id: str, at: datetime) -> None:
        """Atomically add one to run_count and set last_run."""
        pass

    # Workflow Executions

    @abstractmethod
    async def save_execution(self, execution: WorkflowExecution) -> None:
        """Insert or replace an execution record. A finished record is never replaced."""
        pass

    @abstractmethod
    async def mark_cancelled(self, execution_id: str, tenant_id: str, at: datetime) -> Optional[WorkflowExecution]:
        """
        Close a record as cancelled if it is still running.

        Returns:
            The cancelled record, or None if it is missing or already finished
        """
        pass

    @abstractmethod
    async def get_execution(self, execution_id: str, tenant_id: str) -> Optional[WorkflowExecution]:
        pass

    @abstractmethod
    async def list_executions(self, workflow_id: str, tenant_id: str, limit: int = 50) -> List[WorkflowExecution]:
        """Executions of a workflow, newest first."""
        pass
