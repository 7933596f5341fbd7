"""
In-memory store, used for local runs and tests.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..errors import WorkflowNotFoundError
from ..models.workflow import Workflow, WorkflowStatus
from ..models.execution import ExecutionStatus, WorkflowExecution
from .base import WorkflowStore


class InMemoryWorkflowStore(WorkflowStore):
    """Dict-backed store. Records are copied on the way in and out."""

    def __init__(self):
        self._workflows: Dict[str, Workflow] = {}
        self._executions: Dict[str, WorkflowExecution] = {}
        self._lock = asyncio.Lock()

    async def create_workflow(self, workflow: Workflow) -> Workflow:
        now = datetime.now(timezone.utc)
        stored = workflow.model_copy(deep=True, update={
            "id": workflow.id or str(uuid.uuid4()),
            "created_at": now,
            "updated_at": now,
        })
        async with self._lock:
            self._workflows[stored.id] = stored
        return stored.model_copy(deep=True)

    async def get_workflow(self, workflow_id: str, tenant_id: str) -> Optional[Workflow]:
        workflow = self._workflows.get(workflow_id)
        if workflow is None or workflow.tenant_id != tenant_id:
            return None
        return workflow.model_copy(deep=True)

    async def list_workflows(
        self,
        tenant_id: str,
        status: Optional[WorkflowStatus] = None,
        search: Optional[str] = None,
    ) -> List[Workflow]:
        needle = search.lower() if search else None
        results = []
        for workflow in self._workflows.values():
            if workflow.tenant_id != tenant_id:
                continue
            if status and workflow.status != status:
                continue
            if needle and needle not in workflow.name.lower() and needle not in (workflow.description or "").lower():
                continue
            results.append(workflow.model_copy(deep=True))
        results.sort(key=lambda w: w.updated_at, reverse=True)
        return results

    async def update_workflow(self, workflow: Workflow) -> Workflow:
        async with self._lock:
            current = self._workflows.get(workflow.id)
            if current is None or current.tenant_id != workflow.tenant_id:
                raise WorkflowNotFoundError("Workflow not found", workflow.id)
            stored = workflow.model_copy(deep=True, update={
                "run_count": current.run_count,
                "last_run": current.last_run,
                "created_at": current.created_at,
                "updated_at": datetime.now(timezone.utc),
            })
            self._workflows[stored.id] = stored
        return stored.model_copy(deep=True)

    async def delete_workflow(self, workflow_id: str, tenant_id: str) -> bool:
        async with self._lock:
            workflow = self._workflows.get(workflow_id)
            if workflow is None or workflow.tenant_id != tenant_id:
                return False
            del self._workflows[workflow_id]
        return True

    async def increment_run_count(self, workflow_id: str, tenant_id: str, at: datetime) -> None:
        async with self._lock:
            workflow = self._workflows.get(workflow_id)
            if workflow is None or workflow.tenant_id != tenant_id:
                return
            self._workflows[workflow_id] = workflow.model_copy(update={
                "run_count": workflow.run_count + 1,
                "last_run": at,
            })

    async def save_execution(self, execution: WorkflowExecution) -> None:
        async with self._lock:
            current = self._executions.get(execution.id)
            if current is not None and current.is_finished:
                return
            self._executions[execution.id] = execution.model_copy(deep=True)

    async def mark_cancelled(self, execution_id: str, tenant_id: str, at: datetime) -> Optional[WorkflowExecution]:
        async with self._lock:
            current = self._executions.get(execution_id)
            if current is None or current.tenant_id != tenant_id or current.is_finished:
                return None
            cancelled = current.model_copy(deep=True, update={
                "status": ExecutionStatus.CANCELLED,
                "error": "Execution cancelled",
                "completed_at": at,
            })
            self._executions[execution_id] = cancelled
        return cancelled.model_copy(deep=True)

    async def get_execution(self, execution_id: str, tenant_id: str) -> Optional[WorkflowExecution]:
        execution = self._executions.get(execution_id)
        if execution is None or execution.tenant_id != tenant_id:
            return None
        return execution.model_copy(deep=True)

    async def list_executions(self, workflow_id: str, tenant_id: str, limit: int = 50) -> List[WorkflowExecution]:
        results = [
            e.model_copy(deep=True)
            for e in self._executions.values()
            if e.workflow_id == workflow_id and e.tenant_id == tenant_id
        ]
        results.sort(key=lambda e: e.started_at, reverse=True)
        return results[:limit]
