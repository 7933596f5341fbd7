"""
Tenant-scoped workflow operations used by the HTTP API.
"""

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .engine.executor import WorkflowExecutor
from .engine.lifecycle import duplicate, toggle_status, validate_for_activation
from .errors import (
    AutomationError,
    ExecutionNotFoundError,
    ExecutionNotRunningError,
    PersistenceError,
    WorkflowNotFoundError,
)
from .models.execution import ExecutionStatus, WorkflowExecution
from .models.workflow import (
    Workflow,
    WorkflowCreate,
    WorkflowExport,
    WorkflowStatus,
    WorkflowUpdate,
)
from .persistence.base import WorkflowStore

logger = logging.getLogger(__name__)

# Fields that may be cleared with an explicit null
_NULLABLE_FIELDS = {"description"}


@contextmanager
def _store_errors(action: str, workflow_id: Optional[str] = None):
    """Re-raise store failures as PersistenceError."""
    try:
        yield
    except AutomationError:
        raise
    except Exception as e:
        logger.error(f"Failed to {action}: {e}")
        raise PersistenceError(f"Failed to {action}: {e}", workflow_id) from e


class WorkflowService:
    """
    Manages workflow definitions and their executions for a tenant.

    Definition changes go through the lifecycle rules; executions go
    through the WorkflowExecutor, optionally as background tasks.
    """

    def __init__(self, store: WorkflowStore, executor: WorkflowExecutor, default_execution_limit: int = 50):
        self.store = store
        self.executor = executor
        self.default_execution_limit = default_execution_limit
        self._background: Dict[str, asyncio.Task] = {}

    # Workflow Definitions

    async def create_workflow(
        self,
        tenant_id: str,
        definition: WorkflowCreate,
        created_by: Optional[str] = None,
    ) -> Workflow:
        """Create a workflow. Status defaults to draft; an explicit active status is validated."""
        workflow = Workflow(
            tenant_id=tenant_id,
            name=definition.name,
            description=definition.description,
            status=definition.status or WorkflowStatus.DRAFT,
            nodes=definition.nodes,
            connections=definition.connections,
            tags=definition.tags,
            created_by=created_by,
        )
        if workflow.status == WorkflowStatus.ACTIVE:
            validate_for_activation(workflow)

        with _store_errors("create workflow"):
            created = await self.store.create_workflow(workflow)
        logger.info(f"Created workflow {created.id} for tenant {tenant_id}")
        return created

    async def get_workflow(self, tenant_id: str, workflow_id: str) -> Workflow:
        with _store_errors("load workflow", workflow_id):
            workflow = await self.store.get_workflow(workflow_id, tenant_id)
        if workflow is None:
            raise WorkflowNotFoundError("Workflow not found", workflow_id)
        return workflow

    async def list_workflows(
        self,
        tenant_id: str,
        status: Optional[WorkflowStatus] = None,
        search: Optional[str] = None,
    ) -> List[Workflow]:
        with _store_errors("list workflows"):
            return await self.store.list_workflows(tenant_id, status=status, search=search)

    async def update_workflow(self, tenant_id: str, workflow_id: str, changes: WorkflowUpdate) -> Workflow:
        """Apply a partial update. The result must satisfy activation rules if it is active."""
        current = await self.get_workflow(tenant_id, workflow_id)

        # Parsed values keep the node type tags
        updates = {}
        for name in changes.model_fields_set:
            value = getattr(changes, name)
            if value is not None or name in _NULLABLE_FIELDS:
                updates[name] = value
        merged = current.model_copy(update=updates)
        updated = Workflow.model_validate(merged.model_dump())
        if updated.status == WorkflowStatus.ACTIVE:
            validate_for_activation(updated)

        with _store_errors("update workflow", workflow_id):
            return await self.store.update_workflow(updated)

    async def delete_workflow(self, tenant_id: str, workflow_id: str) -> None:
        with _store_errors("delete workflow", workflow_id):
            deleted = await self.store.delete_workflow(workflow_id, tenant_id)
        if not deleted:
            raise WorkflowNotFoundError("Workflow not found", workflow_id)
        logger.info(f"Deleted workflow {workflow_id} for tenant {tenant_id}")

    async def toggle_status(self, tenant_id: str, workflow_id: str) -> Workflow:
        """Activate or deactivate a workflow. Raises ActivationError if it cannot go live."""
        workflow = await self.get_workflow(tenant_id, workflow_id)
        toggled = toggle_status(workflow)
        with _store_errors("update workflow", workflow_id):
            return await self.store.update_workflow(toggled)

    async def duplicate_workflow(self, tenant_id: str, workflow_id: str, created_by: Optional[str] = None) -> Workflow:
        workflow = await self.get_workflow(tenant_id, workflow_id)
        with _store_errors("create workflow", workflow_id):
            return await self.store.create_workflow(duplicate(workflow, created_by=created_by))

    async def export_workflow(self, tenant_id: str, workflow_id: str) -> WorkflowExport:
        workflow = await self.get_workflow(tenant_id, workflow_id)
        return WorkflowExport(
            name=workflow.name,
            description=workflow.description,
            nodes=workflow.nodes,
            connections=workflow.connections,
            tags=workflow.tags,
        )

    async def import_workflow(
        self,
        tenant_id: str,
        exported: WorkflowExport,
        created_by: Optional[str] = None,
    ) -> Workflow:
        """Create a draft workflow from an exported definition."""
        definition = WorkflowCreate(
            name=exported.name,
            description=exported.description,
            nodes=exported.nodes,
            connections=exported.connections,
            tags=exported.tags,
        )
        return await self.create_workflow(tenant_id, definition, created_by=created_by)

    # Workflow Executions

    async def execute(
        self,
        tenant_id: str,
        workflow_id: str,
        trigger_data: Optional[Dict[str, Any]] = None,
        background: bool = False,
    ) -> WorkflowExecution:
        """
        Execute a workflow.

        Args:
            tenant_id: Tenant owning the workflow
            workflow_id: Workflow to run
            trigger_data: Input context for the trigger node
            background: Return the running record and finish in a task

        Returns:
            The finished execution, or the running one when background is set
        """
        workflow = await self.get_workflow(tenant_id, workflow_id)

        if not background:
            return await self.executor.execute(workflow, trigger_data)

        execution = await self.executor.prepare(workflow, trigger_data)
        snapshot = execution.model_copy(deep=True)
        task = asyncio.create_task(self._run_in_background(workflow, execution))
        self._background[execution.id] = task
        return snapshot

    async def _run_in_background(self, workflow: Workflow, execution: WorkflowExecution) -> None:
        try:
            await self.executor.run(workflow, execution)
        except Exception as e:
            logger.error(f"Background execution {execution.id} aborted: {e}")
        finally:
            self._background.pop(execution.id, None)

    async def list_executions(self, tenant_id: str, workflow_id: str, limit: Optional[int] = None) -> List[WorkflowExecution]:
        await self.get_workflow(tenant_id, workflow_id)
        with _store_errors("list executions", workflow_id):
            return await self.store.list_executions(workflow_id, tenant_id, limit or self.default_execution_limit)

    async def get_execution(self, tenant_id: str, execution_id: str) -> WorkflowExecution:
        with _store_errors(f"load execution {execution_id}"):
            execution = await self.store.get_execution(execution_id, tenant_id)
        if execution is None:
            raise ExecutionNotFoundError("Execution not found", execution_id)
        return execution

    async def cancel_execution(self, tenant_id: str, execution_id: str) -> WorkflowExecution:
        """
        Cancel a running execution.

        Executions owned by this process stop at the next node boundary.
        Records left running by a process that is gone are closed directly.

        Raises:
            ExecutionNotRunningError: The execution finished before the cancel took effect
        """
        execution = await self.get_execution(tenant_id, execution_id)
        if execution.is_finished:
            raise ExecutionNotRunningError(f"Execution is not running: {execution.status.value}", execution.workflow_id)

        if self.executor.cancel(execution_id):
            await self.executor.wait_finished(execution_id)
            finished = await self.get_execution(tenant_id, execution_id)
            if finished.status != ExecutionStatus.CANCELLED:
                raise ExecutionNotRunningError(f"Execution is not running: {finished.status.value}", finished.workflow_id)
            return finished

        logger.warning(f"Execution {execution_id} has no live runner, marking cancelled")
        with _store_errors(f"cancel execution {execution_id}", execution.workflow_id):
            cancelled = await self.store.mark_cancelled(execution_id, tenant_id, datetime.now(timezone.utc))
        if cancelled is None:
            raise ExecutionNotRunningError("Execution is not running", execution.workflow_id)
        return cancelled

    async def close(self) -> None:
        """Wait for background executions to finish."""
        if self._background:
            await asyncio.gather(*self._background.values(), return_exceptions=True)
