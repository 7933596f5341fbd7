"""
REST API routes for the automation engine.
"""

import logging
from typing import Optional, List

from fastapi import APIRouter, HTTPException, Query, Header

from ..errors import (
    AutomationError,
    ActivationError,
    WorkflowNotFoundError,
    WorkflowNotActiveError,
    ExecutionNotFoundError,
    ExecutionNotRunningError,
    PersistenceError,
)
from ..models.workflow import (
    Workflow,
    WorkflowCreate,
    WorkflowUpdate,
    WorkflowExport,
    WorkflowStatus,
    ExecuteRequest,
)
from ..models.execution import WorkflowExecution, ExecutionSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["workflows"])


# Set by the main app
_service = None


def set_dependencies(service):
    """Set dependencies from main app."""
    global _service
    _service = service


def _get_service():
    if not _service:
        raise HTTPException(status_code=503, detail="Service not ready")
    return _service


def _http_error(e: AutomationError) -> HTTPException:
    """Map engine errors to HTTP responses."""
    if isinstance(e, ActivationError):
        return HTTPException(status_code=400, detail={"code": e.code, "message": e.message})
    if isinstance(e, (WorkflowNotFoundError, ExecutionNotFoundError)):
        return HTTPException(status_code=404, detail=e.message)
    if isinstance(e, (WorkflowNotActiveError, ExecutionNotRunningError)):
        return HTTPException(status_code=409, detail=e.message)
    if isinstance(e, PersistenceError):
        return HTTPException(status_code=503, detail=e.message)
    logger.error(f"Unhandled automation error: {e.message}")
    return HTTPException(status_code=500, detail=e.message)


# Workflow Definitions

@router.post("/workflows", response_model=Workflow, status_code=201)
async def create_workflow(
    definition: WorkflowCreate,
    x_tenant_id: str = Header(...),
    x_user_id: Optional[str] = Header(default=None),
):
    """Create a new workflow definition."""
    service = _get_service()
    try:
        return await service.create_workflow(x_tenant_id, definition, created_by=x_user_id)
    except AutomationError as e:
        raise _http_error(e)


@router.get("/workflows", response_model=List[Workflow])
async def list_workflows(
    x_tenant_id: str = Header(...),
    status: Optional[WorkflowStatus] = None,
    search: Optional[str] = None,
):
    """List workflow definitions for the tenant."""
    service = _get_service()
    try:
        return await service.list_workflows(x_tenant_id, status=status, search=search)
    except AutomationError as e:
        raise _http_error(e)


@router.post("/workflows/import", response_model=Workflow, status_code=201)
async def import_workflow(
    exported: WorkflowExport,
    x_tenant_id: str = Header(...),
    x_user_id: Optional[str] = Header(default=None),
):
    """Create a draft workflow from an exported definition."""
    service = _get_service()
    try:
        return await service.import_workflow(x_tenant_id, exported, created_by=x_user_id)
    except AutomationError as e:
        raise _http_error(e)


@router.get("/workflows/{workflow_id}", response_model=Workflow)
async def get_workflow(workflow_id: str, x_tenant_id: str = Header(...)):
    """Get a workflow definition by ID."""
    service = _get_service()
    try:
        return await service.get_workflow(x_tenant_id, workflow_id)
    except AutomationError as e:
        raise _http_error(e)


@router.patch("/workflows/{workflow_id}", response_model=Workflow)
async def update_workflow(workflow_id: str, changes: WorkflowUpdate, x_tenant_id: str = Header(...)):
    """Update fields of a workflow definition."""
    service = _get_service()
    try:
        return await service.update_workflow(x_tenant_id, workflow_id, changes)
    except AutomationError as e:
        raise _http_error(e)


@router.delete("/workflows/{workflow_id}")
async def delete_workflow(workflow_id: str, x_tenant_id: str = Header(...)):
    """Delete a workflow definition."""
    service = _get_service()
    try:
        await service.delete_workflow(x_tenant_id, workflow_id)
    except AutomationError as e:
        raise _http_error(e)
    return {"id": workflow_id, "deleted": True}


@router.post("/workflows/{workflow_id}/toggle-status", response_model=Workflow)
async def toggle_status(workflow_id: str, x_tenant_id: str = Header(...)):
    """Activate an inactive or draft workflow, or deactivate an active one."""
    service = _get_service()
    try:
        return await service.toggle_status(x_tenant_id, workflow_id)
    except AutomationError as e:
        raise _http_error(e)


@router.post("/workflows/{workflow_id}/duplicate", response_model=Workflow, status_code=201)
async def duplicate_workflow(
    workflow_id: str,
    x_tenant_id: str = Header(...),
    x_user_id: Optional[str] = Header(default=None),
):
    """Copy a workflow into a new draft."""
    service = _get_service()
    try:
        return await service.duplicate_workflow(x_tenant_id, workflow_id, created_by=x_user_id)
    except AutomationError as e:
        raise _http_error(e)


@router.get("/workflows/{workflow_id}/export", response_model=WorkflowExport)
async def export_workflow(workflow_id: str, x_tenant_id: str = Header(...)):
    """Export a workflow definition as portable JSON."""
    service = _get_service()
    try:
        return await service.export_workflow(x_tenant_id, workflow_id)
    except AutomationError as e:
        raise _http_error(e)


# Executions

@router.post("/workflows/{workflow_id}/execute", response_model=WorkflowExecution)
async def execute_workflow(
    workflow_id: str,
    request: Optional[ExecuteRequest] = None,
    x_tenant_id: str = Header(...),
):
    """Execute a workflow with the given trigger data."""
    service = _get_service()
    request = request or ExecuteRequest()
    try:
        return await service.execute(
            x_tenant_id,
            workflow_id,
            request.trigger_data,
            background=request.background,
        )
    except AutomationError as e:
        raise _http_error(e)


@router.get("/workflows/{workflow_id}/executions", response_model=List[ExecutionSummary])
async def list_executions(
    workflow_id: str,
    x_tenant_id: str = Header(...),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
):
    """List executions of a workflow, newest first."""
    service = _get_service()
    try:
        executions = await service.list_executions(x_tenant_id, workflow_id, limit=limit)
    except AutomationError as e:
        raise _http_error(e)
    return [ExecutionSummary.from_execution(e) for e in executions]


@router.get("/executions/{execution_id}", response_model=WorkflowExecution)
async def get_execution(execution_id: str, x_tenant_id: str = Header(...)):
    """Get execution details including steps."""
    service = _get_service()
    try:
        return await service.get_execution(x_tenant_id, execution_id)
    except AutomationError as e:
        raise _http_error(e)


@router.post("/executions/{execution_id}/cancel", response_model=WorkflowExecution)
async def cancel_execution(execution_id: str, x_tenant_id: str = Header(...)):
    """Cancel a running execution."""
    service = _get_service()
    try:
        return await service.cancel_execution(x_tenant_id, execution_id)
    except AutomationError as e:
        raise _http_error(e)
