"""
PostgreSQL store for workflow definitions and executions.
"""

import logging
import json
import uuid
from typing import Optional, List
from datetime import datetime
import asyncpg

from ..errors import WorkflowNotFoundError
from ..models.workflow import Workflow, WorkflowStatus
from ..models.execution import ExecutionStatus, WorkflowExecution
from .base import WorkflowStore

logger = logging.getLogger(__name__)


def _json(value) -> str:
    return json.dumps(value, default=str)


def _load(value):
    if isinstance(value, str):
        return json.loads(value)
    return value


def _key(value: Optional[str]) -> Optional[uuid.UUID]:
    """Primary key for a path id; None if it cannot be a UUID."""
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class PostgresWorkflowStore(WorkflowStore):
    """
    asyncpg-backed store.

    Handles persistence for:
    - Workflow definitions (nodes, connections and tags as JSONB)
    - Workflow executions (trigger data and steps as JSONB)
    """

    def __init__(self, pool: asyncpg.Pool):
        """
        Initialize store.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    async def close(self):
        await self.pool.close()

    async def init_tables(self):
        """Initialize database tables."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS automation_workflows (
                    id UUID PRIMARY KEY,
                    tenant_id VARCHAR(255) NOT NULL,
                    name VARCHAR(255) NOT NULL,
                    description TEXT,
                    status VARCHAR(50) NOT NULL DEFAULT 'draft',
                    nodes JSONB NOT NULL DEFAULT '[]',
                    connections JSONB NOT NULL DEFAULT '[]',
                    tags JSONB NOT NULL DEFAULT '[]',
                    run_count INTEGER NOT NULL DEFAULT 0,
                    last_run TIMESTAMPTZ,
                    created_by VARCHAR(255),
                    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS automation_executions (
                    id UUID PRIMARY KEY,
                    workflow_id UUID NOT NULL,
                    tenant_id VARCHAR(255) NOT NULL,
                    status VARCHAR(50) NOT NULL DEFAULT 'running',
                    trigger_data JSONB,
                    steps JSONB NOT NULL DEFAULT '[]',
                    error TEXT,
                    started_at TIMESTAMPTZ NOT NULL,
                    completed_at TIMESTAMPTZ
                )
            """)

            # Indexes
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_automation_workflows_tenant ON automation_workflows(tenant_id, status)")
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_automation_executions_workflow ON automation_executions(workflow_id, started_at DESC)")
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_automation_executions_status ON automation_executions(status)")

            logger.info("Automation tables initialized")

    # Workflow Definitions

    async def create_workflow(self, workflow: Workflow) -> Workflow:
        """Create a new workflow definition."""
        data = workflow.model_dump(mode="json")
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("""
                INSERT INTO automation_workflows
                (id, tenant_id, name, description, status, nodes, connections, tags, run_count, created_by)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                RETURNING *
            """,
                workflow.id or str(uuid.uuid4()),
                workflow.tenant_id,
                workflow.name,
                workflow.description,
                workflow.status.value,
                _json(data["nodes"]),
                _json(data["connections"]),
                _json(data["tags"]),
                workflow.run_count,
                workflow.created_by,
            )
            return self._row_to_workflow(row)

    async def get_workflow(self, workflow_id: str, tenant_id: str) -> Optional[Workflow]:
        """Get a workflow by ID within a tenant."""
        key = _key(workflow_id)
        if key is None:
            return None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM automation_workflows WHERE id = $1 AND tenant_id = $2",
                key,
                tenant_id,
            )
            if row:
                return self._row_to_workflow(row)
            return None

    async def list_workflows(
        self,
        tenant_id: str,
        status: Optional[WorkflowStatus] = None,
        search: Optional[str] = None,
    ) -> List[Workflow]:
        """List workflows for a tenant with optional filters."""
        query = "SELECT * FROM automation_workflows WHERE tenant_id = $1"
        params = [tenant_id]
        param_idx = 2

        if status:
            query += f" AND status = ${param_idx}"
            params.append(WorkflowStatus(status).value)
            param_idx += 1

        if search:
            query += f" AND (name ILIKE ${param_idx} OR description ILIKE ${param_idx})"
            params.append(f"%{search}%")
            param_idx += 1

        query += " ORDER BY updated_at DESC"

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
            return [self._row_to_workflow(row) for row in rows]

    async def update_workflow(self, workflow: Workflow) -> Workflow:
        """Replace a workflow definition."""
        key = _key(workflow.id)
        if key is None:
            raise WorkflowNotFoundError("Workflow not found", workflow.id)
        data = workflow.model_dump(mode="json")
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("""
                UPDATE automation_workflows
                SET name = $1, description = $2, status = $3, nodes = $4, connections = $5,
                    tags = $6, updated_at = CURRENT_TIMESTAMP
                WHERE id = $7 AND tenant_id = $8
                RETURNING *
            """,
                workflow.name,
                workflow.description,
                workflow.status.value,
                _json(data["nodes"]),
                _json(data["connections"]),
                _json(data["tags"]),
                key,
                workflow.tenant_id,
            )
            if row is None:
                raise WorkflowNotFoundError("Workflow not found", workflow.id)
            return self._row_to_workflow(row)

    async def delete_workflow(self, workflow_id: str, tenant_id: str) -> bool:
        """Delete a workflow definition."""
        key = _key(workflow_id)
        if key is None:
            return False
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM automation_workflows WHERE id = $1 AND tenant_id = $2",
                key,
                tenant_id,
            )
            return result.endswith(" 1")

    async def increment_run_count(self, workflow_id: str, tenant_id: str, at: datetime) -> None:
        """Bump run statistics in a single statement."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                UPDATE automation_workflows
                SET run_count = run_count + 1, last_run = $1
                WHERE id = $2 AND tenant_id = $3
            """,
                at,
                _key(workflow_id),
                tenant_id,
            )

    def _row_to_workflow(self, row) -> Workflow:
        """Convert database row to Workflow."""
        return Workflow(
            id=str(row["id"]),
            tenant_id=row["tenant_id"],
            name=row["name"],
            description=row["description"],
            status=WorkflowStatus(row["status"]),
            nodes=_load(row["nodes"]) or [],
            connections=_load(row["connections"]) or [],
            tags=_load(row["tags"]) or [],
            run_count=row["run_count"] or 0,
            last_run=row["last_run"],
            created_by=row["created_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # Workflow Executions

    async def save_execution(self, execution: WorkflowExecution) -> None:
        """Insert or replace an execution record unless it already finished."""
        data = execution.model_dump(mode="json")
        async with self.pool.acquire() as conn:
            await conn.execute("""
                INSERT INTO automation_executions
                (id, workflow_id, tenant_id, status, trigger_data, steps, error, started_at, completed_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                ON CONFLICT (id) DO UPDATE
                SET status = EXCLUDED.status, steps = EXCLUDED.steps,
                    error = EXCLUDED.error, completed_at = EXCLUDED.completed_at
                WHERE automation_executions.status = 'running'
            """,
                execution.id,
                execution.workflow_id,
                execution.tenant_id,
                execution.status.value,
                _json(data["trigger_data"]),
                _json(data["steps"]),
                execution.error,
                execution.started_at,
                execution.completed_at,
            )

    async def get_execution(self, execution_id: str, tenant_id: str) -> Optional[WorkflowExecution]:
        """Get an execution by ID within a tenant."""
        key = _key(execution_id)
        if key is None:
            return None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM automation_executions WHERE id = $1 AND tenant_id = $2",
                key,
                tenant_id,
            )
            if row:
                return self._row_to_execution(row)
            return None

    async def mark_cancelled(self, execution_id: str, tenant_id: str, at: datetime) -> Optional[WorkflowExecution]:
        """Cancel a record only while it is still running."""
        key = _key(execution_id)
        if key is None:
            return None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("""
                UPDATE automation_executions
                SET status = $1, error = $2, completed_at = $3
                WHERE id = $4 AND tenant_id = $5 AND status = 'running'
                RETURNING *
            """,
                ExecutionStatus.CANCELLED.value,
                "Execution cancelled",
                at,
                key,
                tenant_id,
            )
            if row:
                return self._row_to_execution(row)
            return None

    async def list_executions(self, workflow_id: str, tenant_id: str, limit: int = 50) -> List[WorkflowExecution]:
        """List executions of a workflow, newest first."""
        key = _key(workflow_id)
        if key is None:
            return []
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM automation_executions
                WHERE workflow_id = $1 AND tenant_id = $2
                ORDER BY started_at DESC LIMIT $3
            """,
                key,
                tenant_id,
                limit,
            )
            return [self._row_to_execution(row) for row in rows]

    def _row_to_execution(self, row) -> WorkflowExecution:
        """Convert database row to WorkflowExecution."""
        return WorkflowExecution(
            id=str(row["id"]),
            workflow_id=str(row["workflow_id"]),
            tenant_id=row["tenant_id"],
            status=row["status"],
            trigger_data=_load(row["trigger_data"]) or {},
            steps=_load(row["steps"]) or [],
            error=row["error"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
        )
