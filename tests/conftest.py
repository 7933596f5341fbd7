"""
Shared fixtures for automation engine tests.
"""
import asyncio
import uuid
from typing import Any, Dict, List, Optional

import pytest

from automation_engine.dispatch import ActionDispatcher, DispatcherSettings, create_default_dispatcher
from automation_engine.engine.executor import WorkflowExecutor
from automation_engine.models.workflow import (
    ActionNode,
    ActionType,
    Condition,
    ConditionLogic,
    ConditionOperator,
    TriggerNode,
    TriggerType,
    Workflow,
    WorkflowConnection,
    WorkflowStatus,
)
from automation_engine.persistence.memory import InMemoryWorkflowStore
from automation_engine.service import WorkflowService

TENANT_ID = "tenant-1"


class RecordingDispatcher(ActionDispatcher):
    """Dispatcher double that records which nodes ran, keyed by config["name"]."""

    def __init__(self, failures: Optional[Dict[str, str]] = None):
        self.calls: List[str] = []
        self.contexts: Dict[str, Dict[str, Any]] = {}
        self.failures = failures or {}

    async def invoke(self, action_type, config, context):
        name = config.get("name", action_type.value)
        self.calls.append(name)
        self.contexts[name] = dict(context)
        if name in self.failures:
            raise RuntimeError(self.failures[name])
        return {f"{name}_done": True}


class BlockingDispatcher(RecordingDispatcher):
    """Dispatcher double that parks inside invoke() until released."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def invoke(self, action_type, config, context):
        self.started.set()
        await self.release.wait()
        return await super().invoke(action_type, config, context)


class SnapshotStore(InMemoryWorkflowStore):
    """In-memory store that keeps the step list seen at every save."""

    def __init__(self, fail_after: Optional[int] = None):
        super().__init__()
        self.snapshots: List[List[tuple]] = []
        self.fail_after = fail_after

    async def save_execution(self, execution):
        if self.fail_after is not None and len(self.snapshots) >= self.fail_after:
            raise ConnectionError("database unavailable")
        self.snapshots.append([(s.node_id, s.status.value) for s in execution.steps])
        await super().save_execution(execution)


class GatedStore(InMemoryWorkflowStore):
    """In-memory store that holds the first terminal save until the gate opens."""

    def __init__(self):
        super().__init__()
        self.gate_reached = asyncio.Event()
        self.gate = asyncio.Event()

    async def save_execution(self, execution):
        if execution.is_finished and not self.gate_reached.is_set():
            self.gate_reached.set()
            await self.gate.wait()
        await super().save_execution(execution)


class UnavailableStore(InMemoryWorkflowStore):
    """In-memory store whose reads fail as if the database were down."""

    async def get_workflow(self, workflow_id, tenant_id):
        raise ConnectionError("database unavailable")

    async def get_execution(self, execution_id, tenant_id):
        raise ConnectionError("database unavailable")


class WorkflowFactory:
    """Builds workflow graphs with terse helpers."""

    def trigger(self, node_id: str = "t", trigger_type: TriggerType = TriggerType.RECORD_CREATED, **config) -> TriggerNode:
        return TriggerNode(id=node_id, trigger_type=trigger_type, config=config)

    def action(self, node_id: str, action_type: ActionType = ActionType.LOG_EVENT, **config) -> ActionNode:
        return ActionNode(id=node_id, action_type=action_type, config={"name": node_id, **config})

    def condition(self, field: str, operator: str, value: str) -> Condition:
        return Condition(id=f"c-{uuid.uuid4().hex[:6]}", field=field, operator=ConditionOperator(operator), value=value)

    def connect(
        self,
        source: str,
        target: str,
        conditions: Optional[List[Condition]] = None,
        logic: ConditionLogic = ConditionLogic.AND,
    ) -> WorkflowConnection:
        return WorkflowConnection(
            id=f"{source}->{target}",
            source=source,
            target=target,
            conditions=conditions or [],
            logic=logic,
        )

    def build(
        self,
        nodes,
        connections=(),
        status: WorkflowStatus = WorkflowStatus.ACTIVE,
        tenant_id: str = TENANT_ID,
        name: str = "Test workflow",
    ) -> Workflow:
        return Workflow(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            name=name,
            status=status,
            nodes=list(nodes),
            connections=list(connections),
        )


@pytest.fixture
def factory() -> WorkflowFactory:
    return WorkflowFactory()


@pytest.fixture
def store() -> InMemoryWorkflowStore:
    return InMemoryWorkflowStore()


@pytest.fixture
def recording_dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def default_dispatcher():
    return create_default_dispatcher(DispatcherSettings(simulated_latency_seconds=0))


@pytest.fixture
def executor(store, recording_dispatcher) -> WorkflowExecutor:
    return WorkflowExecutor(store, recording_dispatcher)


@pytest.fixture
def service(store, default_dispatcher) -> WorkflowService:
    return WorkflowService(store, WorkflowExecutor(store, default_dispatcher))


@pytest.fixture
def make_dispatcher():
    """Factory for dispatchers that fail on the named nodes."""
    return RecordingDispatcher


@pytest.fixture
def blocking_dispatcher() -> BlockingDispatcher:
    return BlockingDispatcher()


@pytest.fixture
def make_snapshot_store():
    return SnapshotStore


@pytest.fixture
def gated_store() -> GatedStore:
    return GatedStore()


@pytest.fixture
def unavailable_store() -> UnavailableStore:
    return UnavailableStore()
