"""
Workflow execution engine.

Walks a workflow graph from its trigger node, evaluating connection
conditions, dispatching action nodes and recording every node visit in a
WorkflowExecution that is persisted after each step change.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Union

from opentelemetry import trace

from ..dispatch.base import ActionDispatcher
from ..errors import (
    ActivationError,
    CycleDetectedError,
    ExecutionCancelledError,
    NoTriggerError,
    NodeExecutionError,
    PersistenceError,
    WorkflowNotActiveError,
)
from ..models.execution import ExecutionStatus, ExecutionStep, StepStatus, WorkflowExecution
from ..models.workflow import ActionNode, TriggerNode, Workflow, WorkflowConnection, WorkflowStatus
from ..persistence.base import WorkflowStore
from .conditions import evaluate_conditions
from .lifecycle import node_display_name, validate_for_activation

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# (execution_id, update_type, data)
ExecutionListener = Callable[[str, str, Dict[str, Any]], Awaitable[None]]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _step_id() -> str:
    return f"step_{uuid.uuid4().hex[:16]}"


@dataclass
class _Frame:
    """A node whose outgoing connections are still being walked."""
    node: Union[TriggerNode, ActionNode]
    context: Dict[str, Any]
    output: Dict[str, Any]
    connections: Iterator[WorkflowConnection] = field(repr=False)


@dataclass
class _RunHandle:
    """Cancel request and completion signal for a run owned by this process."""
    cancel: asyncio.Event = field(default_factory=asyncio.Event)
    done: asyncio.Event = field(default_factory=asyncio.Event)


class WorkflowExecutor:
    """
    Executes workflows against a store and an action dispatcher.

    Traversal is depth-first along connection order using an explicit
    stack, so step ordering is deterministic. A node that already succeeded
    in the current run is not executed again; re-entering a node on the
    current path is a cycle and fails the run.
    """

    def __init__(
        self,
        store: WorkflowStore,
        dispatcher: ActionDispatcher,
        listener: Optional[ExecutionListener] = None,
    ):
        """
        Initialize executor.

        Args:
            store: Store for execution records and run statistics
            dispatcher: Performs action node side effects
            listener: Optional async callback for live execution updates
        """
        self.store = store
        self.dispatcher = dispatcher
        self.listener = listener
        self._runs: Dict[str, _RunHandle] = {}

    async def execute(self, workflow: Workflow, trigger_data: Optional[Dict[str, Any]] = None) -> WorkflowExecution:
        """Validate, create the execution record and run it to a terminal state."""
        execution = await self.prepare(workflow, trigger_data)
        return await self.run(workflow, execution)

    async def prepare(self, workflow: Workflow, trigger_data: Optional[Dict[str, Any]] = None) -> WorkflowExecution:
        """
        Run setup checks and persist a running execution record.

        Raises:
            WorkflowNotActiveError: The workflow is not active
            ActivationError: The graph is not runnable
            PersistenceError: The record could not be written
        """
        if workflow.status != WorkflowStatus.ACTIVE:
            raise WorkflowNotActiveError("Workflow is not active", workflow.id)
        validate_for_activation(workflow)

        execution = WorkflowExecution(
            id=str(uuid.uuid4()),
            workflow_id=workflow.id,
            tenant_id=workflow.tenant_id,
            status=ExecutionStatus.RUNNING,
            trigger_data=dict(trigger_data or {}),
            started_at=_now(),
        )
        await self._save(execution)
        self._runs[execution.id] = _RunHandle()

        logger.info(f"Execution {execution.id} started for workflow {workflow.id}")
        await self._notify(execution, "status", {"status": execution.status.value})
        return execution

    async def run(self, workflow: Workflow, execution: WorkflowExecution) -> WorkflowExecution:
        """
        Walk the graph for a prepared execution.

        Node failures and cycles end the run as failed; a cancel request ends
        it as cancelled. Only store failures propagate to the caller.
        """
        handle = self._runs.setdefault(execution.id, _RunHandle())

        # The run stays registered until its terminal state is stored
        try:
            with tracer.start_as_current_span("workflow.execute") as span:
                span.set_attribute("workflow.id", str(workflow.id))
                span.set_attribute("workflow.execution_id", execution.id)

                try:
                    triggers = workflow.trigger_nodes()
                    if not triggers:
                        raise NoTriggerError("No trigger node found", workflow.id)
                    await self._traverse(workflow, execution, triggers[0], handle.cancel)
                    execution.status = ExecutionStatus.COMPLETED
                except ExecutionCancelledError as e:
                    logger.info(f"Execution {execution.id} cancelled")
                    execution.status = ExecutionStatus.CANCELLED
                    execution.error = e.message
                except (NodeExecutionError, CycleDetectedError, ActivationError) as e:
                    logger.error(f"Workflow execution {execution.id} failed: {e.message}")
                    execution.status = ExecutionStatus.FAILED
                    execution.error = e.message

                execution.completed_at = _now()
                span.set_attribute("workflow.status", execution.status.value)
                await self._save(execution)

                if execution.status == ExecutionStatus.COMPLETED:
                    try:
                        await self.store.increment_run_count(workflow.id, workflow.tenant_id, execution.completed_at)
                    except Exception as e:
                        logger.error(f"Failed to update run statistics for workflow {workflow.id}: {e}")
                        raise PersistenceError(f"Failed to update run statistics: {e}", workflow.id) from e
        finally:
            self._runs.pop(execution.id, None)
            handle.done.set()

        await self._notify(execution, "status", {
            "status": execution.status.value,
            "error": execution.error,
        })
        return execution

    def cancel(self, execution_id: str) -> bool:
        """
        Request cancellation of a running execution.

        Returns:
            False if the execution is not running in this executor
        """
        handle = self._runs.get(execution_id)
        if handle is None:
            return False
        handle.cancel.set()
        return True

    async def wait_finished(self, execution_id: str) -> None:
        """Wait until a run owned by this executor has stored its terminal state."""
        handle = self._runs.get(execution_id)
        if handle is not None:
            await handle.done.wait()

    def is_running(self, execution_id: str) -> bool:
        return execution_id in self._runs

    async def _traverse(
        self,
        workflow: Workflow,
        execution: WorkflowExecution,
        start: TriggerNode,
        cancel_event: asyncio.Event,
    ) -> None:
        stack: List[_Frame] = []
        frame = await self._enter(workflow, execution, start, dict(execution.trigger_data), stack)
        if frame is not None:
            stack.append(frame)

        while stack:
            if cancel_event.is_set():
                raise ExecutionCancelledError(workflow_id=workflow.id)

            frame = stack[-1]
            connection = next(frame.connections, None)
            if connection is None:
                stack.pop()
                continue

            # Conditions see the context the source node received, not its output
            if evaluate_conditions(connection.conditions, connection.logic, frame.context):
                target = workflow.get_node(connection.target)
                child = await self._enter(
                    workflow, execution, target, {**frame.context, **frame.output}, stack
                )
                if child is not None:
                    stack.append(child)
            else:
                await self._record_skipped(workflow, execution, connection)

    async def _enter(
        self,
        workflow: Workflow,
        execution: WorkflowExecution,
        node: Union[TriggerNode, ActionNode],
        context: Dict[str, Any],
        stack: List[_Frame],
    ) -> Optional[_Frame]:
        path = [f.node.id for f in stack]
        if node.id in path:
            raise CycleDetectedError(path[path.index(node.id):] + [node.id], workflow.id)

        if execution.successful_step(node.id) is not None:
            logger.debug(f"Node {node.id} already succeeded in execution {execution.id}")
            return None

        step = ExecutionStep(
            id=_step_id(),
            node_id=node.id,
            node_name=node_display_name(node),
            status=StepStatus.RUNNING,
            start_time=_now(),
        )
        execution.steps.append(step)
        await self._save(execution)
        await self._notify(execution, "node_start", {"node_id": node.id, "step_id": step.id})

        with tracer.start_as_current_span(f"workflow.node.{node.type}") as span:
            span.set_attribute("workflow.node_id", node.id)
            try:
                output = await self._run_node(node, context)
            except Exception as e:
                message = str(e) or e.__class__.__name__
                logger.error(f"Node {node.id} failed in execution {execution.id}: {message}")
                step.status = StepStatus.FAILED
                step.end_time = _now()
                step.error = message
                await self._save(execution)
                await self._notify(execution, "node_failed", {"node_id": node.id, "error": message})
                raise NodeExecutionError(message, node.id, workflow.id) from e

        step.status = StepStatus.SUCCESS
        step.end_time = _now()
        step.output = output
        await self._save(execution)
        await self._notify(execution, "node_complete", {"node_id": node.id, "output": output})

        return _Frame(
            node=node,
            context=context,
            output=output,
            connections=iter(workflow.outgoing(node.id)),
        )

    async def _run_node(self, node: Union[TriggerNode, ActionNode], context: Dict[str, Any]) -> Dict[str, Any]:
        if isinstance(node, TriggerNode):
            # Triggers pass the data through
            return {**context, "triggered_by": node.trigger_type.value}
        output = await self.dispatcher.invoke(node.action_type, node.config, context)
        return dict(output or {})

    async def _record_skipped(
        self,
        workflow: Workflow,
        execution: WorkflowExecution,
        connection: WorkflowConnection,
    ) -> None:
        target = workflow.get_node(connection.target)
        now = _now()
        execution.steps.append(ExecutionStep(
            id=_step_id(),
            node_id=connection.target,
            node_name=node_display_name(target) if target else connection.target,
            status=StepStatus.SKIPPED,
            start_time=now,
            end_time=now,
        ))
        await self._save(execution)
        await self._notify(execution, "node_skipped", {"node_id": connection.target, "connection_id": connection.id})

    async def _save(self, execution: WorkflowExecution) -> None:
        try:
            await self.store.save_execution(execution)
        except Exception as e:
            logger.error(f"Failed to persist execution {execution.id}: {e}")
            raise PersistenceError(f"Failed to persist execution {execution.id}: {e}", execution.workflow_id) from e

    async def _notify(self, execution: WorkflowExecution, update_type: str, data: Dict[str, Any]) -> None:
        if self.listener is None:
            return
        try:
            await self.listener(execution.id, update_type, data)
        except Exception as e:
            logger.warning(f"Execution listener failed for {execution.id}: {e}")
