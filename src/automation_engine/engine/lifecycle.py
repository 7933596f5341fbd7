"""
Workflow lifecycle rules: activation checks, status toggling, duplication.
"""

import logging
import uuid
from typing import Optional, Union

from ..errors import NoNodesError, NoTriggerError, DanglingConnectionError
from ..models.workflow import Workflow, WorkflowStatus, TriggerNode, ActionNode

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"


def validate_for_activation(workflow: Workflow) -> None:
    """
    Check that a workflow may go live.

    Args:
        workflow: Workflow to validate

    Raises:
        NoNodesError: The workflow has no nodes
        NoTriggerError: No node is a trigger
        DanglingConnectionError: A connection points at an unknown node
    """
    if not workflow.nodes:
        raise NoNodesError("Cannot activate workflow without nodes", workflow.id)

    if not workflow.trigger_nodes():
        raise NoTriggerError("Cannot activate workflow without trigger node", workflow.id)

    node_ids = {n.id for n in workflow.nodes}
    for connection in workflow.connections:
        for end in (connection.source, connection.target):
            if end not in node_ids:
                raise DanglingConnectionError(
                    f"Connection {connection.id} references unknown node {end}",
                    workflow.id,
                    connection_id=connection.id,
                )


def toggle_status(workflow: Workflow) -> Workflow:
    """
    Flip a workflow between active and inactive.

    Draft and inactive workflows are validated before activation; a failed
    validation raises and leaves the workflow untouched.

    Returns:
        A new Workflow with the updated status
    """
    if workflow.status == WorkflowStatus.ACTIVE:
        new_status = WorkflowStatus.INACTIVE
    else:
        validate_for_activation(workflow)
        new_status = WorkflowStatus.ACTIVE

    logger.info(f"Workflow {workflow.id} status {workflow.status.value} -> {new_status.value}")
    return workflow.model_copy(update={"status": new_status})


def duplicate(workflow: Workflow, created_by: Optional[str] = None) -> Workflow:
    """Copy a workflow definition into a fresh draft with no run history."""
    copied = workflow.model_copy(deep=True)
    return copied.model_copy(update={
        "id": str(uuid.uuid4()),
        "name": f"{workflow.name}{COPY_SUFFIX}",
        "status": WorkflowStatus.DRAFT,
        "run_count": 0,
        "last_run": None,
        "created_by": created_by or workflow.created_by,
        "created_at": None,
        "updated_at": None,
    })


def node_display_name(node: Union[TriggerNode, ActionNode]) -> str:
    """Human-readable label for execution steps."""
    if isinstance(node, TriggerNode):
        return node.trigger_type.value.replace("_", " ") if node.trigger_type else "Trigger"
    return node.action_type.value.replace("_", " ") if node.action_type else "Action"
