"""
Workflow definition models.
"""

from typing import Optional, List, Dict, Any, Union, Literal, Annotated
from enum import Enum
from datetime import datetime
from pydantic import BaseModel, Field, model_validator


class WorkflowStatus(str, Enum):
    """Workflow definition status."""
    DRAFT = "draft"
    ACTIVE = "active"
    INACTIVE = "inactive"


class TriggerType(str, Enum):
    """Events that can start a workflow."""
    USER_CREATED = "user_created"
    USER_UPDATED = "user_updated"
    RECORD_CREATED = "record_created"
    ORDER_PLACED = "order_placed"
    PAYMENT_RECEIVED = "payment_received"
    FORM_SUBMITTED = "form_submitted"
    SCHEDULE = "schedule"
    WEBHOOK = "webhook"


class ActionType(str, Enum):
    """Side effects an action node can perform."""
    SEND_EMAIL = "send_email"
    SEND_SMS = "send_sms"
    CREATE_TASK = "create_task"
    UPDATE_RECORD = "update_record"
    CALL_WEBHOOK = "call_webhook"
    SEND_NOTIFICATION = "send_notification"
    LOG_EVENT = "log_event"


class ConditionOperator(str, Enum):
    """Comparison applied by a connection condition."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"


class ConditionLogic(str, Enum):
    """How the conditions of a connection are combined."""
    AND = "AND"
    OR = "OR"


class Position(BaseModel):
    """Canvas position of a node. Not used during execution."""
    x: float = 0
    y: float = 0


class Condition(BaseModel):
    """A single field/operator/value predicate."""
    id: str
    field: str = Field(..., description="Dot-separated path into the execution context")
    operator: ConditionOperator
    value: str = ""


class TriggerNode(BaseModel):
    """Entry point of a workflow."""
    id: str = Field(..., description="Node identifier, unique within the workflow")
    type: Literal["trigger"] = "trigger"
    trigger_type: TriggerType
    config: Dict[str, Any] = Field(default_factory=dict)
    position: Position = Field(default_factory=Position)


class ActionNode(BaseModel):
    """Node that performs a side effect through the action dispatcher."""
    id: str = Field(..., description="Node identifier, unique within the workflow")
    type: Literal["action"] = "action"
    action_type: ActionType
    config: Dict[str, Any] = Field(default_factory=dict)
    position: Position = Field(default_factory=Position)


WorkflowNode = Annotated[Union[TriggerNode, ActionNode], Field(discriminator="type")]


class WorkflowConnection(BaseModel):
    """Directed edge between two nodes, optionally guarded by conditions."""
    id: str
    source: str = Field(..., description="Source node id")
    target: str = Field(..., description="Target node id")
    conditions: List[Condition] = Field(default_factory=list)
    logic: ConditionLogic = ConditionLogic.AND


class WorkflowGraph(BaseModel):
    """Nodes and connections shared by every workflow payload."""
    nodes: List[WorkflowNode] = Field(default_factory=list)
    connections: List[WorkflowConnection] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_node_ids(self):
        seen = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"Duplicate node id: {node.id}")
            seen.add(node.id)
        return self

    def get_node(self, node_id: str) -> Optional[Union[TriggerNode, ActionNode]]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def outgoing(self, node_id: str) -> List[WorkflowConnection]:
        return [c for c in self.connections if c.source == node_id]

    def trigger_nodes(self) -> List[TriggerNode]:
        return [n for n in self.nodes if isinstance(n, TriggerNode)]


class Workflow(WorkflowGraph):
    """Tenant-owned automation definition."""
    id: Optional[str] = None
    tenant_id: str
    name: str = Field(..., description="Workflow name")
    description: Optional[str] = None
    status: WorkflowStatus = Field(default=WorkflowStatus.DRAFT)
    tags: List[str] = Field(default_factory=list)
    run_count: int = 0
    last_run: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WorkflowCreate(WorkflowGraph):
    """Input for creating a workflow definition."""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    status: Optional[WorkflowStatus] = Field(default=None, description="Defaults to draft")
    tags: List[str] = Field(default_factory=list)


class WorkflowUpdate(BaseModel):
    """Partial update of a workflow definition."""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    status: Optional[WorkflowStatus] = None
    nodes: Optional[List[WorkflowNode]] = None
    connections: Optional[List[WorkflowConnection]] = None
    tags: Optional[List[str]] = None


class WorkflowExport(WorkflowGraph):
    """Portable workflow definition without identity or run statistics."""
    name: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class ExecuteRequest(BaseModel):
    """Input for executing a workflow."""
    trigger_data: Dict[str, Any] = Field(default_factory=dict)
    background: bool = Field(default=False, description="Return immediately with the running execution")
