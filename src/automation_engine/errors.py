"""
Automation engine error types.
"""

from typing import Optional, List


class AutomationError(Exception):
    """Base exception for automation engine errors."""

    def __init__(self, message: str, workflow_id: Optional[str] = None):
        self.message = message
        self.workflow_id = workflow_id
        super().__init__(message)


# Definition errors

class ActivationError(AutomationError):
    """Raised when a workflow cannot go live."""

    code = "invalid_definition"


class NoNodesError(ActivationError):
    """Raised when activating a workflow without nodes."""

    code = "no_nodes"


class NoTriggerError(ActivationError):
    """Raised when activating a workflow without a trigger node."""

    code = "no_trigger"


class DanglingConnectionError(ActivationError):
    """Raised when a connection references a node that does not exist."""

    code = "dangling_connection"

    def __init__(self, message: str, workflow_id: Optional[str] = None, connection_id: Optional[str] = None):
        super().__init__(message, workflow_id)
        self.connection_id = connection_id


# Execution setup errors

class WorkflowNotFoundError(AutomationError):
    """Raised when a workflow is not found for the tenant."""
    pass


class WorkflowNotActiveError(AutomationError):
    """Raised when executing a workflow that is not active."""
    pass


class ExecutionNotFoundError(AutomationError):
    """Raised when an execution is not found for the tenant."""

    def __init__(self, message: str, execution_id: Optional[str] = None):
        super().__init__(message)
        self.execution_id = execution_id


class ExecutionNotRunningError(AutomationError):
    """Raised when cancelling an execution that already finished."""
    pass


# Run-time errors

class NodeExecutionError(AutomationError):
    """Raised inside the traversal when a node handler fails."""

    def __init__(self, message: str, node_id: str, workflow_id: Optional[str] = None):
        super().__init__(message, workflow_id)
        self.node_id = node_id


class CycleDetectedError(AutomationError):
    """Raised when the traversal re-enters a node on its own path."""

    def __init__(self, path: List[str], workflow_id: Optional[str] = None):
        self.path = path
        super().__init__(f"Cycle detected: {' -> '.join(path)}", workflow_id)


class ExecutionCancelledError(AutomationError):
    """Raised inside the traversal when a cancel request is observed."""

    def __init__(self, message: str = "Execution cancelled", workflow_id: Optional[str] = None):
        super().__init__(message, workflow_id)


class PersistenceError(AutomationError):
    """Raised when the store fails to read or write a record."""
    pass


# Dispatcher errors

class UnknownActionError(AutomationError):
    """Raised when no handler is registered for an action type."""

    def __init__(self, message: str, action_type: Optional[str] = None):
        super().__init__(message)
        self.action_type = action_type


class ActionFailedError(AutomationError):
    """Raised by a handler when its side effect reports failure."""

    def __init__(self, message: str, action_type: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.action_type = action_type
        self.status_code = status_code
