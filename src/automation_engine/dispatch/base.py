"""
Action dispatcher interface definition.

Defines the contract between the execution engine and the handlers that
perform action side effects.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict

from ..models.workflow import ActionType


@dataclass
class DispatcherSettings:
    """Settings handed to action handlers at construction time."""

    simulated_latency_seconds: float = 0.5
    webhooks_enabled: bool = False
    webhook_timeout_seconds: float = 10.0


class ActionDispatcher(ABC):
    """
    Maps an action type to a concrete side effect.

    The engine awaits invoke() once per action node visit and records the
    returned mapping as the step output. Any exception marks the step as
    failed.
    """

    @abstractmethod
    async def invoke(
        self,
        action_type: ActionType,
        config: Dict[str, Any],
        context: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Perform an action.

        Args:
            action_type: Action to perform
            config: Node configuration
            context: Execution data context at this node

        Returns:
            Output merged into the context of downstream nodes
        """
        pass

    async def close(self) -> None:
        """Release resources held by handlers."""
        return None


class ActionHandler(ABC):
    """Handler for a single action type."""

    action_type: ActionType

    def __init__(self, settings: DispatcherSettings):
        self.settings = settings

    @abstractmethod
    async def handle(self, config: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        pass

    async def close(self) -> None:
        return None
