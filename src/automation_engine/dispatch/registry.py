"""
Action registry: the default ActionDispatcher implementation.
"""

import logging
from typing import Dict, Any, Iterable, List, Optional, Type

from ..errors import UnknownActionError
from ..models.workflow import ActionType
from .base import ActionDispatcher, ActionHandler, DispatcherSettings
from .handlers import DEFAULT_HANDLERS

logger = logging.getLogger(__name__)


class ActionRegistry(ActionDispatcher):
    """
    Registry of action handlers keyed by action type.

    Dispatches invoke() calls to the handler registered for the node's
    action type.
    """

    def __init__(self):
        self._handlers: Dict[ActionType, ActionHandler] = {}

    def register(self, handler: ActionHandler) -> None:
        """
        Register a handler instance.

        Args:
            handler: Handler for handler.action_type; replaces any previous one
        """
        self._handlers[handler.action_type] = handler
        logger.info(f"Registered action handler: {handler.action_type.value}")

    def get_handler(self, action_type: ActionType) -> ActionHandler:
        try:
            return self._handlers[ActionType(action_type)]
        except (KeyError, ValueError):
            name = getattr(action_type, "value", action_type)
            raise UnknownActionError(f"No handler registered for action: {name}", action_type=name)

    def missing_actions(self) -> List[ActionType]:
        """Action types without a registered handler."""
        return [a for a in ActionType if a not in self._handlers]

    def ensure_complete(self) -> None:
        """Raise if any action type has no handler."""
        missing = self.missing_actions()
        if missing:
            names = ", ".join(a.value for a in missing)
            raise UnknownActionError(f"No handler registered for actions: {names}")

    async def invoke(self, action_type: ActionType, config: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        handler = self.get_handler(action_type)
        return await handler.handle(config, context)

    async def close(self) -> None:
        for handler in self._handlers.values():
            try:
                await handler.close()
            except Exception as e:
                logger.error(f"Failed to close handler {handler.action_type.value}: {e}")


def create_default_dispatcher(
    settings: Optional[DispatcherSettings] = None,
    handlers: Iterable[Type[ActionHandler]] = DEFAULT_HANDLERS,
) -> ActionRegistry:
    """
    Build a registry with a handler for every action type.

    Args:
        settings: Handler settings
        handlers: Handler classes to instantiate

    Returns:
        Configured registry

    Raises:
        UnknownActionError: If some action type is left without a handler
    """
    settings = settings or DispatcherSettings()
    registry = ActionRegistry()
    for handler_class in handlers:
        registry.register(handler_class(settings))
    registry.ensure_complete()
    return registry
