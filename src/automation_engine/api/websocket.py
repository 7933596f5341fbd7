"""
WebSocket streaming of execution updates.

Clients subscribe to /ws/executions/{execution_id}. The executor publishes
every step change through send_execution_update; subscribers of an
execution are released once a terminal status has been delivered.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Set

from fastapi import WebSocket, WebSocketDisconnect

from ..models.execution import ExecutionStatus

logger = logging.getLogger(__name__)

KEEPALIVE_SECONDS = 30.0

_TERMINAL = {s.value for s in ExecutionStatus if s != ExecutionStatus.RUNNING}


class ExecutionStreamManager:
    """Tracks WebSocket subscribers per execution."""

    def __init__(self):
        self.subscribers: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, websocket: WebSocket, execution_id: str) -> None:
        await websocket.accept()
        async with self._lock:
            self.subscribers.setdefault(execution_id, set()).add(websocket)
        logger.info(f"Subscriber attached to execution {execution_id}")

    async def unsubscribe(self, websocket: WebSocket, execution_id: str) -> None:
        async with self._lock:
            sockets = self.subscribers.get(execution_id)
            if sockets is not None:
                sockets.discard(websocket)
                if not sockets:
                    del self.subscribers[execution_id]

    async def publish(self, execution_id: str, message: Dict[str, Any]) -> int:
        """
        Send a message to every subscriber of an execution.

        Sockets that fail to receive are dropped. After a terminal status
        message the execution has no subscribers left.

        Returns:
            Number of sockets the message was delivered to
        """
        async with self._lock:
            sockets = set(self.subscribers.get(execution_id, ()))
        if not sockets:
            return 0

        payload = json.dumps(message, default=str)
        dead = set()
        for websocket in sockets:
            try:
                await websocket.send_text(payload)
            except Exception as e:
                logger.warning(f"Dropping subscriber of execution {execution_id}: {e}")
                dead.add(websocket)

        finished = message.get("type") == "status" and message.get("status") in _TERMINAL
        async with self._lock:
            if finished:
                self.subscribers.pop(execution_id, None)
            elif execution_id in self.subscribers:
                self.subscribers[execution_id] -= dead

        return len(sockets) - len(dead)

    def is_subscribed(self, execution_id: str) -> bool:
        return bool(self.subscribers.get(execution_id))


manager = ExecutionStreamManager()


async def websocket_endpoint(websocket: WebSocket, execution_id: str):
    """
    Stream updates for one execution.

    Message types:
    - status: Execution status change, carries "status" and "error"
    - node_start / node_complete / node_failed: Step transitions
    - node_skipped: A connection condition did not hold

    The client may send "ping" and receives "pong"; a keepalive is sent
    after KEEPALIVE_SECONDS of silence.
    """
    await manager.subscribe(websocket, execution_id)

    try:
        await websocket.send_json({"type": "subscribed", "execution_id": execution_id})

        while True:
            try:
                text = await asyncio.wait_for(websocket.receive_text(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                await websocket.send_json({"type": "keepalive"})
                continue
            if text == "ping":
                await websocket.send_text("pong")

    except WebSocketDisconnect:
        logger.info(f"Subscriber left execution {execution_id}")
    except Exception as e:
        logger.error(f"Execution stream error for {execution_id}: {e}")
    finally:
        await manager.unsubscribe(websocket, execution_id)


async def send_execution_update(execution_id: str, update_type: str, data: Dict[str, Any]) -> None:
    """
    Executor listener that forwards updates to subscribers.

    Args:
        execution_id: Execution ID
        update_type: status, node_start, node_complete, node_failed or node_skipped
        data: Update payload
    """
    await manager.publish(execution_id, {"type": update_type, "execution_id": execution_id, **data})
