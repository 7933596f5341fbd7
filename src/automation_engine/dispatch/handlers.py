"""
Built-in action handlers.

Messaging and record handlers simulate their side effect with a fixed
latency and a synthetic payload. The webhook handler performs a real HTTP
call when webhooks are enabled.
"""

import asyncio
import logging
import uuid
from typing import Any, Dict, Optional

import httpx

from ..engine.templates import interpolate, interpolate_value
from ..errors import ActionFailedError
from ..models.workflow import ActionType
from .base import ActionHandler, DispatcherSettings

logger = logging.getLogger(__name__)


class SimulatedActionHandler(ActionHandler):
    """Base for handlers that only pretend to perform their side effect."""

    async def handle(self, config: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        if self.settings.simulated_latency_seconds > 0:
            await asyncio.sleep(self.settings.simulated_latency_seconds)
        return self.build_output(config, context)

    def build_output(self, config: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError


class SendEmailHandler(SimulatedActionHandler):
    action_type = ActionType.SEND_EMAIL

    def build_output(self, config, context):
        return {
            "email_sent": True,
            "recipient": interpolate(str(config.get("recipient", "")), context),
            "subject": interpolate(str(config.get("subject", "")), context),
        }


class SendSmsHandler(SimulatedActionHandler):
    action_type = ActionType.SEND_SMS

    def build_output(self, config, context):
        return {
            "sms_sent": True,
            "phone": interpolate(str(config.get("phone", "")), context),
        }


class CreateTaskHandler(SimulatedActionHandler):
    action_type = ActionType.CREATE_TASK

    def build_output(self, config, context):
        return {
            "task_created": True,
            "task_id": f"task_{uuid.uuid4().hex[:12]}",
            "title": interpolate(str(config.get("title", "")), context),
        }


class UpdateRecordHandler(SimulatedActionHandler):
    action_type = ActionType.UPDATE_RECORD

    def build_output(self, config, context):
        return {
            "record_updated": True,
            "table": config.get("table"),
            "fields": interpolate_value(config.get("fields", {}), context),
        }


class SendNotificationHandler(SimulatedActionHandler):
    action_type = ActionType.SEND_NOTIFICATION

    def build_output(self, config, context):
        return {
            "notification_sent": True,
            "message": interpolate(str(config.get("message", "")), context),
        }


class LogEventHandler(SimulatedActionHandler):
    action_type = ActionType.LOG_EVENT

    def build_output(self, config, context):
        message = interpolate(str(config.get("message", "")), context)
        logger.info(f"Workflow event: {message}")
        return {"event_logged": True, "message": message}


class CallWebhookHandler(ActionHandler):
    """
    POST the interpolated payload to the configured URL.

    Config:
        url: Target URL (placeholders allowed)
        method: HTTP method, defaults to POST
        headers: Extra request headers
        payload: JSON body; defaults to the execution context
    """

    action_type = ActionType.CALL_WEBHOOK

    def __init__(self, settings: DispatcherSettings, client: Optional[httpx.AsyncClient] = None):
        super().__init__(settings)
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"Content-Type": "application/json"},
                timeout=self.settings.webhook_timeout_seconds,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def handle(self, config: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        url = interpolate(str(config.get("url", "")), context)
        if not url:
            raise ActionFailedError("Webhook URL is not configured", action_type=self.action_type.value)

        if not self.settings.webhooks_enabled:
            if self.settings.simulated_latency_seconds > 0:
                await asyncio.sleep(self.settings.simulated_latency_seconds)
            return {"webhook_called": True, "url": url, "status_code": None, "simulated": True}

        method = str(config.get("method", "POST")).upper()
        headers = interpolate_value(config.get("headers", {}), context)
        payload = interpolate_value(config["payload"], context) if "payload" in config else context

        client = await self._get_client()
        try:
            response = await client.request(method, url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ActionFailedError(f"Webhook call failed: {e}", action_type=self.action_type.value)

        if response.status_code >= 400:
            raise ActionFailedError(
                f"Webhook returned {response.status_code}",
                action_type=self.action_type.value,
                status_code=response.status_code,
            )

        logger.info(f"Webhook {method} {url} -> {response.status_code}")
        return {"webhook_called": True, "url": url, "status_code": response.status_code}


DEFAULT_HANDLERS = (
    SendEmailHandler,
    SendSmsHandler,
    CreateTaskHandler,
    UpdateRecordHandler,
    CallWebhookHandler,
    SendNotificationHandler,
    LogEventHandler,
)
