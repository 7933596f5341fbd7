"""
Unit tests for the action registry and built-in handlers.
"""
import json

import httpx
import pytest

from automation_engine.dispatch import ActionRegistry, DispatcherSettings, create_default_dispatcher
from automation_engine.dispatch.handlers import CallWebhookHandler, SendEmailHandler
from automation_engine.errors import ActionFailedError, UnknownActionError
from automation_engine.models.workflow import ActionType

FAST = DispatcherSettings(simulated_latency_seconds=0)


class TestActionRegistry:

    def test_default_dispatcher_covers_every_action(self, default_dispatcher):
        assert default_dispatcher.missing_actions() == []
        for action_type in ActionType:
            assert default_dispatcher.get_handler(action_type).action_type == action_type

    def test_incomplete_registry_rejected(self):
        with pytest.raises(UnknownActionError) as exc:
            create_default_dispatcher(FAST, handlers=[SendEmailHandler])
        assert "send_sms" in exc.value.message

    def test_missing_actions_listed(self):
        registry = ActionRegistry()
        registry.register(SendEmailHandler(FAST))
        assert ActionType.SEND_EMAIL not in registry.missing_actions()
        assert ActionType.LOG_EVENT in registry.missing_actions()

    @pytest.mark.asyncio
    async def test_unknown_action_raises(self):
        registry = ActionRegistry()
        with pytest.raises(UnknownActionError) as exc:
            await registry.invoke(ActionType.CREATE_TASK, {}, {})
        assert exc.value.action_type == "create_task"

    @pytest.mark.asyncio
    async def test_action_given_as_string(self, default_dispatcher):
        output = await default_dispatcher.invoke("send_sms", {"phone": "{{user.phone}}"}, {"user": {"phone": "+4712345678"}})
        assert output == {"sms_sent": True, "phone": "+4712345678"}


class TestSimulatedHandlers:

    @pytest.mark.asyncio
    async def test_send_email(self, default_dispatcher):
        output = await default_dispatcher.invoke(
            ActionType.SEND_EMAIL,
            {"recipient": "{{user.email}}", "subject": "Order {{order.id}}"},
            {"user": {"email": "a@b.com"}, "order": {"id": 42}},
        )
        assert output == {"email_sent": True, "recipient": "a@b.com", "subject": "Order 42"}

    @pytest.mark.asyncio
    async def test_unresolved_placeholder_kept(self, default_dispatcher):
        output = await default_dispatcher.invoke(ActionType.SEND_EMAIL, {"recipient": "{{user.email}}"}, {})
        assert output["recipient"] == "{{user.email}}"

    @pytest.mark.asyncio
    async def test_create_task(self, default_dispatcher):
        output = await default_dispatcher.invoke(ActionType.CREATE_TASK, {"title": "Call {{name}}"}, {"name": "Ada"})
        assert output["task_created"] is True
        assert output["title"] == "Call Ada"
        assert output["task_id"].startswith("task_")

    @pytest.mark.asyncio
    async def test_update_record(self, default_dispatcher):
        output = await default_dispatcher.invoke(
            ActionType.UPDATE_RECORD,
            {"table": "customers", "fields": {"tier": "{{plan}}", "score": 10}},
            {"plan": "gold"},
        )
        assert output == {"record_updated": True, "table": "customers", "fields": {"tier": "gold", "score": 10}}

    @pytest.mark.asyncio
    async def test_notification_and_log(self, default_dispatcher):
        notification = await default_dispatcher.invoke(ActionType.SEND_NOTIFICATION, {"message": "Hi {{n}}"}, {"n": 1})
        event = await default_dispatcher.invoke(ActionType.LOG_EVENT, {"message": "paid {{amount}}"}, {"amount": 9.5})
        assert notification == {"notification_sent": True, "message": "Hi 1"}
        assert event == {"event_logged": True, "message": "paid 9.5"}


class TestCallWebhookHandler:

    @pytest.mark.asyncio
    async def test_disabled_webhooks_are_simulated(self):
        handler = CallWebhookHandler(FAST)
        output = await handler.handle({"url": "https://hooks.example.com/{{id}}"}, {"id": "abc"})
        assert output == {
            "webhook_called": True,
            "url": "https://hooks.example.com/abc",
            "status_code": None,
            "simulated": True,
        }

    @pytest.mark.asyncio
    async def test_missing_url_fails(self):
        handler = CallWebhookHandler(FAST)
        with pytest.raises(ActionFailedError):
            await handler.handle({}, {})

    @pytest.mark.asyncio
    async def test_enabled_webhook_posts_payload(self):
        requests = []

        def respond(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(202, json={"ok": True})

        settings = DispatcherSettings(simulated_latency_seconds=0, webhooks_enabled=True)
        client = httpx.AsyncClient(transport=httpx.MockTransport(respond))
        handler = CallWebhookHandler(settings, client=client)

        output = await handler.handle(
            {
                "url": "https://hooks.example.com/orders",
                "headers": {"X-Order": "{{order.id}}"},
                "payload": {"order_id": "{{order.id}}"},
            },
            {"order": {"id": 42}},
        )
        await handler.close()

        assert output == {"webhook_called": True, "url": "https://hooks.example.com/orders", "status_code": 202}
        assert len(requests) == 1
        assert requests[0].method == "POST"
        assert requests[0].headers["X-Order"] == "42"
        assert json.loads(requests[0].content) == {"order_id": "42"}

    @pytest.mark.asyncio
    async def test_context_is_default_payload(self):
        bodies = []

        def respond(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200)

        settings = DispatcherSettings(simulated_latency_seconds=0, webhooks_enabled=True)
        handler = CallWebhookHandler(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(respond)))

        await handler.handle({"url": "https://hooks.example.com"}, {"user": {"id": 1}})
        await handler.close()

        assert bodies == [{"user": {"id": 1}}]

    @pytest.mark.asyncio
    async def test_error_status_fails(self):
        settings = DispatcherSettings(simulated_latency_seconds=0, webhooks_enabled=True)
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
        handler = CallWebhookHandler(settings, client=client)

        with pytest.raises(ActionFailedError) as exc:
            await handler.handle({"url": "https://hooks.example.com"}, {})
        await handler.close()

        assert exc.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_error_fails(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        settings = DispatcherSettings(simulated_latency_seconds=0, webhooks_enabled=True)
        handler = CallWebhookHandler(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(refuse)))

        with pytest.raises(ActionFailedError) as exc:
            await handler.handle({"url": "https://hooks.example.com"}, {})
        await handler.close()

        assert "connection refused" in exc.value.message
