"""Feishu (Lark) webhook connector.

Inbound: Feishu posts `im.message.receive_v1` events to WEBHOOK_PATH.
Outbound: replies go through the lark-oapi IM client.
Requires: uv pip install 'drivedesk[feishu]'
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import OrderedDict
from typing import TYPE_CHECKING, Any

from aiohttp import web

from drivedesk.connectors.base import IncomingMessage

if TYPE_CHECKING:
    from drivedesk.config import FeishuConfig
    from drivedesk.connectors.base import MessageHandler, Reply

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook/feishu"
MESSAGE_EVENT = "im.message.receive_v1"


class RecentIds:
    """Event ids seen within `ttl` seconds, oldest first. Feishu redelivers on slow acks."""

    def __init__(self, ttl: float = 300, max_size: int = 4096) -> None:
        self.ttl = ttl
        self.max_size = max_size
        self._ids: OrderedDict[str, float] = OrderedDict()

    def check_and_add(self, event_id: str, now: float | None = None) -> bool:
        """True if `event_id` was already seen; otherwise remember it."""
        now = time.monotonic() if now is None else now
        while self._ids:
            oldest, stamp = next(iter(self._ids.items()))
            if now - stamp < self.ttl and len(self._ids) < self.max_size:
                break
            self._ids.pop(oldest)
        if event_id in self._ids:
            return True
        self._ids[event_id] = now
        return False


def message_text(message: dict[str, Any]) -> str:
    """Plain text of a Feishu text message with @-mention placeholders removed.

    Feishu replaces each mention with a key such as ``@_user_1`` and lists
    the keys in ``message.mentions``.
    """
    try:
        content = json.loads(message.get("content") or "{}")
    except json.JSONDecodeError:
        return ""
    text = content.get("text", "") if isinstance(content, dict) else ""
    for mention in message.get("mentions") or []:
        key = mention.get("key")
        if key:
            text = text.replace(key, " ")
    return " ".join(text.split())


def parse_message_event(body: dict[str, Any]) -> IncomingMessage | None:
    """Event callback body → IncomingMessage, or None for anything we ignore."""
    header = body.get("header") or {}
    if header.get("event_type") != MESSAGE_EVENT:
        return None

    event = body.get("event") or {}
    message = event.get("message") or {}
    if message.get("message_type", "text") != "text":
        return None

    text = message_text(message)
    if not text:
        return None
    return IncomingMessage(
        text=text,
        chat_id=message.get("chat_id", ""),
        sender=(event.get("sender") or {}).get("sender_id", {}).get("open_id", ""),
        message_id=message.get("message_id", ""),
        connector_name="feishu",
        metadata={"event_id": header.get("event_id", "")},
    )


class FeishuConnector:
    """Webhook server for inbound events plus a lark-oapi client for replies."""

    def __init__(self, config: FeishuConfig) -> None:
        self._config = config
        self._handler: MessageHandler | None = None
        self._recent = RecentIds()
        self._runner: web.AppRunner | None = None
        self._tasks: set[asyncio.Task] = set()

        try:
            import lark_oapi as lark
        except ImportError:
            raise ImportError(
                "lark-oapi package required. Install with: uv pip install 'drivedesk[feishu]'"
            )
        self._client = (
            lark.Client.builder().app_id(config.app_id).app_secret(config.app_secret).build()
        )

    @property
    def name(self) -> str:
        return "feishu"

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post(WEBHOOK_PATH, self._on_event)
        app.router.add_get("/health", self._on_health)
        return app

    async def start(self, handler: MessageHandler) -> None:
        self._handler = handler
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        await web.TCPSite(self._runner, "0.0.0.0", self._config.port).start()
        logger.info("Feishu webhook listening on :%d%s", self._config.port, WEBHOOK_PATH)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Feishu webhook stopped")

    async def _on_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "healthy", "connector": self.name})

    async def _on_event(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
        except json.JSONDecodeError:
            return web.json_response({"code": 400}, status=400)

        if "challenge" in body:
            return web.json_response({"challenge": body["challenge"]})

        expected = self._config.verification_token
        if expected and (body.get("header") or {}).get("token") != expected:
            logger.warning("Rejected Feishu event with bad verification token")
            return web.json_response({"code": 403}, status=403)

        msg = parse_message_event(body)
        if msg is None or self._recent.check_and_add(msg.message_id):
            return web.json_response({"code": 0})

        # Ack now; Feishu retries callbacks that take longer than a few seconds.
        task = asyncio.create_task(self._dispatch(msg))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return web.json_response({"code": 0})

    async def _dispatch(self, msg: IncomingMessage) -> None:
        try:
            reply = await self._handler(msg)
        except Exception:
            logger.exception("Handler failed for feishu message %s", msg.message_id)
            return
        await self.reply(msg.chat_id, reply)

    async def reply(self, chat_id: str, reply: Reply) -> None:
        """Post `reply.text` to the chat as a text message."""
        from lark_oapi.api.im.v1 import CreateMessageRequest, CreateMessageRequestBody

        body = (
            CreateMessageRequestBody.builder()
            .receive_id(chat_id)
            .msg_type("text")
            .content(json.dumps({"text": reply.text}, ensure_ascii=False))
            .build()
        )
        req = CreateMessageRequest.builder().receive_id_type("chat_id").request_body(body).build()

        try:
            resp = await asyncio.to_thread(self._client.im.v1.message.create, req)
        except Exception as e:
            logger.error("Feishu reply to %s failed: %s", chat_id, e)
            return
        if not resp.success():
            logger.error("Feishu reply rejected: code=%s msg=%s", resp.code, resp.msg)
