"""Tests for chat connectors."""

import asyncio
import json
import pytest
from unittest.mock import AsyncMock

from drivedesk.config import FeishuConfig
from drivedesk.connectors.base import IncomingMessage, Reply
from drivedesk.connectors.cli import CLIConnector
from drivedesk.connectors.feishu import RecentIds, message_text, parse_message_event


class TestCLIConnector:
    @pytest.mark.asyncio
    async def test_reply_prints_text(self, capsys):
        await CLIConnector().reply("cli", Reply(text="📁 No files", session_id="abc"))
        captured = capsys.readouterr()
        assert "📁 No files" in captured.out
        assert "abc" in captured.err

    @pytest.mark.asyncio
    async def test_start_dispatches_until_exit(self, monkeypatch, capsys):
        connector = CLIConnector()
        lines = iter(["HELP", "", "exit"])
        monkeypatch.setattr(connector, "_read_input", lambda: next(lines))
        seen: list[IncomingMessage] = []

        async def handler(msg):
            seen.append(msg)
            return Reply(text="ok")

        await connector.start(handler)
        assert [m.text for m in seen] == ["HELP"]
        assert seen[0].connector_name == "cli"


def webhook_body(text: str, message_id: str = "om_1", token: str = "tok") -> dict:
    return {
        "header": {"token": token, "event_type": "im.message.receive_v1"},
        "event": {
            "sender": {"sender_id": {"open_id": "ou_alice"}},
            "message": {
                "message_id": message_id,
                "chat_id": "oc_chat",
                "content": json.dumps({"text": text}),
                "mentions": [{"key": "@_user_1", "name": "Drivedesk"}],
            },
        },
    }


class TestFeishuEvents:
    def test_message_text_removes_mention_keys(self):
        message = {
            "content": json.dumps({"text": "@_user_1  LIST /Reports"}),
            "mentions": [{"key": "@_user_1"}],
        }
        assert message_text(message) == "LIST /Reports"

    def test_message_text_bad_content(self):
        assert message_text({"content": "not json"}) == ""

    def test_parse_message_event(self):
        msg = parse_message_event(webhook_body("@_user_1 HELP"))
        assert msg.text == "HELP"
        assert msg.chat_id == "oc_chat"
        assert msg.sender == "ou_alice"
        assert msg.message_id == "om_1"
        assert msg.connector_name == "feishu"

    def test_ignores_other_events(self):
        body = webhook_body("HELP")
        body["header"]["event_type"] = "im.chat.member.bot.added_v1"
        assert parse_message_event(body) is None

    def test_ignores_non_text_messages(self):
        body = webhook_body("HELP")
        body["event"]["message"]["message_type"] = "image"
        assert parse_message_event(body) is None

    def test_recent_ids_ttl(self):
        recent = RecentIds(ttl=10)
        assert recent.check_and_add("a", now=0) is False
        assert recent.check_and_add("a", now=5) is True
        assert recent.check_and_add("a", now=20) is False

    def test_recent_ids_bounded(self):
        recent = RecentIds(ttl=100, max_size=2)
        for event_id in ("a", "b", "c"):
            recent.check_and_add(event_id, now=0)
        assert recent.check_and_add("a", now=1) is False


class TestFeishuConnector:
    @pytest.fixture
    def connector(self):
        pytest.importorskip("lark_oapi")
        from drivedesk.connectors.feishu import FeishuConnector

        conn = FeishuConnector(
            FeishuConfig(app_id="cli_a", app_secret="secret", verification_token="tok")
        )
        conn.reply = AsyncMock()
        return conn

    @pytest.mark.asyncio
    async def test_webhook_dispatch(self, connector):
        from aiohttp.test_utils import TestClient, TestServer

        seen: list[IncomingMessage] = []

        async def handler(msg):
            seen.append(msg)
            return Reply(text="done")

        connector._handler = handler
        async with TestClient(TestServer(connector.build_app())) as client:
            resp = await client.post("/webhook/feishu", json={"challenge": "xyz"})
            assert (await resp.json()) == {"challenge": "xyz"}

            resp = await client.post("/webhook/feishu", json=webhook_body("LIST /", token="bad"))
            assert resp.status == 403

            for _ in range(2):  # second delivery is deduplicated
                resp = await client.post("/webhook/feishu", json=webhook_body("@_user_1 LIST /"))
                assert (await resp.json()) == {"code": 0}

            await asyncio.gather(*connector._tasks)

            resp = await client.get("/health")
            assert (await resp.json())["status"] == "healthy"

        assert [m.text for m in seen] == ["LIST /"]
        assert seen[0].sender == "ou_alice"
        connector.reply.assert_awaited_once()
        assert connector.reply.call_args[0][0] == "oc_chat"
