from __future__ import annotations

import json
from typing import Any

from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage, ToolMessage

from devops_assistant.agent.react_loop_graph import build_react_graph
from devops_assistant.api.server import INVALID_REQUEST, create_app
from devops_assistant.config import Settings
from devops_assistant.logs.mock_backend import MockLogBackend
from devops_assistant.logs.tool import TOOL_NAME, LogQueryTool

SETTINGS = Settings(use_mock_data=True, audit_enabled=False)


class SummarizingLLM:
    def bind_tools(self, _tools: Any):
        return self

    def invoke(self, messages: list[Any]):
        observations = [m for m in messages if isinstance(m, ToolMessage)]
        if observations:
            data = json.loads(observations[-1].content)
            traces = ", ".join(r["trace"] for r in data["rows"][:2])
            return AIMessage(content=f"{data['rowCount']} payment errors; start with {traces}.")
        return AIMessage(
            content="",
            tool_calls=[{"id": "tc1", "name": TOOL_NAME, "args": {"query": "payment errors LIMIT 50"}}],
        )


def _client() -> TestClient:
    tool = LogQueryTool(MockLogBackend())
    agent = build_react_graph(log_tool=tool, settings=SETTINGS, llm=SummarizingLLM())
    return TestClient(create_app(SETTINGS, tool=tool, agent=agent))


def test_health_reports_mode() -> None:
    with _client() as client:
        res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "healthy"
    assert body["mode"] == "mock"
    assert body["timestamp"]


def test_dev_assistant_answers_question() -> None:
    with _client() as client:
        res = client.post("/devAssistant", json={"data": "Why are payments failing?"})
    assert res.status_code == 200
    assert res.json() == {"result": "3 payment errors; start with trace-abc123, trace-jkl012."}


def test_dev_assistant_rejects_bad_payloads() -> None:
    with _client() as client:
        for payload in ({}, {"data": 42}, {"data": "   "}):
            res = client.post("/devAssistant", json=payload)
            assert res.status_code == 400
            assert res.json() == {"error": INVALID_REQUEST}
        res = client.post("/devAssistant", content=b"not json", headers={"content-type": "application/json"})
        assert res.status_code == 400


def test_tool_endpoint_returns_envelope() -> None:
    with _client() as client:
        res = client.post("/tools/query_system_logs", json={"query": "SELECT * FROM logs LIMIT 1000"})
    assert res.status_code == 200
    body = res.json()
    assert body["rowCount"] == len(body["rows"]) == 14
