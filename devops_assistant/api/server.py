from __future__ import annotations

"""HTTP boundary for the assistant.

Endpoints:
- GET  /health                    mode + liveness
- POST /devAssistant              {"data": "<question>"} -> {"result": "<answer>"}
- POST /tools/query_system_logs   {"query": "<sql>"} -> serialized envelope (debugging)

The tool and agent are built once in the lifespan and kept on `app.state`.
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from devops_assistant.agent.react_loop_graph import ask, build_react_graph
from devops_assistant.config import Settings
from devops_assistant.logs.tool import LogQueryTool

logger = logging.getLogger(__name__)

INVALID_REQUEST = 'Invalid request. Expected { data: "your question" }'


class ToolQuery(BaseModel):
    query: str


def create_app(
    settings: Settings | None = None,
    *,
    tool: LogQueryTool | None = None,
    agent: Any | None = None,
) -> FastAPI:
    """Build the FastAPI app. `tool`/`agent` overrides are for tests."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or Settings.from_env().validate()
        log_tool = tool or LogQueryTool.from_settings(cfg)
        app.state.settings = cfg
        app.state.tool = log_tool
        app.state.agent = agent or build_react_graph(log_tool=log_tool, settings=cfg)
        logger.info("Assistant ready (mode=%s)", log_tool.mode.value)
        yield

    app = FastAPI(title="AI DevOps Assistant", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        return {
            "status": "healthy",
            "mode": request.app.state.tool.mode.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.post("/devAssistant")
    async def dev_assistant(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            body = None
        question = body.get("data") if isinstance(body, dict) else None
        if not isinstance(question, str) or not question.strip():
            return JSONResponse(status_code=400, content={"error": INVALID_REQUEST})

        logger.info("HTTP request received")
        try:
            answer = await ask(request.app.state.agent, question)
        except Exception as e:
            logger.exception("HTTP error")
            return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(e)})
        return JSONResponse(content={"result": answer})

    @app.post("/tools/query_system_logs")
    async def query_system_logs(payload: ToolQuery, request: Request) -> JSONResponse:
        out = await request.app.state.tool.invoke(payload.query)
        return JSONResponse(content=json.loads(out))

    return app
