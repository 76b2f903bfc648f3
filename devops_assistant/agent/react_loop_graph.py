from __future__ import annotations

"""ReAct loop agent (two-node graph) over the log-query tool.

Design:
- Exactly two nodes: `plan` -> `execute` -> `plan` (loop)
- The LLM decides whether to query logs again or stop and answer
- Maximum iterations enforced (default: 10)
- Tool observations are the serialized envelopes, passed through as-is
"""

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypedDict

from langchain_core.messages import HumanMessage, SystemMessage, ToolMessage
from langchain_core.tools import StructuredTool
from langgraph.graph import END, StateGraph

from devops_assistant.agent.llm import get_chat_llm
from devops_assistant.agent.prompts import system_prompt
from devops_assistant.config import Settings
from devops_assistant.logs.tool import TOOL_NAME, LogQueryTool

logger = logging.getLogger(__name__)


class ReactState(TypedDict, total=False):
    query: str
    step: int
    max_steps: int
    messages: list[Any]
    tools_used: list[str]
    tool_calls: list[dict[str, Any]]
    response: str


ToolFn = Callable[..., Awaitable[str]]


@dataclass(frozen=True)
class ToolRegistry:
    tools: dict[str, ToolFn]
    schemas: list[StructuredTool]


def default_tool_registry(log_tool: LogQueryTool) -> ToolRegistry:
    # Keyword names must match the bound schema (`query`), not the façade's.
    async def query_system_logs(query: str) -> str:
        return await log_tool.invoke(query)

    return ToolRegistry(tools={TOOL_NAME: query_system_logs}, schemas=[log_tool.as_langchain_tool()])


def build_react_graph(
    *,
    log_tool: LogQueryTool,
    settings: Settings,
    registry: ToolRegistry | None = None,
    llm: Any | None = None,
    max_steps: int = 10,
):
    """Build a two-node ReAct loop graph bound to one log tool."""

    registry = registry or default_tool_registry(log_tool)
    llm = llm or get_chat_llm()
    prompt = system_prompt(settings)

    try:
        llm_with_tools = llm.bind_tools(registry.schemas)  # type: ignore[attr-defined]
    except Exception as e:
        raise RuntimeError(
            "LLM does not support tool calling (bind_tools). Use a tool-calling chat model."
        ) from e

    def _plan(state: ReactState) -> ReactState:
        q = state.get("query", "")
        step = int(state.get("step") or 0)
        cap = int(state.get("max_steps") or max_steps)
        msgs = list(state.get("messages") or [])

        if not msgs:
            msgs = [SystemMessage(content=prompt), HumanMessage(content=q)]

        if step >= cap:
            # Hard stop: do NOT call the LLM again (it might keep tool-calling).
            used = state.get("tools_used") or []
            return {
                "messages": msgs,
                "response": (
                    f"Max steps reached (max_steps={cap}). "
                    f"Log queries run so far: {len(used)}. "
                    "Stopping here; narrow the question or increase max_steps."
                ),
                "step": step,
                "max_steps": cap,
            }

        ai = llm_with_tools.invoke(msgs)
        msgs.append(ai)

        if getattr(ai, "tool_calls", None):
            return {"messages": msgs, "step": step, "max_steps": cap}
        return {"messages": msgs, "response": (getattr(ai, "content", "") or "").strip(), "step": step, "max_steps": cap}

    async def _execute(state: ReactState) -> ReactState:
        msgs = list(state.get("messages") or [])
        if not msgs:
            return {}

        tool_calls = list(getattr(msgs[-1], "tool_calls", None) or [])
        if not tool_calls:
            return {}

        used: list[str] = list(state.get("tools_used") or [])
        calls: list[dict[str, Any]] = list(state.get("tool_calls") or [])

        for tc in tool_calls:
            name = tc.get("name")
            args = tc.get("args") or {}
            tool_call_id = tc.get("id")

            fn = registry.tools.get(name)
            if fn is None:
                msgs.append(ToolMessage(content=json.dumps({"error": "unknown_tool"}), tool_call_id=tool_call_id))
                continue

            logger.info("Agent calling %s with %s", name, args)
            try:
                bound = inspect.signature(fn).bind(**args)
            except TypeError as e:
                observation = json.dumps({"error": "invalid_arguments", "details": str(e)})
            else:
                observation = await fn(*bound.args, **bound.kwargs)

            used.append(name)
            calls.append({"tool_name": name, "args": dict(args)})
            msgs.append(ToolMessage(content=observation, tool_call_id=tool_call_id))

        return {
            "messages": msgs,
            "tools_used": used,
            "tool_calls": calls,
            "step": int(state.get("step") or 0) + 1,
        }

    g = StateGraph(ReactState)
    g.add_node("plan", _plan)
    g.add_node("execute", _execute)
    g.set_entry_point("plan")

    def _route_after_plan(state: ReactState) -> str:
        if state.get("response"):
            return "end"
        msgs = state.get("messages") or []
        if msgs and getattr(msgs[-1], "tool_calls", None):
            return "execute"
        return "end"

    g.add_conditional_edges("plan", _route_after_plan, {"execute": "execute", "end": END})
    g.add_edge("execute", "plan")
    return g.compile()


async def ask(app: Any, question: str) -> str:
    """Run one question through the graph and return the final answer text."""
    try:
        out = await app.ainvoke({"query": question})
    except Exception as e:
        logger.exception("Error in agent run")
        return (
            f"I encountered an error while processing your request: {e}\n\n"
            "Please check the logs and try again. If this persists, contact support."
        )
    return out.get("response", "") or ""
