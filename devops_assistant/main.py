from __future__ import annotations

"""CLI entrypoint for the DevOps log assistant.

Usage:
  python -m devops_assistant.main --once "Why are payments failing?"
  python -m devops_assistant.main --query "SELECT * FROM logs WHERE severity = 'ERROR'"
  python -m devops_assistant.main --serve
  python -m devops_assistant.main --show-graph

Set USE_MOCK_DATA=true to run against the synthetic log dataset (no GCP needed).
"""

import argparse
import asyncio
import sys
from typing import Any

from devops_assistant.agent.react_loop_graph import ask, build_react_graph
from devops_assistant.config import ConfigError, Settings, configure_logging
from devops_assistant.logs.tool import LogQueryTool


def _print_graph(app: Any) -> None:
    g = app.get_graph()
    print("\nCURRENT LANGGRAPH (from app.get_graph())\n")
    print("Nodes:")
    for node_id in sorted(g.nodes.keys()):
        print(f"- {node_id}")
    print("\nEdges:")
    for e in g.edges:
        flag = " (conditional)" if getattr(e, "conditional", False) else ""
        print(f"- {e.source} -> {e.target}{flag}")


def _dump_messages(out: dict[str, Any]) -> None:
    msgs = out.get("messages")
    if not isinstance(msgs, list) or not msgs:
        print("\n[debug] No messages in output state.\n")
        return
    print("\n[debug] Messages:")
    for i, m in enumerate(msgs):
        print(f"- #{i} {m.__class__.__name__}")
        tool_calls = getattr(m, "tool_calls", None)
        if tool_calls:
            print(f"  tool_calls: {tool_calls}")
        content = getattr(m, "content", None)
        if isinstance(content, str) and content.strip():
            print("  " + "\n  ".join(content.splitlines()))
    print()


def _run_question(app: Any, question: str, *, dump: bool) -> None:
    if dump:
        out = asyncio.run(app.ainvoke({"query": question}))
        print(out.get("response", ""))
        _dump_messages(out)
        return
    print(asyncio.run(ask(app, question)))


def _serve(settings: Settings) -> None:
    import uvicorn

    from devops_assistant.api.server import create_app

    print(f"Server: http://localhost:{settings.port}")
    print(f"Health: http://localhost:{settings.port}/health")
    print(f"Endpoint: POST http://localhost:{settings.port}/devAssistant")
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Ask the DevOps log assistant about production incidents.")
    ap.add_argument("--once", default=None, help="Ask a single question and exit")
    ap.add_argument("--query", default=None, help="Run one log query through the tool and print the envelope")
    ap.add_argument("--serve", action="store_true", help="Start the HTTP server")
    ap.add_argument("--show-graph", action="store_true", help="Print the agent graph structure")
    ap.add_argument("--dump-messages", action="store_true", help="Print the full ReAct message history after each run")
    ap.add_argument("--max-steps", type=int, default=10, help="Max tool-calling rounds per question")
    args = ap.parse_args(argv)

    try:
        settings = Settings.from_env().validate()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level)
    print(f"Mode: {'MOCK DATA' if settings.use_mock_data else 'BIGQUERY'} ({settings.mode.value})")

    if args.serve:
        _serve(settings)
        return 0

    tool = LogQueryTool.from_settings(settings)

    if args.query:
        print(tool.invoke_sync(args.query))
        return 0

    app = build_react_graph(log_tool=tool, settings=settings, max_steps=args.max_steps)

    if args.show_graph:
        _print_graph(app)
        return 0

    if args.once:
        _run_question(app, args.once, dump=args.dump_messages)
        return 0

    print("Enter a question (empty line to quit).")
    while True:
        try:
            q = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return 0
        if not q:
            return 0
        _run_question(app, q, dump=args.dump_messages)


if __name__ == "__main__":
    raise SystemExit(main())
