from __future__ import annotations

"""Chat model factory for the SRE agent.

Env vars:
- LLM_PROVIDER: "openai" (default) or "ollama"

OpenAI:
- OPENAI_API_KEY (required)
- OPENAI_BASE_URL (optional)
- OPENAI_MODEL (default: gpt-4o-mini)

Ollama (optional/local):
- OLLAMA_BASE_URL (optional)
- OLLAMA_MODEL (default: qwen3:8b)

Both run with a low temperature and a 2048-token answer budget.
"""

import os
from typing import Any

TEMPERATURE = 0.3
MAX_OUTPUT_TOKENS = 2048


def llm_provider() -> str:
    return (os.getenv("LLM_PROVIDER") or "openai").strip().lower()


def get_chat_llm() -> Any:
    """Tool-calling chat model used by the ReAct loop."""
    provider = llm_provider()

    if provider == "openai":
        try:
            from langchain_openai import ChatOpenAI
        except Exception as e:  # pragma: no cover
            raise RuntimeError("Missing dependency: langchain-openai. Install the project dependencies.") from e

        return ChatOpenAI(
            api_key=os.getenv("OPENAI_API_KEY"),
            base_url=os.getenv("OPENAI_BASE_URL"),
            model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            temperature=TEMPERATURE,
            max_tokens=MAX_OUTPUT_TOKENS,
        )

    if provider == "ollama":
        try:
            from langchain_ollama import ChatOllama
        except Exception as e:  # pragma: no cover
            raise RuntimeError("Missing dependency: langchain-ollama. Install with the 'ollama' extra.") from e

        return ChatOllama(
            base_url=os.getenv("OLLAMA_BASE_URL"),
            model=os.getenv("OLLAMA_MODEL", "qwen3:8b"),
            temperature=TEMPERATURE,
            num_predict=MAX_OUTPUT_TOKENS,
        )

    raise ValueError(f"Unknown LLM_PROVIDER: {provider}")
