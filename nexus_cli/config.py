"""Runtime configuration, read once at start-up."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .utils import Ansi, WARNING_LABEL, console

DEFAULT_MCP_URL = "https://nexus.civic.com/hub/mcp"
DEFAULT_TIMEOUT = 30.0

DEFAULT_MODEL = "gpt-4o-mini"

# Supported models
SUPPORTED_MODELS = [
    "gpt-4.1",
    "gpt-4.1-mini",
    "gpt-4o",
    "gpt-4o-mini",  # default
    "o3",
    "o4-mini",
]

MAX_STEPS = 10

SYSTEM_PROMPT = (
    "You are a helpful assistant. When you use tools to gather information, "
    "always provide a clear, conversational response to the user based on the "
    "tool results."
)


def _env_flag(value: Optional[str]) -> bool:
    return value == "true"


def _env_timeout(value: Optional[str]) -> float:
    if not value:
        return DEFAULT_TIMEOUT
    try:
        return float(value)
    except ValueError:
        console.print(
            f"[{WARNING_LABEL}] NEXUS_MCP_TIMEOUT='{Ansi.plain(value)}' is not a number. "
            f"Falling back to {DEFAULT_TIMEOUT:g} seconds."
        )
        return DEFAULT_TIMEOUT


@dataclass(frozen=True)
class SessionConfig:
    """Everything the session and the tool gateway need, fixed for the process lifetime."""

    api_key: str = ""
    model: str = DEFAULT_MODEL
    system_prompt: str = SYSTEM_PROMPT
    max_steps: int = MAX_STEPS
    mcp_url: str = DEFAULT_MCP_URL
    access_token: Optional[str] = None
    debug: bool = False
    base_url: Optional[str] = None
    mcp_timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SessionConfig":
        """Build a config from ``OPENAI_*``, ``NEXUS_MCP_*``, ``CIVIC_ACCESS_TOKEN`` and ``DEBUG``."""
        env = os.environ if environ is None else environ
        return cls(
            api_key=env.get("OPENAI_API_KEY", "").strip(),
            model=env.get("OPENAI_DEFAULT_MODEL") or DEFAULT_MODEL,
            mcp_url=env.get("NEXUS_MCP_URL") or DEFAULT_MCP_URL,
            access_token=env.get("CIVIC_ACCESS_TOKEN") or None,
            debug=_env_flag(env.get("DEBUG")),
            base_url=env.get("OPENAI_BASE_URL") or None,
            mcp_timeout=_env_timeout(env.get("NEXUS_MCP_TIMEOUT")),
        )
