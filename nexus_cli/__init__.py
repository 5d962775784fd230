"""Interactive CLI for chatting with OpenAI models backed by remote MCP tools.

Features
--------
1. Tool use: tools discovered on the Nexus MCP server (streamable HTTP, optional
   bearer token) are offered to the model, which may call them for up to ten
   rounds per turn.
2. Best-effort tooling: if the MCP server cannot be reached the chat carries on
   without tools.
3. Debug output: set ``DEBUG=true`` (or pass ``--debug``) to print raw tool
   arguments and tool error payloads.

Type ``exit`` or ``quit`` to leave. Run ``python -m nexus_cli`` or the
``nexus-cli`` console script.

Environment variables
---------------------
* OPENAI_API_KEY – your OpenAI API key (prompted for when missing)
* OPENAI_BASE_URL – custom base URL (optional, for self-hosting/proxy)
* OPENAI_DEFAULT_MODEL – model to use (default ``gpt-4o-mini``)
* NEXUS_MCP_URL – MCP server URL override
* CIVIC_ACCESS_TOKEN – bearer token for the MCP server
* NEXUS_MCP_TIMEOUT – MCP request timeout in seconds
"""
# Re-export useful symbols for convenience
from .config import SessionConfig, SUPPORTED_MODELS, SYSTEM_PROMPT, MAX_STEPS
from .core import ConversationSession, Tool, ToolGateway, open_gateway
from .core.client import OpenAIClientWrapper
from .cli import ChatCLI, run_cli

__all__ = [
    "SessionConfig",
    "SUPPORTED_MODELS",
    "SYSTEM_PROMPT",
    "MAX_STEPS",
    "ConversationSession",
    "Tool",
    "ToolGateway",
    "open_gateway",
    "OpenAIClientWrapper",
    "ChatCLI",
    "run_cli",
]
