"""Terminal chat front-end: start-up, the read-eval-print loop and shutdown."""
from __future__ import annotations

import argparse
import readline  # noqa: F401 – side-effect: history & line editing
import sys
from dataclasses import replace
from typing import List, Optional

import questionary
from dotenv import load_dotenv
from openai import OpenAI  # type: ignore
from rich.panel import Panel

from .config import DEFAULT_MODEL, SUPPORTED_MODELS, SessionConfig
from .core import ConversationSession, ToolGateway, open_gateway
from .core.client import OpenAIClientWrapper
from .core.tools import describe_error
from .utils import (
    Ansi,
    ASSISTANT_LABEL,
    ERROR_LABEL,
    USER_LABEL,
    WARNING_LABEL,
    console,
)

EXIT_COMMANDS = {"exit", "quit"}

# ---------------------------------------------------------------------------
# Helper classes
# ---------------------------------------------------------------------------


class ChatCLI:
    """High-level orchestration class for the interactive REPL."""

    def __init__(self, config: SessionConfig, client_wrapper: Optional[OpenAIClientWrapper] = None):
        self.config = config
        self.client = client_wrapper
        self.gateway: Optional[ToolGateway] = None
        self.session: Optional[ConversationSession] = None

    # ---------------- Start-up ----------------

    def _ensure_api_key(self) -> bool:
        """Prompt for an API key when none is configured. Return False if none was given."""
        if self.config.api_key:
            console.print("Using API key from environment\n")
            return True

        try:
            key = questionary.password("Enter your OpenAI API key:", qmark="").ask()
        except (KeyboardInterrupt, EOFError):
            console.print()
            key = None

        key = (key or "").strip()
        if not key:
            console.print(f"[{ERROR_LABEL}] An OpenAI API key is required to chat.")
            return False

        self.config = replace(self.config, api_key=key)
        console.print("API key saved for this session.\n")
        return True

    def _build_client(self) -> OpenAIClientWrapper:
        if self.client is None:
            client_kwargs = {"api_key": self.config.api_key}
            if self.config.base_url:
                client_kwargs["base_url"] = self.config.base_url
            self.client = OpenAIClientWrapper(OpenAI(**client_kwargs))  # type: ignore[arg-type]
        return self.client

    def start(self) -> bool:
        """Run the whole program. Return False if start-up was aborted."""
        console.print(Panel.fit("Nexus CLI - AI Chat", style="bold magenta"))

        if not self._ensure_api_key():
            return False

        self.gateway, tools = open_gateway(
            self.config.mcp_url,
            access_token=self.config.access_token,
            timeout=self.config.mcp_timeout,
        )
        self.session = ConversationSession(self.config, self._build_client(), tools)

        console.print(
            Ansi.style("Type your message and press Enter to chat.", Ansi.FG_YELLOW),
            Ansi.style('Type "exit" or "quit" to end the conversation.', Ansi.FG_YELLOW),
            Ansi.style(f"Current model: {self.config.model}.", Ansi.FG_YELLOW),
            sep="\n",
        )
        console.print()

        try:
            self.repl()
        finally:
            self.shutdown()
        return True

    # ---------------- Interaction loop ---------------

    def handle_line(self, line: str) -> bool:
        """Process one input line. Return False to exit REPL."""
        line = line.strip()
        if not line:
            return True

        if line.lower() in EXIT_COMMANDS:
            console.print("\nGoodbye!")
            return False

        reply = self.session.send(line)
        text = Ansi.plain(reply)
        if self.session.last_failed:
            text = Ansi.style(text, Ansi.FG_RED)
        console.print(f"\n{ASSISTANT_LABEL}: {text}\n")
        return True

    def repl(self) -> None:
        """Run the interactive read–eval–print-loop."""
        while True:
            try:
                line = console.input(f"{USER_LABEL}: ")
            except (EOFError, KeyboardInterrupt):
                console.print("\nGoodbye!")
                break

            if not self.handle_line(line):
                break

    def shutdown(self) -> None:
        """Close the MCP connection if one is open."""
        if self.gateway is None:
            return
        gateway, self.gateway = self.gateway, None
        try:
            gateway.close()
        except Exception as exc:
            console.print(
                f"[{WARNING_LABEL}] Failed to close the MCP connection: {Ansi.plain(describe_error(exc))}"
            )


# ---------------------------------------------------------------------------
# Entrypoint helpers (keeping it separate simplifies __main__ handling)
# ---------------------------------------------------------------------------

def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Interactive CLI for OpenAI chat models with remote MCP tools."
    )
    parser.add_argument("--model", "-m", help=f"Model name to use (default: {DEFAULT_MODEL})")
    parser.add_argument("--mcp-url", help="MCP server URL (overrides NEXUS_MCP_URL)")
    parser.add_argument("--token", help="Bearer token for the MCP server (overrides CIVIC_ACCESS_TOKEN)")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Print raw tool arguments and tool error payloads",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace, environ=None) -> SessionConfig:
    """Combine environment settings with command-line overrides."""
    config = SessionConfig.from_env(environ)

    overrides = {}
    if args.model:
        overrides["model"] = args.model
    if args.mcp_url:
        overrides["mcp_url"] = args.mcp_url
    if args.token:
        overrides["access_token"] = args.token
    if args.debug:
        overrides["debug"] = True
    config = replace(config, **overrides)

    if config.model not in SUPPORTED_MODELS:
        console.print(
            f"[{WARNING_LABEL}] model '{Ansi.plain(config.model)}' is not in the supported list. "
            f"Falling back to default '{DEFAULT_MODEL}'."
        )
        config = replace(config, model=DEFAULT_MODEL)
    return config


def run_cli(argv: Optional[List[str]] = None) -> None:  # pragma: no cover
    load_dotenv()
    args = _parse_args(argv)
    if not ChatCLI(build_config(args)).start():
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    run_cli()
