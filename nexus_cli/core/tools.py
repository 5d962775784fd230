"""MCP tool gateway: discovers remote tools and exposes them as plain callables.

The MCP SDK is asyncio based while the REPL is synchronous. The gateway owns a
private event loop and one long-lived task that keeps the streamable-HTTP
transport and the client session open; every SDK call is driven on that loop
with ``run_until_complete``. The transport and session contexts are entered
and exited by the same task, which anyio's cancel scopes require.
"""

from __future__ import annotations

import asyncio
import functools
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client

from ..config import DEFAULT_MCP_URL, DEFAULT_TIMEOUT
from ..utils import Ansi, WARNING_LABEL, console

ToolHandler = Callable[[Dict[str, Any]], Tuple[Any, bool]]


@dataclass(frozen=True)
class Tool:
    """A remotely invokable capability offered to the model."""

    name: str
    description: str
    input_schema: Dict[str, Any]
    invoke: ToolHandler = field(repr=False, compare=False)

    def to_openai_spec(self) -> Dict[str, Any]:
        """Return the chat-completions function tool definition."""
        parameters = dict(self.input_schema or {})
        parameters.setdefault("type", "object")
        parameters.setdefault("properties", {})
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }


def describe_error(exc: BaseException) -> str:
    """Return a readable message, unwrapping exception groups from anyio task groups."""
    while getattr(exc, "exceptions", None):
        exc = exc.exceptions[0]  # type: ignore[attr-defined]
    return str(exc) or exc.__class__.__name__


def _result_payload(result: Any) -> Dict[str, Any]:
    parts = []
    for item in getattr(result, "content", None) or []:
        if getattr(item, "type", None) == "text":
            parts.append(item.text)
        elif hasattr(item, "model_dump"):
            parts.append(item.model_dump(mode="json", exclude_none=True))
        else:
            parts.append(str(item))
    payload: Dict[str, Any] = {"content": parts}
    structured = getattr(result, "structuredContent", None)
    if structured:
        payload["structuredContent"] = structured
    if getattr(result, "isError", False):
        payload["isError"] = True
    return payload


class ToolGateway:
    """Connection to a single MCP server over the streamable-HTTP transport."""

    def __init__(
        self,
        server_url: str,
        access_token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.server_url = server_url
        self.timeout = timeout
        self._headers: Optional[Dict[str, str]] = (
            {"Authorization": f"Bearer {access_token}"} if access_token else None
        )
        self._loop = asyncio.new_event_loop()
        self._session: Optional[ClientSession] = None
        self._shutdown: Optional[asyncio.Event] = None
        self._holder: Optional[asyncio.Task] = None

    @property
    def connected(self) -> bool:
        return self._session is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _hold_session(self, ready: "asyncio.Future[None]") -> None:
        self._shutdown = asyncio.Event()
        try:
            async with AsyncExitStack() as stack:
                read, write, _ = await stack.enter_async_context(
                    streamablehttp_client(
                        url=self.server_url,
                        headers=self._headers,
                        timeout=timedelta(seconds=self.timeout),
                    )
                )
                session = await stack.enter_async_context(
                    ClientSession(
                        read,
                        write,
                        read_timeout_seconds=timedelta(seconds=self.timeout),
                    )
                )
                await session.initialize()
                self._session = session
                ready.set_result(None)
                await self._shutdown.wait()
        except Exception as exc:
            if ready.done():
                raise
            ready.set_exception(exc)
        finally:
            self._session = None
            if not ready.done():
                ready.set_exception(ConnectionError("MCP session ended before it was ready"))

    def connect(self) -> Dict[str, Tool]:
        """Open the session and return the server's tools keyed by name.

        Raises whatever the transport or handshake raised; the loop is closed
        before the error propagates.
        """
        ready = self._loop.create_future()
        self._holder = self._loop.create_task(self._hold_session(ready))
        try:
            self._loop.run_until_complete(ready)
            listing = self._loop.run_until_complete(self._session.list_tools())
        except BaseException:
            self.close()
            raise

        tools: Dict[str, Tool] = {}
        for item in listing.tools:
            if item.name in tools:
                continue
            tools[item.name] = Tool(
                name=item.name,
                description=item.description or "",
                input_schema=dict(item.inputSchema or {}),
                invoke=functools.partial(self.call_tool, item.name),
            )
        return tools

    def call_tool(self, name: str, arguments: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """Invoke *name* on the server. Returns ``(payload, is_error)``."""
        if self._session is None:
            raise RuntimeError("MCP session is not connected")
        result = self._loop.run_until_complete(self._session.call_tool(name, arguments))
        return _result_payload(result), bool(getattr(result, "isError", False))

    def close(self) -> None:
        """Release the transport. Calling it again is a no-op."""
        if self._loop.is_closed():
            return
        try:
            if self._holder is not None and not self._holder.done():
                if self._shutdown is not None:
                    self._shutdown.set()
                self._loop.run_until_complete(self._holder)
        finally:
            self._holder = None
            self._loop.close()


def open_gateway(
    server_url: str = DEFAULT_MCP_URL,
    access_token: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Tuple[Optional[ToolGateway], Mapping[str, Tool]]:
    """Connect to the MCP server, degrading to no tools when that fails."""
    console.print("Connecting to Nexus MCP server...")
    gateway = ToolGateway(server_url, access_token=access_token, timeout=timeout)
    try:
        tools = gateway.connect()
    except Exception as exc:
        gateway.close()
        console.print(f"[{WARNING_LABEL}] Could not connect to Nexus MCP server.")
        console.print(f"Error: {Ansi.plain(describe_error(exc))}\n")
        console.print("Continuing without MCP tools...\n")
        return None, {}

    console.print(f"Connected! Loaded {len(tools)} tools from Nexus MCP.\n")
    return gateway, tools
