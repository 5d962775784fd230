"""Conversation state for a single chat session."""

import json
from types import MappingProxyType
from typing import Any, List, Mapping, Optional

from ..config import SessionConfig
from ..utils import Ansi, console
from .client import OpenAIClientWrapper
from .tools import Tool, describe_error
from .types import Message, StepResult

ERROR_PREFIX = "Error: "
NO_RESPONSE = "No response generated."


class ConversationSession:
    """Owns the message history and runs one augmented generation per user turn.

    After every successful turn the history is replaced by the transcript the
    generation call returns, so tool calls and tool results made during the
    turn are carried into the next request in the order they happened.
    """

    def __init__(
        self,
        config: SessionConfig,
        client: OpenAIClientWrapper,
        tools: Optional[Mapping[str, Tool]] = None,
    ) -> None:
        self.config = config
        self.client = client
        self.tools: Mapping[str, Tool] = MappingProxyType(dict(tools or {}))
        self.messages: List[Message] = []
        self.last_failed = False

    def _debug(self, text: str) -> None:
        if self.config.debug:
            console.print(Ansi.style(Ansi.plain(text), Ansi.DIM))

    def _report_step(self, step: StepResult) -> None:
        for call in step.tool_calls:
            console.print("\n" + Ansi.style(Ansi.plain(f"[Using tool: {call.name}]"), Ansi.FG_MAGENTA))
            arguments: Any = call.arguments if call.arguments is not None else call.raw_arguments
            self._debug(f"[Args: {json.dumps(arguments, ensure_ascii=False, default=str)}]")

        for result in step.tool_results:
            if result.is_error:
                console.print(Ansi.style(Ansi.plain("[Tool failed]"), Ansi.FG_RED))
                self._debug(f"[Error: {result.as_text()}]")
            else:
                self._debug("[Tool completed successfully]")

        if step.finish_reason == "length":
            self._debug("[Reply truncated: the model hit its output token limit]")

    def send(self, user_text: str) -> str:
        """Send *user_text* and return the assistant's reply.

        A failed call is returned as an ``Error:`` string; the user message
        stays in history so the next turn still sees it, and ``last_failed``
        is set until the next call.
        """
        if not user_text or not user_text.strip():
            raise ValueError("user_text must not be empty")

        self.messages.append({"role": "user", "content": user_text})
        self.last_failed = False

        try:
            result = self.client.generate(
                model=self.config.model,
                system=self.config.system_prompt,
                messages=list(self.messages),
                tools=self.tools,
                max_steps=self.config.max_steps,
                on_step=self._report_step,
            )
            transcript = list(result.messages)
        except Exception as exc:
            self.last_failed = True
            return f"{ERROR_PREFIX}{describe_error(exc)}"

        self.messages = transcript
        return result.text or NO_RESPONSE
