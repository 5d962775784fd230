"""OpenAI client wrapper running the step-bounded tool-calling loop."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Mapping, Optional

from openai import OpenAI  # type: ignore

from ..utils import Spinner
from .tools import Tool, describe_error
from .types import GenerationResult, Message, StepResult, ToolCall, ToolResult

StepObserver = Callable[[StepResult], None]


class OpenAIClientWrapper:
    """Thin wrapper around the OpenAI Python SDK hiding the tool round-trips."""

    def __init__(self, client: OpenAI):
        self.client = client

    # ------------------------------------------------------------------
    # Helper methods
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_tool_calls(message: Any) -> List[ToolCall]:
        calls: List[ToolCall] = []
        for raw in getattr(message, "tool_calls", None) or []:
            raw_arguments = raw.function.arguments or "{}"
            try:
                arguments = json.loads(raw_arguments)
            except json.JSONDecodeError:
                arguments = None
            calls.append(
                ToolCall(
                    id=raw.id,
                    name=raw.function.name,
                    arguments=arguments if isinstance(arguments, dict) else None,
                    raw_arguments=raw_arguments,
                )
            )
        return calls

    @staticmethod
    def _invoke(tools: Mapping[str, Tool], call: ToolCall) -> ToolResult:
        """Run one tool call. Failures become errored results fed back to the model."""
        tool = tools.get(call.name)
        if tool is None:
            return ToolResult(call.id, call.name, {"error": f"Unknown tool '{call.name}'"}, is_error=True)
        if call.arguments is None:
            return ToolResult(
                call.id,
                call.name,
                {"error": f"Arguments for '{call.name}' are not a JSON object: {call.raw_arguments}"},
                is_error=True,
            )
        try:
            output, is_error = tool.invoke(call.arguments)
        except Exception as exc:
            return ToolResult(call.id, call.name, {"error": describe_error(exc)}, is_error=True)
        return ToolResult(call.id, call.name, output, is_error=is_error)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(
        self,
        model: str,
        system: str,
        messages: List[Message],
        tools: Mapping[str, Tool],
        *,
        max_steps: int,
        on_step: Optional[StepObserver] = None,
    ) -> GenerationResult:
        """Ask the model for a reply, running tool calls for up to *max_steps* rounds.

        Every round sends the system instruction followed by the transcript so
        far. When the model proposes tool calls they are invoked in order and
        their results appended before the next round. The loop stops at the
        first round without tool calls or once *max_steps* rounds have run,
        returning that round's text.

        The returned transcript starts with *messages* and carries every
        assistant and tool message produced along the way. OpenAI SDK errors
        propagate to the caller.
        """
        transcript: List[Message] = list(messages)
        tool_specs = [tool.to_openai_spec() for tool in tools.values()]
        steps: List[StepResult] = []

        for _ in range(max_steps):
            params: Dict[str, Any] = {
                "model": model,
                "messages": [{"role": "system", "content": system}, *transcript],
            }
            if tool_specs:
                params["tools"] = tool_specs

            with Spinner():
                completion = self.client.chat.completions.create(**params)  # type: ignore[arg-type]

            choice = completion.choices[0]
            message = choice.message
            calls = self._parse_tool_calls(message)

            entry: Message = {"role": "assistant", "content": message.content or ""}
            if calls:
                entry["tool_calls"] = [call.as_message_entry() for call in calls]
            transcript.append(entry)

            results = [self._invoke(tools, call) for call in calls]
            transcript.extend(result.as_message() for result in results)

            step = StepResult(
                text=message.content or "",
                tool_calls=calls,
                tool_results=results,
                finish_reason=getattr(choice, "finish_reason", None),
            )
            steps.append(step)
            if on_step is not None:
                on_step(step)

            if not calls:
                break

        text = steps[-1].text if steps else ""
        return GenerationResult(text=text, messages=transcript, steps=steps)
