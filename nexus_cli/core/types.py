"""Plain data types passed between the generation loop and the session."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

Message = Dict[str, Any]


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation proposed by the model.

    ``arguments`` is ``None`` when ``raw_arguments`` is not a JSON object.
    """

    id: str
    name: str
    arguments: Optional[Dict[str, Any]]
    raw_arguments: str = "{}"

    def as_message_entry(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.raw_arguments},
        }


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool invocation, fed back to the model as a ``tool`` message."""

    call_id: str
    tool_name: str
    output: Any
    is_error: bool = False

    def as_text(self) -> str:
        if isinstance(self.output, str):
            return self.output
        return json.dumps(self.output, ensure_ascii=False, default=str)

    def as_message(self) -> Message:
        return {"role": "tool", "tool_call_id": self.call_id, "content": self.as_text()}


@dataclass(frozen=True)
class StepResult:
    """One model round: its text plus any tool calls made and their results."""

    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)
    finish_reason: Optional[str] = None


@dataclass(frozen=True)
class GenerationResult:
    """Final text, the authoritative transcript and the per-step trace of a turn."""

    text: str
    messages: List[Message]
    steps: List[StepResult] = field(default_factory=list)
