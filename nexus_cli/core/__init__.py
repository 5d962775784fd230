from .session import ConversationSession, ERROR_PREFIX, NO_RESPONSE
from .tools import Tool, ToolGateway, open_gateway
from .types import GenerationResult, StepResult, ToolCall, ToolResult

__all__ = [
    "ConversationSession",
    "ERROR_PREFIX",
    "NO_RESPONSE",
    "Tool",
    "ToolGateway",
    "open_gateway",
    "GenerationResult",
    "StepResult",
    "ToolCall",
    "ToolResult",
]
