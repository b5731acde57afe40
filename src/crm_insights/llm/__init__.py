"""Language-model boundary: text generation, report prompt and tool-calling chat."""

from .chat import TOOL_NAME, BadToolCall, ChatOutcome, QueryToolCall, parse_tool_call, run_chat, tool_declarations
from .providers import ChatModel, ChatReply, OpenAIChatModel, ToolCall, generate_text
from .report import build_report_prompt, render_report

__all__ = [
    "TOOL_NAME",
    "BadToolCall",
    "ChatModel",
    "ChatOutcome",
    "ChatReply",
    "OpenAIChatModel",
    "QueryToolCall",
    "ToolCall",
    "build_report_prompt",
    "generate_text",
    "parse_tool_call",
    "render_report",
    "run_chat",
    "tool_declarations",
]
