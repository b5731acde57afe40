"""Tool-calling conversation over the query dispatcher."""

import json
import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from pydantic import Field, ValidationError

from crm_insights.analytics.query import Dimension, QueryDispatcher, QueryFilters, QueryRequest
from crm_insights.errors import ProviderError

from .providers import ChatModel, ToolCall, dump_tool_result

logger = logging.getLogger(__name__)

TOOL_NAME = "query_sales_data"
TOOL_DESCRIPTION = (
    "Query the sales opportunity database to answer specific numeric questions. "
    "Filters are optional; group_by lists dimensions to break the result down by, in order."
)

SYSTEM_PROMPT = (
    "You are a business intelligence assistant. When asked for numbers, "
    f"ALWAYS use the '{TOOL_NAME}' tool. If a month is mentioned without a year, assume {{year}}."
)


class QueryToolArguments(QueryFilters):
    """Arguments accepted by the query tool: the filters plus group-by dimensions."""

    group_by: list[Dimension] = Field(default_factory=list, description="Dimensions to group by, in order")

    def to_request(self) -> QueryRequest:
        filters = QueryFilters.model_validate(self.model_dump(exclude={"group_by"}))
        return QueryRequest(filters=filters, group_by=self.group_by)


def tool_declarations() -> list[dict]:
    """Tool list in the function-calling format."""
    return [
        {
            "type": "function",
            "function": {
                "name": TOOL_NAME,
                "description": TOOL_DESCRIPTION,
                "parameters": QueryToolArguments.model_json_schema(),
            },
        }
    ]


@dataclass
class QueryToolCall:
    call_id: str
    arguments: QueryToolArguments


@dataclass
class BadToolCall:
    call_id: str
    name: str
    error: str

    def payload(self) -> dict:
        return {"error": "bad_tool_call", "tool": self.name, "message": self.error}


ParsedToolCall = Union[QueryToolCall, BadToolCall]


def parse_tool_call(call: ToolCall) -> ParsedToolCall:
    """Validate one tool call; problems become a BadToolCall instead of raising."""
    if call.name != TOOL_NAME:
        return BadToolCall(call.id, call.name, f"Unknown tool {call.name!r}")
    try:
        data = json.loads(call.arguments or "{}")
    except json.JSONDecodeError as e:
        return BadToolCall(call.id, call.name, f"Arguments are not valid JSON: {e}")
    if not isinstance(data, dict):
        return BadToolCall(call.id, call.name, "Arguments must be a JSON object")
    try:
        return QueryToolCall(call.id, QueryToolArguments.model_validate(data))
    except ValidationError as e:
        return BadToolCall(call.id, call.name, f"Invalid arguments: {e.errors(include_url=False)}")


@dataclass
class ChatOutcome:
    reply: str
    tool_results: list[dict] = field(default_factory=list)


def _history_messages(history: Optional[list[dict]]) -> list[dict]:
    messages = []
    for item in history or []:
        role = "assistant" if item.get("role") in ("model", "assistant") else "user"
        messages.append({"role": role, "content": str(item.get("content", ""))})
    return messages


def run_chat(
    model: ChatModel,
    dispatcher: QueryDispatcher,
    owner_id: str,
    message: str,
    history: Optional[list[dict]] = None,
    *,
    default_year: int,
) -> ChatOutcome:
    """
    One chat turn: ask the model, execute any query tool calls against the
    owner's data, feed results back keyed by call id, then ask for the final answer.
    """
    messages: list[dict] = [{"role": "system", "content": SYSTEM_PROMPT.format(year=default_year)}]
    messages.extend(_history_messages(history))
    messages.append({"role": "user", "content": message})

    reply = model.complete(messages, tool_declarations())
    if not reply.tool_calls:
        if not reply.content:
            raise ProviderError(model.provider_name or "chat", "empty response")
        return ChatOutcome(reply=reply.content)

    messages.append(reply.to_message())
    results: list[dict] = []
    for call in reply.tool_calls:
        parsed = parse_tool_call(call)
        if isinstance(parsed, BadToolCall):
            logger.warning("Bad tool call %s: %s", parsed.call_id, parsed.error)
            payload = parsed.payload()
        else:
            result = dispatcher.dispatch(owner_id, parsed.arguments.to_request(), question=message)
            payload = result.model_dump(mode="json")
        results.append(payload)
        messages.append(
            {"role": "tool", "tool_call_id": call.id, "content": dump_tool_result(payload)}
        )

    final = model.complete(messages)
    if not final.content:
        raise ProviderError(model.provider_name or "chat", "empty final response")
    return ChatOutcome(reply=final.content, tool_results=results)
