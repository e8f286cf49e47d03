"""OpenAI chat-completions backend.

Works with any OpenAI-compatible endpoint (OpenRouter, local gateways) through
``base_url``. Credentials fall back to ``OPENAI_API_KEY`` / ``OPENAI_BASE_URL``.
"""

import os
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from openai import AsyncOpenAI
from pydantic import BaseModel, TypeAdapter

from relay.model.base import Model
from relay.model.message import AssistantMessage, HandoffMarker, ToolCall, ToolResult, TranscriptItem, UserMessage
from relay.model.response import ModelResponse, ModelResponseDelta, ToolCallRequest, Usage
from relay.utils.log import log_debug


class OpenAIChat(Model):
  provider = "openai"

  def __init__(
    self,
    id: str = "gpt-4o-mini",
    *,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    temperature: Optional[float] = None,
    client: Optional[AsyncOpenAI] = None,
    request_params: Optional[Dict[str, Any]] = None,
  ):
    self.id = id
    self.api_key = api_key or os.getenv("OPENAI_API_KEY")
    self.base_url = base_url or os.getenv("OPENAI_BASE_URL")
    self.temperature = temperature
    self.request_params = request_params or {}
    self._client = client

  def get_client(self) -> AsyncOpenAI:
    if self._client is None:
      self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
    return self._client

  # ------------------------------------------------------------------
  # Request building
  # ------------------------------------------------------------------

  def _request_kwargs(
    self,
    instructions: Optional[str],
    messages: Sequence[TranscriptItem],
    tools: Optional[List[Dict[str, Any]]],
    handoffs: Optional[List[Dict[str, Any]]],
    output_schema: Optional[Any],
  ) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {"model": self.id, "messages": format_messages(instructions, messages)}
    declarations = list(tools or []) + list(handoffs or [])
    if declarations:
      kwargs["tools"] = [{"type": "function", "function": d} for d in declarations]
    if output_schema is not None:
      kwargs["response_format"] = response_format_for(output_schema)
    if self.temperature is not None:
      kwargs["temperature"] = self.temperature
    kwargs.update(self.request_params)
    return kwargs

  # ------------------------------------------------------------------
  # Model API
  # ------------------------------------------------------------------

  async def ainvoke(
    self,
    *,
    instructions: Optional[str],
    messages: Sequence[TranscriptItem],
    tools: Optional[List[Dict[str, Any]]] = None,
    handoffs: Optional[List[Dict[str, Any]]] = None,
    output_schema: Optional[Any] = None,
  ) -> ModelResponse:
    kwargs = self._request_kwargs(instructions, messages, tools, handoffs, output_schema)
    log_debug(f"OpenAIChat request: model={self.id} messages={len(kwargs['messages'])} tools={len(kwargs.get('tools', []))}")
    completion = await self.get_client().chat.completions.create(**kwargs)
    message = completion.choices[0].message
    tool_calls = [
      ToolCallRequest(id=tc.id, name=tc.function.name, arguments=tc.function.arguments or "{}")
      for tc in (message.tool_calls or [])
      if getattr(tc, "function", None) is not None
    ]
    usage = None
    if completion.usage is not None:
      usage = Usage(
        input_tokens=completion.usage.prompt_tokens,
        output_tokens=completion.usage.completion_tokens,
        total_tokens=completion.usage.total_tokens,
        requests=1,
      )
    return ModelResponse(content=message.content, tool_calls=tool_calls, usage=usage)

  async def ainvoke_stream(
    self,
    *,
    instructions: Optional[str],
    messages: Sequence[TranscriptItem],
    tools: Optional[List[Dict[str, Any]]] = None,
    handoffs: Optional[List[Dict[str, Any]]] = None,
    output_schema: Optional[Any] = None,
  ) -> AsyncIterator[ModelResponseDelta]:
    kwargs = self._request_kwargs(instructions, messages, tools, handoffs, output_schema)
    kwargs["stream"] = True
    kwargs["stream_options"] = {"include_usage": True}

    content_parts: List[str] = []
    tool_calls: List[Dict[str, Any]] = []
    usage: Optional[Usage] = None

    stream = await self.get_client().chat.completions.create(**kwargs)
    try:
      async for chunk in stream:
        if chunk.usage is not None:
          usage = Usage(
            input_tokens=chunk.usage.prompt_tokens,
            output_tokens=chunk.usage.completion_tokens,
            total_tokens=chunk.usage.total_tokens,
            requests=1,
          )
        if not chunk.choices:
          continue
        delta = chunk.choices[0].delta
        if delta.content:
          content_parts.append(delta.content)
          yield ModelResponseDelta(content=delta.content)
        if delta.tool_calls:
          tool_calls = merge_tool_call_deltas(tool_calls, delta.tool_calls)
    finally:
      await stream.close()

    yield ModelResponseDelta(
      response=ModelResponse(
        content="".join(content_parts) or None,
        tool_calls=[ToolCallRequest(id=tc["id"], name=tc["name"], arguments=tc["arguments"] or "{}") for tc in tool_calls],
        usage=usage,
      )
    )


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def format_messages(instructions: Optional[str], messages: Sequence[TranscriptItem]) -> List[Dict[str, Any]]:
  """Render a transcript as chat-completions messages.

  Consecutive tool calls are grouped under one assistant message, merged into
  the assistant text that immediately precedes them.
  """
  formatted: List[Dict[str, Any]] = []
  if instructions:
    formatted.append({"role": "system", "content": instructions})

  for item in messages:
    if isinstance(item, UserMessage):
      formatted.append({"role": "user", "content": item.text})
    elif isinstance(item, AssistantMessage):
      formatted.append({"role": "assistant", "content": item.text})
    elif isinstance(item, ToolCall):
      call = {"id": item.id, "type": "function", "function": {"name": item.tool_name, "arguments": item.arguments}}
      last = formatted[-1] if formatted else None
      if last is not None and last["role"] == "assistant":
        last.setdefault("tool_calls", []).append(call)
      else:
        formatted.append({"role": "assistant", "content": None, "tool_calls": [call]})
    elif isinstance(item, ToolResult):
      formatted.append({"role": "tool", "tool_call_id": item.call_id, "content": item.content})
    elif isinstance(item, HandoffMarker):
      # The transfer tool call/result already tells the model about the switch.
      continue
  return formatted


def response_format_for(output_schema: Any) -> Dict[str, Any]:
  if isinstance(output_schema, type) and issubclass(output_schema, BaseModel):
    name = output_schema.__name__
    schema = output_schema.model_json_schema()
  else:
    name = getattr(output_schema, "__name__", "output")
    schema = TypeAdapter(output_schema).json_schema()
  return {"type": "json_schema", "json_schema": {"name": name, "schema": schema}}


def merge_tool_call_deltas(existing: List[Dict[str, Any]], new_deltas: List[Any]) -> List[Dict[str, Any]]:
  """Merge streaming tool call deltas into accumulated tool calls."""
  for delta in new_deltas:
    index = getattr(delta, "index", None) or 0
    while index >= len(existing):
      existing.append({"id": "", "name": "", "arguments": ""})

    delta_func = getattr(delta, "function", None)
    if getattr(delta, "id", None):
      existing[index]["id"] = delta.id
    if delta_func is not None:
      if getattr(delta_func, "name", None):
        existing[index]["name"] += delta_func.name
      if getattr(delta_func, "arguments", None):
        existing[index]["arguments"] += delta_func.arguments
  return existing
