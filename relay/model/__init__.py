"""
Relay Models: transcript items, model responses and backends.

Usage:
    from relay.model import OpenAIChat, UserMessage, user
"""

from typing import TYPE_CHECKING

from relay.model.base import Model
from relay.model.message import (
  AssistantMessage,
  HandoffMarker,
  ToolCall,
  ToolResult,
  TranscriptItem,
  UserMessage,
  assistant,
  dump_transcript,
  load_transcript,
  user,
  validate_transcript,
)
from relay.model.response import ModelResponse, ModelResponseDelta, ToolCallRequest, Usage

if TYPE_CHECKING:
  from relay.model.openai import OpenAIChat


def __getattr__(name: str):
  if name == "OpenAIChat":
    from relay.model.openai import OpenAIChat

    return OpenAIChat
  raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
  # Transcript
  "TranscriptItem",
  "UserMessage",
  "AssistantMessage",
  "ToolCall",
  "ToolResult",
  "HandoffMarker",
  "user",
  "assistant",
  "validate_transcript",
  "dump_transcript",
  "load_transcript",
  # Responses
  "ModelResponse",
  "ModelResponseDelta",
  "ToolCallRequest",
  "Usage",
  # Backends
  "Model",
  "OpenAIChat",
]
