"""Shapes returned by a model backend."""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Usage(BaseModel):
  """Token accounting for one or more model calls."""

  input_tokens: int = 0
  output_tokens: int = 0
  total_tokens: int = 0
  requests: int = 0

  def __add__(self, other: "Usage") -> "Usage":
    return Usage(
      input_tokens=self.input_tokens + other.input_tokens,
      output_tokens=self.output_tokens + other.output_tokens,
      total_tokens=self.total_tokens + other.total_tokens,
      requests=self.requests + other.requests,
    )


class ToolCallRequest(BaseModel):
  """One tool (or handoff) call requested by the model.

  ``id`` may be empty; the loop assigns a unique id before recording it.
  """

  id: str = ""
  name: str
  arguments: str = "{}"

  @classmethod
  def create(cls, name: str, arguments: Optional[Dict[str, Any]] = None, id: str = "") -> "ToolCallRequest":
    return cls(id=id, name=name, arguments=json.dumps(arguments or {}))


class ModelResponse(BaseModel):
  """A complete model turn: final text, tool calls, or a delegation request.

  ``handoff`` names a target agent directly; backends that express handoffs as
  ``transfer_to_*`` tool calls leave it empty and the loop resolves them.
  """

  content: Optional[str] = None
  tool_calls: List[ToolCallRequest] = Field(default_factory=list)
  handoff: Optional[str] = None
  usage: Optional[Usage] = None


class ModelResponseDelta(BaseModel):
  """A streaming fragment. The last delta of a stream carries ``response``."""

  content: Optional[str] = None
  response: Optional[ModelResponse] = None

  @property
  def is_final(self) -> bool:
    return self.response is not None
