"""Transcript items.

A transcript is a plain ``list`` of the items below, in conversational order.
Items are frozen pydantic models tagged by ``type`` so a transcript survives a
JSON round-trip through :func:`dump_transcript` / :func:`load_transcript`.
"""

from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from relay.exceptions import TranscriptError
from relay.utils.serialize import dumps


class _Item(BaseModel):
  model_config = ConfigDict(frozen=True)


class UserMessage(_Item):
  type: Literal["user"] = "user"
  text: str


class AssistantMessage(_Item):
  type: Literal["assistant"] = "assistant"
  text: str
  agent_name: Optional[str] = None


class ToolCall(_Item):
  """A tool invocation requested by the model. ``arguments`` is the raw JSON text."""

  type: Literal["tool_call"] = "tool_call"
  id: str
  tool_name: str
  arguments: str = "{}"
  agent_name: Optional[str] = None


class ToolResult(_Item):
  """Outcome of a :class:`ToolCall`: exactly one of ``value`` / ``error`` is meaningful."""

  type: Literal["tool_result"] = "tool_result"
  call_id: str
  tool_name: str
  value: Any = None
  error: Optional[str] = None
  error_kind: Optional[str] = None
  rejected: bool = False

  @property
  def is_error(self) -> bool:
    return self.error is not None

  @property
  def content(self) -> str:
    """Text shown to the model for this result."""
    if self.error is not None:
      return f"Error: {self.error}"
    return dumps(self.value) if self.value is not None else ""


class HandoffMarker(_Item):
  type: Literal["handoff"] = "handoff"
  from_agent: str
  to_agent: str


TranscriptItem = Annotated[
  Union[UserMessage, AssistantMessage, ToolCall, ToolResult, HandoffMarker],
  Field(discriminator="type"),
]

_transcript_adapter: TypeAdapter[List[TranscriptItem]] = TypeAdapter(List[TranscriptItem])


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


def user(text: str) -> UserMessage:
  return UserMessage(text=text)


def assistant(text: str, agent_name: Optional[str] = None) -> AssistantMessage:
  return AssistantMessage(text=text, agent_name=agent_name)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def normalize_transcript(value: Union[str, TranscriptItem, Dict[str, Any], Iterable[Any], None]) -> List[TranscriptItem]:
  """Coerce run input into a fresh transcript list.

  Accepts a bare string (one user message), a single item, or an iterable of
  items and/or their dict form. The caller's list is never mutated.
  """
  if value is None:
    return []
  if isinstance(value, str):
    return [UserMessage(text=value)]
  if isinstance(value, _Item):
    return [value]  # type: ignore[list-item]
  if isinstance(value, dict):
    return _transcript_adapter.validate_python([value])
  items: List[Any] = list(value)
  if all(isinstance(i, _Item) for i in items):
    return items
  return _transcript_adapter.validate_python([i.model_dump() if isinstance(i, _Item) else i for i in items])


def last_user_text(transcript: Sequence[TranscriptItem]) -> Optional[str]:
  for item in reversed(transcript):
    if isinstance(item, UserMessage):
      return item.text
  return None


def tool_call_ids(transcript: Sequence[TranscriptItem]) -> set:
  return {item.id for item in transcript if isinstance(item, ToolCall)}


def validate_transcript(transcript: Sequence[TranscriptItem]) -> None:
  """Check that every tool result answers exactly one earlier tool call.

  Raises:
      TranscriptError: on duplicate call ids, orphaned or duplicated results.
  """
  seen_calls: set = set()
  answered: set = set()
  for index, item in enumerate(transcript):
    if isinstance(item, ToolCall):
      if item.id in seen_calls:
        raise TranscriptError(f"Duplicate tool call id '{item.id}' at position {index}")
      seen_calls.add(item.id)
    elif isinstance(item, ToolResult):
      if item.call_id not in seen_calls:
        raise TranscriptError(f"Tool result at position {index} has no earlier tool call '{item.call_id}'")
      if item.call_id in answered:
        raise TranscriptError(f"Tool call '{item.call_id}' has more than one result")
      answered.add(item.call_id)


def dump_transcript(transcript: Sequence[TranscriptItem]) -> List[Dict[str, Any]]:
  return [item.model_dump(mode="json") for item in transcript]


def load_transcript(data: Iterable[Dict[str, Any]]) -> List[TranscriptItem]:
  return _transcript_adapter.validate_python(list(data))
