"""
Relay Events: every run event type in one place.

Usage:
    from relay.agent.events import RunContentEvent, ToolCallStartedEvent, RunCompletedEvent
"""

import time
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from relay.utils.serialize import to_jsonable

if TYPE_CHECKING:
  from relay.agent.run.result import RunResult
  from relay.agent.run.state import Interruption
  from relay.model.message import ToolResult


@dataclass
class BaseRunEvent:
  """Fields shared by all run events."""

  event: str = ""
  run_id: Optional[str] = None
  agent_name: Optional[str] = None
  created_at: float = field(default_factory=time.time)

  def to_dict(self) -> Dict[str, Any]:
    _dict: Dict[str, Any] = {}
    for f in fields(self):
      value = getattr(self, f.name)
      # The result is available on the event object; it is not part of the wire form.
      if value is None or f.name == "result":
        continue
      _dict[f.name] = to_jsonable(value)
    return _dict


@dataclass
class RunStartedEvent(BaseRunEvent):
  event: str = "RunStarted"
  resumed: bool = False


@dataclass
class RunContentEvent(BaseRunEvent):
  """One text chunk of a model call, in arrival order."""

  event: str = "RunContent"
  content: str = ""
  turn: int = 0


@dataclass
class ToolCallStartedEvent(BaseRunEvent):
  event: str = "ToolCallStarted"
  call_id: str = ""
  tool_name: str = ""
  arguments: str = "{}"


@dataclass
class ToolCallCompletedEvent(BaseRunEvent):
  event: str = "ToolCallCompleted"
  call_id: str = ""
  tool_name: str = ""
  content: Optional[str] = None
  error: Optional[str] = None
  rejected: bool = False

  @classmethod
  def from_result(cls, tool_result: "ToolResult", **kwargs: Any) -> "ToolCallCompletedEvent":
    return cls(
      call_id=tool_result.call_id,
      tool_name=tool_result.tool_name,
      content=None if tool_result.is_error else tool_result.content,
      error=tool_result.error,
      rejected=tool_result.rejected,
      **kwargs,
    )


@dataclass
class HandoffEvent(BaseRunEvent):
  event: str = "Handoff"
  from_agent: str = ""
  to_agent: str = ""


@dataclass
class GuardrailTrippedEvent(BaseRunEvent):
  """Emitted when a guardrail blocks the run."""

  event: str = "GuardrailTripped"
  guardrail_name: str = ""
  guardrail_type: str = ""  # "input" | "output"
  detail: Optional[str] = None


@dataclass
class RunPausedEvent(BaseRunEvent):
  event: str = "RunPaused"
  interruptions: List["Interruption"] = field(default_factory=list)
  result: Optional["RunResult"] = None


@dataclass
class RunCompletedEvent(BaseRunEvent):
  """Terminal event for completed and guardrail-blocked runs."""

  event: str = "RunCompleted"
  content: Optional[Any] = None
  status: str = "completed"
  result: Optional["RunResult"] = None


@dataclass
class RunErrorEvent(BaseRunEvent):
  event: str = "RunError"
  error_type: str = ""
  content: Optional[str] = None


@dataclass
class RunCancelledEvent(BaseRunEvent):
  event: str = "RunCancelled"
  reason: Optional[str] = None


RunEvent = Union[
  RunStartedEvent,
  RunContentEvent,
  ToolCallStartedEvent,
  ToolCallCompletedEvent,
  HandoffEvent,
  GuardrailTrippedEvent,
  RunPausedEvent,
  RunCompletedEvent,
  RunErrorEvent,
  RunCancelledEvent,
]

__all__ = [
  "BaseRunEvent",
  "RunEvent",
  # Run lifecycle
  "RunStartedEvent",
  "RunContentEvent",
  "RunCompletedEvent",
  "RunPausedEvent",
  "RunErrorEvent",
  "RunCancelledEvent",
  # Tool calls
  "ToolCallStartedEvent",
  "ToolCallCompletedEvent",
  # Delegation and safety
  "HandoffEvent",
  "GuardrailTrippedEvent",
]
