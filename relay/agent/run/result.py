"""Outcome of a run or resume call."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional

from relay.model.message import AssistantMessage, ToolCall, ToolResult, TranscriptItem
from relay.model.response import Usage

if TYPE_CHECKING:
  from relay.agent.agent import Agent
  from relay.agent.guardrail.base import GuardrailOutcome
  from relay.agent.run.state import Interruption, RunState


class RunStatus(str, Enum):
  completed = "completed"
  paused = "paused"
  blocked = "blocked"


@dataclass
class RunResult:
  """What a caller gets back from ``run`` / ``resume``.

  Attributes:
    status: ``completed``, ``paused`` (see ``interruptions`` and ``state``) or
      ``blocked`` (a guardrail tripped, see ``guardrail``).
    final_output: The answer text, or an instance of the agent's
      ``output_schema``. ``None`` unless completed.
    history: The full transcript after this call. Pass it back as the input
      of the next turn.
    new_items: The items this call appended to the input transcript.
    interruptions: Tool calls awaiting a decision. Empty unless paused.
    state: Snapshot to resume from. ``None`` unless paused.
    guardrail: Verdict of the guardrail list that blocked the run.
    last_agent: The agent that was active when the call returned.
  """

  status: RunStatus
  history: List[TranscriptItem]
  last_agent: "Agent"
  final_output: Optional[Any] = None
  new_items: List[TranscriptItem] = field(default_factory=list)
  interruptions: List["Interruption"] = field(default_factory=list)
  state: Optional["RunState"] = None
  guardrail: Optional["GuardrailOutcome"] = None
  usage: Usage = field(default_factory=Usage)
  run_id: Optional[str] = None

  @property
  def is_paused(self) -> bool:
    return self.status == RunStatus.paused

  @property
  def is_blocked(self) -> bool:
    return self.status == RunStatus.blocked

  @property
  def is_completed(self) -> bool:
    return self.status == RunStatus.completed

  @property
  def final_text(self) -> Optional[str]:
    """Text of the last assistant message of this call, if any."""
    for item in reversed(self.new_items):
      if isinstance(item, AssistantMessage):
        return item.text
    return None

  @property
  def tool_calls(self) -> List[ToolCall]:
    return [item for item in self.new_items if isinstance(item, ToolCall)]

  @property
  def tool_results(self) -> List[ToolResult]:
    return [item for item in self.new_items if isinstance(item, ToolResult)]

  def __repr__(self) -> str:
    return f"RunResult(status={self.status.value!r}, last_agent={self.last_agent.name!r}, items={len(self.history)})"
