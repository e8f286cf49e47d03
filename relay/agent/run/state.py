"""Resumable snapshot of a run paused for tool approval."""

import json
from collections import deque
from dataclasses import asdict, dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Union
from uuid import uuid4

from relay.exceptions import RelayError
from relay.model.message import ToolCall, ToolResult, TranscriptItem, dump_transcript, load_transcript
from relay.model.response import Usage

if TYPE_CHECKING:
  from relay.agent.agent import Agent

STATE_VERSION = 1


class Decision(str, Enum):
  approved = "approved"
  rejected = "rejected"


_DECISION_ALIASES = {
  "approved": Decision.approved,
  "approve": Decision.approved,
  "yes": Decision.approved,
  "y": Decision.approved,
  "rejected": Decision.rejected,
  "reject": Decision.rejected,
  "no": Decision.rejected,
  "n": Decision.rejected,
}


def coerce_decision(value: Union[Decision, str, bool]) -> Decision:
  """Accept a :class:`Decision`, a bool, or one of the usual yes/no strings."""
  if isinstance(value, Decision):
    return value
  if isinstance(value, bool):
    return Decision.approved if value else Decision.rejected
  if isinstance(value, str) and value.strip().lower() in _DECISION_ALIASES:
    return _DECISION_ALIASES[value.strip().lower()]
  raise ValueError(f"Unrecognised decision {value!r}; use 'approved' or 'rejected'")


@dataclass(frozen=True)
class Interruption:
  """One tool call withheld until the caller approves or rejects it."""

  call_id: str
  agent_name: str
  tool_name: str
  arguments: str = "{}"

  @property
  def parsed_arguments(self) -> Dict[str, Any]:
    try:
      value = json.loads(self.arguments or "{}")
    except json.JSONDecodeError:
      return {}
    return value if isinstance(value, dict) else {}

  def to_dict(self) -> Dict[str, Any]:
    return asdict(self)

  @classmethod
  def from_dict(cls, data: Mapping[str, Any]) -> "Interruption":
    return cls(
      call_id=data["call_id"],
      agent_name=data["agent_name"],
      tool_name=data["tool_name"],
      arguments=data.get("arguments", "{}"),
    )


DecisionKey = Union[str, Interruption]


def _call_id(key: DecisionKey) -> str:
  return key.call_id if isinstance(key, Interruption) else key


class RunState:
  """Everything needed to continue a paused run.

  ``transcript`` ends with the tool calls of the paused batch. Results of the
  calls in that batch that already ran are held in ``completed_results`` so
  that, on resume, every result of the batch lands in request order.

  A state is not consumed by resuming it: the runner works on copies, so the
  same state can be resumed again with the same decisions.
  """

  def __init__(
    self,
    *,
    agent: "Agent",
    transcript: List[TranscriptItem],
    batch: List[ToolCall],
    interruptions: List[Interruption],
    completed_results: Optional[Dict[str, ToolResult]] = None,
    decisions: Optional[Dict[str, Decision]] = None,
    handoff_target: Optional[str] = None,
    turn: int = 0,
    input_length: int = 0,
    usage: Optional[Usage] = None,
    run_id: Optional[str] = None,
  ):
    self.agent = agent
    self.transcript = transcript
    self.batch = batch
    self.interruptions = interruptions
    self.completed_results = completed_results or {}
    self.decisions = decisions or {}
    self.handoff_target = handoff_target
    self.turn = turn
    self.input_length = input_length
    self.usage = usage or Usage()
    self.run_id = run_id or str(uuid4())

  # ------------------------------------------------------------------
  # Decisions
  # ------------------------------------------------------------------

  def approve(self, interruption: DecisionKey) -> None:
    self._decide(interruption, Decision.approved)

  def reject(self, interruption: DecisionKey) -> None:
    self._decide(interruption, Decision.rejected)

  def approve_all(self) -> None:
    for interruption in self.interruptions:
      self.approve(interruption)

  def reject_all(self) -> None:
    for interruption in self.interruptions:
      self.reject(interruption)

  def _decide(self, key: DecisionKey, decision: Decision) -> None:
    call_id = _call_id(key)
    if call_id not in {i.call_id for i in self.interruptions}:
      raise KeyError(f"No pending interruption with call id '{call_id}'")
    self.decisions[call_id] = decision

  def merged_decisions(self, decisions: Optional[Mapping[DecisionKey, Union[Decision, str, bool]]] = None) -> Dict[str, Decision]:
    """Decisions recorded on the state plus *decisions*, without mutating the state."""
    merged = dict(self.decisions)
    for key, value in (decisions or {}).items():
      call_id = _call_id(key)
      if call_id not in {i.call_id for i in self.interruptions}:
        raise KeyError(f"No pending interruption with call id '{call_id}'")
      merged[call_id] = coerce_decision(value)
    return merged

  def unresolved(self, decisions: Optional[Mapping[str, Decision]] = None) -> List[Interruption]:
    decided = self.decisions if decisions is None else decisions
    return [i for i in self.interruptions if i.call_id not in decided]

  # ------------------------------------------------------------------
  # Serialization
  # ------------------------------------------------------------------

  def to_dict(self) -> Dict[str, Any]:
    return {
      "version": STATE_VERSION,
      "run_id": self.run_id,
      "agent": self.agent.name,
      "transcript": dump_transcript(self.transcript),
      "batch": dump_transcript(self.batch),
      "interruptions": [i.to_dict() for i in self.interruptions],
      "completed_results": {call_id: r.model_dump(mode="json") for call_id, r in self.completed_results.items()},
      "decisions": {call_id: d.value for call_id, d in self.decisions.items()},
      "handoff_target": self.handoff_target,
      "turn": self.turn,
      "input_length": self.input_length,
      "usage": self.usage.model_dump(),
    }

  def to_json(self, **kwargs: Any) -> str:
    return json.dumps(self.to_dict(), **kwargs)

  @classmethod
  def from_dict(cls, data: Mapping[str, Any], agent: "Agent") -> "RunState":
    """Rebuild a state. *agent* is the run's starting agent; the active agent
    is looked up by name in its handoff graph.
    """
    if data.get("version") != STATE_VERSION:
      raise RelayError(f"Unsupported run state version: {data.get('version')!r}")
    active = find_agent(agent, data["agent"])
    if active is None:
      raise RelayError(f"Agent '{data['agent']}' is not reachable from '{agent.name}'")
    return cls(
      agent=active,
      transcript=load_transcript(data["transcript"]),
      batch=[item for item in load_transcript(data["batch"]) if isinstance(item, ToolCall)],
      interruptions=[Interruption.from_dict(i) for i in data["interruptions"]],
      completed_results={call_id: ToolResult.model_validate(r) for call_id, r in data.get("completed_results", {}).items()},
      decisions={call_id: coerce_decision(d) for call_id, d in data.get("decisions", {}).items()},
      handoff_target=data.get("handoff_target"),
      turn=data.get("turn", 0),
      input_length=data.get("input_length", 0),
      usage=Usage.model_validate(data.get("usage") or {}),
      run_id=data.get("run_id"),
    )

  @classmethod
  def from_json(cls, data: Union[str, bytes, Mapping[str, Any]], agent: "Agent") -> "RunState":
    if isinstance(data, (str, bytes)):
      data = json.loads(data)
    return cls.from_dict(data, agent)  # type: ignore[arg-type]

  def __repr__(self) -> str:
    return f"RunState(agent={self.agent.name!r}, turn={self.turn}, interruptions={len(self.interruptions)}, decided={len(self.decisions)})"


def find_agent(start: "Agent", name: str) -> Optional["Agent"]:
  """Breadth-first search of the handoff graph from *start* for an agent called *name*."""
  queue = deque([start])
  seen = set()
  while queue:
    agent = queue.popleft()
    if id(agent) in seen:
      continue
    seen.add(id(agent))
    if agent.name == name:
      return agent
    queue.extend(agent.handoffs)
  return None
