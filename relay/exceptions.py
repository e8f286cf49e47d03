"""Exceptions raised by relay.

Tool failures never escape a run: they are captured as :class:`ToolError`
values inside ``ToolResult`` items. Structural problems (contract mismatch,
turn budget, unresolved approvals) are raised to the caller.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional

if TYPE_CHECKING:
  from relay.agent.guardrail.base import GuardrailOutcome
  from relay.agent.run.state import Interruption

GENERIC_USER_MESSAGE = "Sorry, something went wrong while handling your request."


class RelayError(Exception):
  """Base class for every relay error.

  ``user_message`` is safe to show to end users; ``str(error)`` carries the
  debugging detail.
  """

  user_message: str = GENERIC_USER_MESSAGE

  def __init__(self, message: str, *, user_message: Optional[str] = None):
    super().__init__(message)
    self.message = message
    if user_message is not None:
      self.user_message = user_message


class AgentDefinitionError(RelayError):
  """An agent was built with conflicting tools, handoffs or settings."""


class TranscriptError(RelayError):
  """A transcript breaks the ordering rules (e.g. an orphaned tool result)."""


class ModelBehaviorError(RelayError):
  """The model backend returned something the loop cannot interpret."""


class UnknownHandoff(ModelBehaviorError):
  """The model asked to delegate to an agent that was not declared."""

  def __init__(self, agent_name: str, target: str):
    super().__init__(f"Agent '{agent_name}' has no handoff named '{target}'")
    self.agent_name = agent_name
    self.target = target


class OutputContractViolation(RelayError):
  """The final answer does not satisfy the agent's ``output_schema``."""

  def __init__(self, agent_name: str, output: str, detail: str):
    super().__init__(f"Output of agent '{agent_name}' does not match its output schema: {detail}")
    self.agent_name = agent_name
    self.output = output
    self.detail = detail


class TurnLimitExceeded(RelayError):
  """The run used up its model-call budget without finishing."""

  def __init__(self, max_turns: int):
    super().__init__(f"Max turns ({max_turns}) exceeded")
    self.max_turns = max_turns


class UnresolvedInterruption(RelayError):
  """``resume`` was called before every pending tool call had a decision."""

  def __init__(self, pending: List["Interruption"]):
    names = ", ".join(f"{i.tool_name} ({i.call_id})" for i in pending)
    super().__init__(f"{len(pending)} interruption(s) still unresolved: {names}")
    self.pending = pending


class GuardrailTripped(RelayError):
  """A guardrail blocked the run. Only raised when the run config asks for it."""

  user_message = "Sorry, I can't help with that request."

  def __init__(self, outcome: "GuardrailOutcome"):
    super().__init__(f"{outcome.guardrail_type.title()} guardrail '{outcome.guardrail_name}' tripped: {outcome.detail or 'no detail'}")
    self.outcome = outcome


class InputGuardrailTripped(GuardrailTripped):
  pass


class OutputGuardrailTripped(GuardrailTripped):
  pass


class ToolErrorKind(str, Enum):
  invalid_arguments = "invalid_arguments"
  execution_failed = "execution_failed"
  unknown_tool = "unknown_tool"


class ToolError(RelayError):
  """A tool-local failure. Encoded into the transcript, never fatal to the run."""

  def __init__(self, kind: ToolErrorKind, detail: str, *, tool_name: Optional[str] = None, cause: Optional[Any] = None):
    super().__init__(f"{kind.value}: {detail}")
    self.kind = kind
    self.detail = detail
    self.tool_name = tool_name
    self.cause = cause
