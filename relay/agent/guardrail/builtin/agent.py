"""Guardrail that asks another agent for a verdict."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional

from pydantic import BaseModel, Field

from relay.agent.guardrail.base import GuardrailResult
from relay.agent.guardrail.builtin.input import subject_text

if TYPE_CHECKING:
  from relay.agent.agent import Agent


class GuardrailVerdict(BaseModel):
  """Default structured answer of a checker agent."""

  tripped: bool = Field(description="True when the text must be blocked")
  detail: Optional[str] = Field(default=None, description="One sentence explaining the verdict")


def _default_verdict(output: Any) -> GuardrailResult:
  tripped = bool(getattr(output, "tripped", False))
  detail = getattr(output, "detail", None) or getattr(output, "reasoning", None)
  return GuardrailResult(tripped=tripped, detail=detail, metadata={"verdict": output})


class _AgentGuardrail:
  """Runs a checker agent on the subject and trips on its verdict.

  The checker runs as an independent nested run sharing the caller's
  context. A checker that does not complete (paused or blocked) raises,
  which the evaluator treats as a trip.
  """

  def __init__(self, agent: "Agent", verdict: Callable[[Any], GuardrailResult], name: str):
    self.name = name
    self._agent = agent
    self._verdict = verdict

  async def check(self, subject: Any, context: Any) -> GuardrailResult:
    from relay.agent.runner import Runner

    result = await Runner().arun(self._agent, subject_text(subject), context)
    if not result.is_completed:
      raise RuntimeError(f"Checker agent '{self._agent.name}' did not complete (status={result.status.value})")
    return self._verdict(result.final_output)


def agent_guardrail(
  agent: "Agent",
  verdict: Optional[Callable[[Any], GuardrailResult]] = None,
  *,
  name: Optional[str] = None,
) -> _AgentGuardrail:
  """Create a guardrail backed by a checker agent.

  Usable as an input or an output guardrail.

  Args:
    agent: The checker. Without an ``output_schema`` it is cloned with
      :class:`GuardrailVerdict` as its schema.
    verdict: Maps the checker's final output to a :class:`GuardrailResult`.
      The default reads ``tripped`` and ``detail`` (or ``reasoning``).
    name: Guardrail name; defaults to the checker agent's name.

  Example::

      class HomeworkCheck(BaseModel):
          tripped: bool
          reasoning: str

      checker = Agent(name="Homework check", instructions="...", output_schema=HomeworkCheck)
      tutor = Agent(name="Tutor", input_guardrails=[agent_guardrail(checker)])
  """
  if agent.output_schema is None:
    agent = agent.clone(output_schema=GuardrailVerdict)
  return _AgentGuardrail(agent, verdict or _default_verdict, name or agent.name)
