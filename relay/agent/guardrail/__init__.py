"""Guardrails: checks that can stop a run before or after the model answers.

Checkpoints:
  - **input**: Before the first model call of an agent (newest user message).
  - **output**: Before the final answer is accepted (text or structured value).

Quick Start::

    from relay import Agent
    from relay.agent.guardrail import block_topics, input_guardrail, pii_filter

    agent = Agent(
        name="Support",
        model=model,
        input_guardrails=[block_topics(["politics"])],
        output_guardrails=[pii_filter()],
    )
"""

from relay.agent.guardrail.base import (
  GuardrailOutcome,
  GuardrailResult,
  InputGuardrail,
  OutputGuardrail,
  evaluate_guardrails,
)
from relay.agent.guardrail.builtin import (
  GuardrailVerdict,
  agent_guardrail,
  block_topics,
  max_length,
  pii_filter,
  regex_filter,
)
from relay.agent.guardrail.decorators import input_guardrail, output_guardrail

__all__ = [
  # Core types
  "GuardrailResult",
  "GuardrailOutcome",
  "InputGuardrail",
  "OutputGuardrail",
  "evaluate_guardrails",
  # Decorators
  "input_guardrail",
  "output_guardrail",
  # Built-ins
  "max_length",
  "block_topics",
  "regex_filter",
  "pii_filter",
  "agent_guardrail",
  "GuardrailVerdict",
]
