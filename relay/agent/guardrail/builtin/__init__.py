from relay.agent.guardrail.builtin.agent import GuardrailVerdict, agent_guardrail
from relay.agent.guardrail.builtin.input import block_topics, max_length, regex_filter
from relay.agent.guardrail.builtin.output import pii_filter

__all__ = [
  "max_length",
  "block_topics",
  "regex_filter",
  "pii_filter",
  "agent_guardrail",
  "GuardrailVerdict",
]
