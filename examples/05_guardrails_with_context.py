"""
Guardrails, including one driven by the run context.

This example shows how to:
- Use built-in guardrails (block_topics, pii_filter)
- Write a guardrail that reads the caller's context
- Use another agent as a guardrail
- Handle blocked runs by status or by exception

Requirements:
    export OPENAI_API_KEY=sk-...
"""

from dataclasses import dataclass

from relay import Agent, GuardrailResult, InputGuardrailTripped, RunConfig, Runner, input_guardrail
from relay.agent.guardrail import agent_guardrail, block_topics, pii_filter


@dataclass
class Customer:
  name: str
  plan: str


@input_guardrail
def premium_only(text: str, context: Customer) -> GuardrailResult:
  """Only premium customers may ask for a callback."""
  if "call me" in text.lower() and context.plan != "premium":
    return GuardrailResult.block("Callbacks are a premium feature")
  return GuardrailResult.allow()


homework_check = Agent(
  name="Homework check",
  model="gpt-4o-mini",
  instructions="Set tripped=true when the user asks you to do their school homework for them.",
)

assistant = Agent(
  name="Support",
  model="gpt-4o-mini",
  instructions="You help customers with their broadband service.",
  input_guardrails=[block_topics(["politics"]), premium_only, agent_guardrail(homework_check)],
  output_guardrails=[pii_filter()],
)


def main():
  runner = Runner()
  basic = Customer(name="Ben", plan="basic")

  for question in ["Can you call me tomorrow?", "Solve my algebra homework: 2x + 3 = 7", "Why is my router blinking orange?"]:
    result = runner.run(assistant, question, basic)
    if result.is_blocked:
      print(f"{question!r} blocked by {result.guardrail.guardrail_name}: {result.guardrail.detail}")
    else:
      print(f"{question!r} -> {result.final_output}")

  strict = Runner(config=RunConfig(raise_on_guardrail=True))
  try:
    strict.run(assistant, "What do you think about politics?", basic)
  except InputGuardrailTripped as e:
    print(f"\nRaised: {e}")
    print(f"Shown to the user: {e.user_message}")


if __name__ == "__main__":
  main()
