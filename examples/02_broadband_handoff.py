"""
Triage agent handing the conversation to specialists.

This example shows how to:
- Declare handoffs between agents
- See which agent answered via result.last_agent
- Follow handoffs in the transcript (HandoffMarker items)

Requirements:
    export OPENAI_API_KEY=sk-...
"""

from relay import Agent, HandoffMarker, run, tool


@tool
def check_line(account_id: str) -> dict:
  """Run a line test on a customer's broadband connection.

  Args:
    account_id: Customer account number.
  """
  return {"account_id": account_id, "sync_speed_mbps": 12, "expected_mbps": 80, "faults": ["noise on line"]}


@tool
def get_bill(account_id: str) -> dict:
  """Fetch the latest bill for an account."""
  return {"account_id": account_id, "amount_gbp": 42.5, "due": "2026-11-01"}


technical = Agent(
  name="Technical Support",
  model="gpt-4o-mini",
  tools=[check_line],
  handoff_description="Slow or dropping connections, router problems.",
  instructions="You troubleshoot broadband faults. Run a line test before suggesting fixes.",
)

billing = Agent(
  name="Billing",
  model="gpt-4o-mini",
  tools=[get_bill],
  handoff_description="Bills, payments and refunds.",
  instructions="You answer billing questions using the customer's latest bill.",
)

triage = Agent(
  name="Triage",
  model="gpt-4o-mini",
  handoffs=[technical, billing],
  instructions="Work out what the customer needs and transfer them to the right team. Do not answer yourself.",
)


def main():
  for question in [
    "My internet has been crawling all week, account 88-1234.",
    "How much is my next bill? Account 88-1234.",
  ]:
    result = run(triage, question)
    print(f"Customer: {question}")
    print(f"{result.last_agent.name}: {result.final_output}")
    for item in result.history:
      if isinstance(item, HandoffMarker):
        print(f"  (handoff {item.from_agent} -> {item.to_agent})")
    print()


if __name__ == "__main__":
  main()
