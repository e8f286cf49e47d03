"""
Human approval for sensitive tools.

This example shows how to:
- Mark a tool with needs_approval=True
- Inspect the pending calls of a paused run
- Save the paused state as JSON and resume it later

Requirements:
    export OPENAI_API_KEY=sk-...
"""

from relay import Agent, RunState, resume, run, tool

OUTBOX = []


@tool(needs_approval=True)
async def send_email(to: str, subject: str, html: str) -> str:
  """Send an email.

  Args:
    to: Recipient address.
    subject: Subject line.
    html: HTML body.
  """
  OUTBOX.append({"to": to, "subject": subject})
  return f"Email sent to {to}"


agent = Agent(
  name="Assistant",
  model="gpt-4o-mini",
  tools=[send_email],
  instructions="You write and send short, friendly emails on the user's behalf.",
)


def main():
  result = run(agent, "Email ana@example.com to say the weekly report is ready.")

  while result.is_paused:
    # Persist the state; a web app would store this and resume on a later request
    saved = result.state.to_json()
    state = RunState.from_json(saved, agent)

    for interruption in state.interruptions:
      args = interruption.parsed_arguments
      print(f"\n{interruption.tool_name} wants to email {args.get('to')}: {args.get('subject')!r}")
      answer = input("Approve? [y/n] ")
      if answer.strip().lower().startswith("y"):
        state.approve(interruption)
      else:
        state.reject(interruption)

    result = resume(state)

  print("\nAssistant:", result.final_output)
  print("Outbox:", OUTBOX)


if __name__ == "__main__":
  main()
