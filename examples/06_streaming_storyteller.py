"""
Streaming a story as it is written.

This example shows how to:
- Stream text chunks with run_streaming()
- Watch every run event with stream_events()
- Cancel a stream part way through

Requirements:
    export OPENAI_API_KEY=sk-...
"""

import asyncio

from relay import Agent, AgentCancelled, run_streaming
from relay.agent.events import RunCompletedEvent, RunContentEvent, ToolCallStartedEvent
from relay.tool.decorator import tool


@tool
def pick_hero(genre: str) -> str:
  """Pick a hero for a story in the given genre."""
  return {"fantasy": "a retired dragon", "sci-fi": "a lonely maintenance robot"}.get(genre, "a curious cat")


storyteller = Agent(
  name="Storyteller",
  model="gpt-4o-mini",
  tools=[pick_hero],
  instructions="You tell short bedtime stories. Pick a hero with the pick_hero tool first.",
)


async def stream_story():
  print("Streaming text")
  print("-" * 40)
  streamed = run_streaming(storyteller, "Tell me a sci-fi story in five sentences.")
  async for chunk in streamed.stream_text():
    print(chunk, end="", flush=True)
  result = await streamed
  print(f"\n{'-' * 40}\n[{len(result.final_output)} characters]")


async def watch_events():
  print("\nStreaming events")
  print("-" * 40)
  chars = 0
  async for event in run_streaming(storyteller, "A fantasy story, three sentences.").stream_events():
    if isinstance(event, ToolCallStartedEvent):
      print(f"[tool] {event.tool_name}({event.arguments})")
    elif isinstance(event, RunContentEvent):
      chars += len(event.content)
    elif isinstance(event, RunCompletedEvent):
      print(f"[done] {chars} characters from {event.agent_name}")


async def cancel_midway():
  print("\nCancelling after 80 characters")
  print("-" * 40)
  streamed = run_streaming(storyteller, "Tell me a long fantasy story.")
  received = 0
  try:
    async for chunk in streamed.stream_text():
      print(chunk, end="", flush=True)
      received += len(chunk)
      if received >= 80:
        streamed.cancel()
  except AgentCancelled:
    print("\n[cancelled]")


async def main():
  await stream_story()
  await watch_events()
  await cancel_midway()


if __name__ == "__main__":
  asyncio.run(main())
