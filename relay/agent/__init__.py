"""
Relay Agent: agents, the run loop and the caller API.

Quick Start:
    from relay.agent import Agent, run
    from relay.model import OpenAIChat

    agent = Agent(
        name="Assistant",
        model=OpenAIChat(id="gpt-4o-mini"),
        tools=[my_tool],
        instructions="You are a helpful assistant.",
    )
    result = run(agent, "Hello!")

    # String model shorthand:
    agent = Agent(name="Assistant", model="gpt-4o-mini", instructions="Hello")

With approvals:
    result = run(agent, "Email the report to Ana")
    if result.is_paused:
        for interruption in result.interruptions:
            result.state.approve(interruption)
        result = resume(result.state)

With events:
    from relay.agent import EventBus, Runner
    from relay.agent.events import ToolCallStartedEvent

    bus = EventBus()
    bus.on(ToolCallStartedEvent, lambda e: print("calling", e.tool_name))
    runner = Runner(event_bus=bus)
"""

from relay.agent.agent import Agent
from relay.agent.cancellation import AgentCancelled, CancellationToken
from relay.agent.config import RunConfig
from relay.agent.event_bus import EventBus
from relay.agent.run import Decision, Interruption, RunResult, RunState, RunStatus
from relay.agent.runner import Runner, aresume, arun, resume, resume_streaming, run, run_streaming
from relay.agent.streaming import StreamedRun
from relay.agent.testing import AgentTestCase, MockModel, create_test_agent

__all__ = [
  # Core
  "Agent",
  "RunConfig",
  "Runner",
  "run",
  "arun",
  "resume",
  "aresume",
  "run_streaming",
  "resume_streaming",
  # Results & state
  "RunResult",
  "RunStatus",
  "RunState",
  "Interruption",
  "Decision",
  "StreamedRun",
  # Cancellation & events
  "AgentCancelled",
  "CancellationToken",
  "EventBus",
  # Testing
  "MockModel",
  "AgentTestCase",
  "create_test_agent",
]
