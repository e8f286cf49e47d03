"""
Relay: agent orchestration runtime.

Drives a conversation between a model, tools, delegate agents and guardrails,
and hands back a final answer plus a replayable transcript.

Quick Start:
    from relay import Agent, run, tool

    @tool
    def get_weather(city: str) -> dict:
        \"\"\"Get the current weather for a city.\"\"\"
        return {"city": city, "temp": 30}

    agent = Agent(name="Weather", model="gpt-4o-mini", tools=[get_weather])
    result = run(agent, "What's the weather in Mumbai?")
    print(result.final_output)

    # Next turn: thread the transcript explicitly
    result = run(agent, result.history + [user("And in Pune?")])

Agent-scoped:
    from relay.agent import Runner, RunConfig, EventBus, MockModel
    from relay.agent.guardrail import input_guardrail, block_topics, agent_guardrail

Events:
    from relay.agent.events import RunContentEvent, ToolCallStartedEvent, RunCompletedEvent
"""

from relay.agent.agent import Agent
from relay.agent.cancellation import AgentCancelled, CancellationToken
from relay.agent.config import RunConfig
from relay.agent.guardrail import GuardrailResult, input_guardrail, output_guardrail
from relay.agent.run import Decision, Interruption, RunResult, RunState, RunStatus
from relay.agent.runner import Runner, aresume, arun, resume, resume_streaming, run, run_streaming
from relay.agent.streaming import StreamedRun
from relay.exceptions import (
  AgentDefinitionError,
  GuardrailTripped,
  InputGuardrailTripped,
  ModelBehaviorError,
  OutputContractViolation,
  OutputGuardrailTripped,
  RelayError,
  ToolError,
  ToolErrorKind,
  TranscriptError,
  TurnLimitExceeded,
  UnknownHandoff,
  UnresolvedInterruption,
)
from relay.model.message import (
  AssistantMessage,
  HandoffMarker,
  ToolCall,
  ToolResult,
  TranscriptItem,
  UserMessage,
  assistant,
  user,
)
from relay.tool.decorator import tool
from relay.tool.function import Function

__version__ = "0.1.0"

__all__ = [
  # Agents & runs
  "Agent",
  "Runner",
  "RunConfig",
  "run",
  "arun",
  "resume",
  "aresume",
  "run_streaming",
  "resume_streaming",
  "RunResult",
  "RunStatus",
  "RunState",
  "Interruption",
  "Decision",
  "StreamedRun",
  "AgentCancelled",
  "CancellationToken",
  # Tools & guardrails
  "tool",
  "Function",
  "GuardrailResult",
  "input_guardrail",
  "output_guardrail",
  # Transcript
  "TranscriptItem",
  "UserMessage",
  "AssistantMessage",
  "ToolCall",
  "ToolResult",
  "HandoffMarker",
  "user",
  "assistant",
  # Errors
  "RelayError",
  "AgentDefinitionError",
  "TranscriptError",
  "ModelBehaviorError",
  "UnknownHandoff",
  "OutputContractViolation",
  "TurnLimitExceeded",
  "UnresolvedInterruption",
  "GuardrailTripped",
  "InputGuardrailTripped",
  "OutputGuardrailTripped",
  "ToolError",
  "ToolErrorKind",
]
