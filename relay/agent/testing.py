"""Testing utilities for agents - MockModel and AgentTestCase."""

import asyncio
import inspect
from itertools import count
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from relay.agent.run.result import RunResult, RunStatus
from relay.model.base import Model
from relay.model.response import ModelResponse, ModelResponseDelta, ToolCallRequest, Usage

Scripted = Union[str, ModelResponse]


def tool_call(name: str, arguments: Optional[Dict[str, Any]] = None, id: str = "") -> ToolCallRequest:
  """Shorthand for a scripted tool call request."""
  return ToolCallRequest.create(name, arguments, id=id)


def tool_response(*calls: ToolCallRequest, content: Optional[str] = None) -> ModelResponse:
  """Scripted response that requests *calls*."""
  return ModelResponse(content=content, tool_calls=list(calls))


class MockModel(Model):
  """
  Scripted model for unit testing agents without API calls.

  Responses are returned in sequence; the last one repeats once the script
  runs out. Each entry is answer text or a full :class:`ModelResponse`
  (tool calls, handoffs).

  Example:
      # Simple mock with canned responses
      model = MockModel(responses=["Hello!", "How can I help?"])

      # A tool call, then an answer
      model = MockModel(responses=[
          tool_response(tool_call("get_weather", {"city": "Mumbai"})),
          "It's 30°C in Mumbai.",
      ])

      # Mock with custom side effect
      def custom_response(messages, tools, **kwargs):
          return f"Got {len(messages)} messages"

      model = MockModel(side_effect=custom_response)
  """

  id = "mock-model"
  provider = "mock"

  def __init__(
    self,
    responses: Optional[Sequence[Scripted]] = None,
    side_effect: Optional[Callable[..., Any]] = None,
    chunk_size: int = 1,
    chunk_delay: float = 0.0,
  ):
    """
    Initialize the mock model.

    Args:
        responses: Canned responses to return in sequence.
        side_effect: Custom (sync or async) function ``(messages, tools, **kwargs)``
            returning text or a ModelResponse. Takes precedence over *responses*.
        chunk_size: Characters per streamed chunk.
        chunk_delay: Seconds to sleep between streamed chunks.
    """
    self.responses: List[Scripted] = list(responses or ["Mock response"])
    self.side_effect = side_effect
    self.chunk_size = max(1, chunk_size)
    self.chunk_delay = chunk_delay

    self._call_count = 0
    self._call_history: List[Dict[str, Any]] = []
    self._ids = count(1)

  async def _next_response(self, **kwargs: Any) -> ModelResponse:
    # Record the call
    self._call_history.append(kwargs)
    index = self._call_count
    self._call_count += 1

    if self.side_effect is not None:
      extra = {k: v for k, v in kwargs.items() if k not in ("messages", "tools")}
      scripted = self.side_effect(kwargs.get("messages"), kwargs.get("tools"), **extra)
      if inspect.isawaitable(scripted):
        scripted = await scripted
    else:
      scripted = self.responses[min(index, len(self.responses) - 1)]

    if isinstance(scripted, str):
      return ModelResponse(content=scripted, usage=Usage(requests=1))
    if not isinstance(scripted, ModelResponse):
      raise TypeError(f"MockModel responses must be str or ModelResponse, got {type(scripted).__name__}")

    # Scripted calls without ids get fresh ones; repeated scripts need distinct ids
    calls = [c if c.id else c.model_copy(update={"id": f"mock_call_{next(self._ids)}"}) for c in scripted.tool_calls]
    return scripted.model_copy(update={"tool_calls": calls, "usage": scripted.usage or Usage(requests=1)})

  async def ainvoke(
    self,
    *,
    instructions: Optional[str],
    messages: Sequence[Any],
    tools: Optional[List[Dict[str, Any]]] = None,
    handoffs: Optional[List[Dict[str, Any]]] = None,
    output_schema: Optional[Any] = None,
  ) -> ModelResponse:
    return await self._next_response(
      instructions=instructions,
      messages=list(messages),
      tools=tools,
      handoffs=handoffs,
      output_schema=output_schema,
    )

  async def ainvoke_stream(
    self,
    *,
    instructions: Optional[str],
    messages: Sequence[Any],
    tools: Optional[List[Dict[str, Any]]] = None,
    handoffs: Optional[List[Dict[str, Any]]] = None,
    output_schema: Optional[Any] = None,
  ):
    """Yield the scripted content in ``chunk_size`` pieces, then the final delta."""
    response = await self._next_response(
      instructions=instructions,
      messages=list(messages),
      tools=tools,
      handoffs=handoffs,
      output_schema=output_schema,
    )
    content = response.content or ""
    for start in range(0, len(content), self.chunk_size):
      if self.chunk_delay:
        await asyncio.sleep(self.chunk_delay)
      yield ModelResponseDelta(content=content[start : start + self.chunk_size])
    yield ModelResponseDelta(response=response)

  @property
  def call_count(self) -> int:
    """Return number of times the model was called."""
    return self._call_count

  @property
  def call_history(self) -> List[Dict[str, Any]]:
    """Return history of all calls made to the model."""
    return self._call_history

  def reset(self) -> None:
    """Reset call count and history."""
    self._call_count = 0
    self._call_history.clear()

  def assert_called(self) -> None:
    """Assert that the model was called at least once."""
    assert self._call_count > 0, "MockModel was not called"

  def assert_called_times(self, n: int) -> None:
    """Assert that the model was called exactly n times."""
    assert self._call_count == n, f"MockModel was called {self._call_count} times, expected {n}"


class AgentTestCase:
  """
  Base class for agent tests with assertion helpers.

  Example:
      class TestMyAgent(AgentTestCase):
          async def test_simple_response(self):
              agent = self.create_agent(model=MockModel(responses=["Hello!"]))
              result = await arun(agent, "Say hello")
              self.assert_completed(result)
              assert result.final_output == "Hello!"
  """

  def create_agent(self, model: Optional[Model] = None, tools: Optional[List] = None, name: str = "Test Agent", **kwargs: Any):
    """Create an agent backed by a MockModel unless *model* is given."""
    from relay.agent.agent import Agent

    return Agent(name=name, model=model or MockModel(), tools=tools, **kwargs)

  def assert_tool_called(self, result: RunResult, tool_name: str, msg: Optional[str] = None) -> None:
    """Assert a specific tool was called during the run."""
    tool_names = [c.tool_name for c in result.tool_calls]
    assert tool_name in tool_names, msg or f"Tool '{tool_name}' not found in called tools: {tool_names}"

  def assert_tool_not_called(self, result: RunResult, tool_name: str, msg: Optional[str] = None) -> None:
    """Assert a specific tool was NOT called during the run."""
    tool_names = [c.tool_name for c in result.tool_calls]
    assert tool_name not in tool_names, msg or f"Tool '{tool_name}' was unexpectedly called"

  def assert_completed(self, result: RunResult, msg: Optional[str] = None) -> None:
    assert result.status == RunStatus.completed, msg or f"Run did not complete: status={result.status.value}"

  def assert_content_contains(self, result: RunResult, substring: str, msg: Optional[str] = None) -> None:
    content = str(result.final_output or "")
    assert substring in content, msg or f"Content does not contain '{substring}': {content[:100]}..."


# Convenience function for creating test agents
def create_test_agent(responses: Optional[Sequence[Scripted]] = None, tools: Optional[List] = None, **kwargs: Any):
  """
  Quick helper to create a test agent with MockModel.

  Example:
      agent = create_test_agent(responses=["Hello!"])
      result = run(agent, "Hi")
      assert result.final_output == "Hello!"
  """
  from relay.agent.agent import Agent

  kwargs.setdefault("name", "Test Agent")
  return Agent(model=MockModel(responses=responses), tools=tools, **kwargs)
