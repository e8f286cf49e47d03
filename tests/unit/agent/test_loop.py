"""
Unit tests for the run loop: tool dispatch, final answers, turn budget,
structured output, guardrails and transient-error retry.

All tests use MockModel; no API calls are made.
"""

import asyncio
from typing import List

import pytest
from pydantic import BaseModel

from relay.agent.config import RunConfig
from relay.agent.event_bus import EventBus
from relay.agent.events import (
  BaseRunEvent,
  RunCompletedEvent,
  RunStartedEvent,
  ToolCallCompletedEvent,
  ToolCallStartedEvent,
)
from relay.agent.guardrail.base import GuardrailResult
from relay.agent.guardrail.builtin import block_topics, pii_filter
from relay.agent.runner import Runner
from relay.agent.testing import MockModel, tool_call, tool_response
from relay.exceptions import InputGuardrailTripped, OutputContractViolation, OutputGuardrailTripped, TurnLimitExceeded
from relay.model.message import AssistantMessage, ToolCall, ToolResult, UserMessage, user
from relay.tool.decorator import tool


class Forecast(BaseModel):
  city: str
  temp: int


@pytest.mark.unit
class TestToolRound:
  """A tool call followed by a final answer."""

  @pytest.mark.asyncio
  async def test_weather_round(self, make_agent, weather_tool, weather_calls):
    agent = make_agent(
      [tool_response(tool_call("get_weather", {"city": "Mumbai"})), "It's 30°C in Mumbai."],
      tools=[weather_tool],
    )
    result = await Runner().arun(agent, "What's the weather in Mumbai?")

    assert result.is_completed
    assert result.final_output == "It's 30°C in Mumbai."
    assert weather_calls == ["Mumbai"]
    assert [type(i) for i in result.history] == [UserMessage, ToolCall, ToolResult, AssistantMessage]
    call, tool_result = result.history[1], result.history[2]
    assert tool_result.call_id == call.id
    assert tool_result.value == {"city": "Mumbai", "temp": 30}

  @pytest.mark.asyncio
  async def test_model_sees_tool_result_on_next_call(self, make_agent, weather_tool):
    agent = make_agent([tool_response(tool_call("get_weather", {"city": "Pune"})), "Warm."], tools=[weather_tool])
    await Runner().arun(agent, "Weather in Pune?")

    second = agent.model.call_history[1]["messages"]
    assert isinstance(second[-1], ToolResult)
    assert second[-1].value["city"] == "Pune"

  @pytest.mark.asyncio
  async def test_tools_are_declared_to_the_model(self, make_agent, weather_tool):
    agent = make_agent(["Hi"], tools=[weather_tool])
    await Runner().arun(agent, "Hello")
    tools = agent.model.call_history[0]["tools"]
    assert [t["name"] for t in tools] == ["get_weather"]

  @pytest.mark.asyncio
  async def test_interim_text_is_recorded_before_calls(self, make_agent, weather_tool):
    agent = make_agent(
      [tool_response(tool_call("get_weather", {"city": "Goa"}), content="Let me check."), "Sunny."],
      tools=[weather_tool],
    )
    result = await Runner().arun(agent, "Goa?")
    assert isinstance(result.history[1], AssistantMessage)
    assert result.history[1].text == "Let me check."
    assert isinstance(result.history[2], ToolCall)

  @pytest.mark.asyncio
  async def test_unknown_tool_is_reported_to_the_model(self, make_agent):
    agent = make_agent([tool_response(tool_call("get_stock", {"ticker": "ACME"})), "I can't look that up."])
    result = await Runner().arun(agent, "ACME price?")

    assert result.is_completed
    tool_result = result.tool_results[0]
    assert tool_result.error == "Tool 'get_stock' not found"
    assert tool_result.error_kind == "unknown_tool"

  @pytest.mark.asyncio
  async def test_tool_failure_does_not_end_the_run(self, make_agent):
    @tool
    def flaky(x: int) -> int:
      raise RuntimeError("backend down")

    agent = make_agent([tool_response(tool_call("flaky", {"x": 1})), "Sorry, try later."], tools=[flaky])
    result = await Runner().arun(agent, "go")

    assert result.final_output == "Sorry, try later."
    assert result.tool_results[0].error_kind == "execution_failed"
    assert "backend down" in result.tool_results[0].error

  @pytest.mark.asyncio
  async def test_invalid_arguments_are_reported(self, make_agent, weather_tool, weather_calls):
    agent = make_agent([tool_response(tool_call("get_weather", {"town": "Pune"})), "Which city?"], tools=[weather_tool])
    result = await Runner().arun(agent, "weather")
    assert result.tool_results[0].error_kind == "invalid_arguments"
    assert weather_calls == []

  @pytest.mark.asyncio
  async def test_duplicate_call_ids_are_replaced(self, make_agent, weather_tool):
    agent = make_agent(
      [
        tool_response(tool_call("get_weather", {"city": "A"}, id="c1"), tool_call("get_weather", {"city": "B"}, id="c1")),
        "Done.",
      ],
      tools=[weather_tool],
    )
    result = await Runner().arun(agent, "two cities")
    ids = [c.id for c in result.tool_calls]
    assert ids[0] == "c1"
    assert ids[1] != "c1"
    assert ids[1].startswith("call_")
    assert [r.call_id for r in result.tool_results] == ids

  @pytest.mark.asyncio
  async def test_context_reaches_tools_and_instructions(self, make_agent):
    @tool
    def whoami(context=None) -> str:
      return context["name"]

    agent = make_agent(
      [tool_response(tool_call("whoami")), "You are Ana."],
      tools=[whoami],
      instructions=lambda ctx: f"The user is {ctx['name']}.",
    )
    result = await Runner().arun(agent, "Who am I?", {"name": "Ana"})
    assert result.tool_results[0].value == "Ana"
    assert agent.model.call_history[0]["instructions"] == "The user is Ana."


@pytest.mark.unit
class TestParallelDispatch:
  @staticmethod
  def _timed_tools(finished: List[str]):
    @tool
    async def slow() -> str:
      await asyncio.sleep(0.05)
      finished.append("slow")
      return "slow done"

    @tool
    async def fast() -> str:
      finished.append("fast")
      return "fast done"

    return [slow, fast]

  @pytest.mark.asyncio
  async def test_results_keep_request_order(self, make_agent):
    finished: List[str] = []
    agent = make_agent([tool_response(tool_call("slow"), tool_call("fast")), "Both done."], tools=self._timed_tools(finished))
    result = await Runner().arun(agent, "go")

    # fast finishes first, but results are recorded in request order
    assert finished == ["fast", "slow"]
    assert [r.tool_name for r in result.tool_results] == ["slow", "fast"]
    assert [type(i) for i in result.history[1:5]] == [ToolCall, ToolCall, ToolResult, ToolResult]

  @pytest.mark.asyncio
  async def test_sequential_when_disabled(self, make_agent):
    finished: List[str] = []
    agent = make_agent([tool_response(tool_call("slow"), tool_call("fast")), "Both done."], tools=self._timed_tools(finished))
    await Runner(config=RunConfig(parallel_tool_calls=False)).arun(agent, "go")
    assert finished == ["slow", "fast"]


@pytest.mark.unit
class TestTurnBudget:
  @pytest.mark.asyncio
  async def test_turn_limit(self, make_agent, weather_tool):
    agent = make_agent([tool_response(tool_call("get_weather", {"city": "Loop"}))], tools=[weather_tool])
    with pytest.raises(TurnLimitExceeded) as exc_info:
      await Runner(config=RunConfig(max_turns=3)).arun(agent, "forever")
    assert exc_info.value.max_turns == 3
    assert agent.model.call_count == 3

  @pytest.mark.asyncio
  async def test_per_call_override(self, make_agent, weather_tool):
    agent = make_agent([tool_response(tool_call("get_weather", {"city": "Loop"}))], tools=[weather_tool])
    with pytest.raises(TurnLimitExceeded):
      await Runner().arun(agent, "forever", max_turns=1)
    assert agent.model.call_count == 1


@pytest.mark.unit
class TestStructuredOutput:
  @pytest.mark.asyncio
  async def test_parsed_into_schema(self, make_agent):
    agent = make_agent(['{"city": "Pune", "temp": 31}'], output_schema=Forecast)
    result = await Runner().arun(agent, "forecast")
    assert isinstance(result.final_output, Forecast)
    assert result.final_output.temp == 31
    assert result.history[-1].text == '{"city": "Pune", "temp": 31}'
    assert agent.model.call_history[0]["output_schema"] is Forecast

  @pytest.mark.asyncio
  async def test_contract_violation(self, make_agent):
    agent = make_agent(["It will be warm."], output_schema=Forecast)
    with pytest.raises(OutputContractViolation) as exc_info:
      await Runner().arun(agent, "forecast")
    assert exc_info.value.agent_name == "Assistant"
    assert exc_info.value.output == "It will be warm."


@pytest.mark.unit
class TestGuardrails:
  @pytest.mark.asyncio
  async def test_input_guardrail_blocks_before_the_model(self, make_agent):
    agent = make_agent(["Never said"], input_guardrails=[block_topics(["politics"])])
    result = await Runner().arun(agent, "Let's talk politics")

    assert result.is_blocked
    assert result.final_output is None
    assert result.guardrail.guardrail_name == "block_topics"
    assert agent.model.call_count == 0
    assert len(result.history) == 1

  @pytest.mark.asyncio
  async def test_output_guardrail_withholds_the_answer(self, make_agent):
    agent = make_agent(["Write to ana@example.com"], output_guardrails=[pii_filter()])
    result = await Runner().arun(agent, "Who do I contact?")

    assert result.is_blocked
    assert result.guardrail.guardrail_type == "output"
    assert not any(isinstance(i, AssistantMessage) for i in result.history)
    assert result.final_text is None

  @pytest.mark.asyncio
  async def test_output_guardrail_sees_structured_value(self, make_agent):
    seen = []

    class Capture:
      name = "capture"

      async def check(self, subject, context):
        seen.append(subject)
        return GuardrailResult.allow()

    agent = make_agent(['{"city": "Pune", "temp": 31}'], output_schema=Forecast, output_guardrails=[Capture()])
    await Runner().arun(agent, "forecast")
    assert isinstance(seen[0], Forecast)

  @pytest.mark.asyncio
  async def test_raise_on_input_guardrail(self, make_agent):
    agent = make_agent(["x"], input_guardrails=[block_topics(["politics"])])
    runner = Runner(config=RunConfig(raise_on_guardrail=True))
    with pytest.raises(InputGuardrailTripped) as exc_info:
      await runner.arun(agent, "politics again")
    assert exc_info.value.outcome.guardrail_name == "block_topics"
    assert exc_info.value.user_message == "Sorry, I can't help with that request."

  @pytest.mark.asyncio
  async def test_raise_on_output_guardrail(self, make_agent):
    agent = make_agent(["Call 555-123-4567"], output_guardrails=[pii_filter()])
    with pytest.raises(OutputGuardrailTripped):
      await Runner(config=RunConfig(raise_on_guardrail=True)).arun(agent, "number?")


@pytest.mark.unit
class TestTranscriptHandling:
  @pytest.mark.asyncio
  async def test_input_list_is_not_modified(self, make_agent):
    items = [user("Hello")]
    result = await Runner().arun(make_agent(["Hi!"]), items)
    assert len(items) == 1
    assert len(result.history) == 2

  @pytest.mark.asyncio
  async def test_next_turn_from_history(self, make_agent):
    agent = make_agent(["Hi!", "Still here."])
    first = await Runner().arun(agent, "Hello")
    second = await Runner().arun(agent, first.history + [user("Are you there?")])

    assert second.final_output == "Still here."
    assert len(second.history) == 4
    assert [type(i) for i in second.new_items] == [AssistantMessage]
    assert len(agent.model.call_history[1]["messages"]) == 3

  @pytest.mark.asyncio
  async def test_dict_items_are_accepted(self, make_agent):
    result = await Runner().arun(make_agent(["Hi!"]), [{"type": "user", "text": "Hello"}])
    assert result.final_output == "Hi!"

  def test_sync_run(self, make_agent):
    result = Runner().run(make_agent(["Hi!"]), "Hello")
    assert result.final_output == "Hi!"

  @pytest.mark.asyncio
  async def test_sync_run_inside_event_loop(self, make_agent):
    result = Runner().run(make_agent(["Hi!"]), "Hello")
    assert result.is_completed


@pytest.mark.unit
class TestRetry:
  @pytest.mark.asyncio
  async def test_transient_error_is_retried(self, make_agent):
    attempts = []

    def flaky(messages, tools, **kwargs):
      attempts.append(1)
      if len(attempts) == 1:
        raise ConnectionError("connection reset")
      return "Recovered."

    agent = make_agent(model=MockModel(side_effect=flaky))
    result = await Runner(config=RunConfig(retry_backoff_base=0.0)).arun(agent, "hi")
    assert result.final_output == "Recovered."
    assert len(attempts) == 2

  @pytest.mark.asyncio
  async def test_other_errors_are_not_retried(self, make_agent):
    def broken(messages, tools, **kwargs):
      raise ValueError("bad request")

    agent = make_agent(model=MockModel(side_effect=broken))
    with pytest.raises(ValueError):
      await Runner(config=RunConfig(retry_backoff_base=0.0)).arun(agent, "hi")
    assert agent.model.call_count == 1

  @pytest.mark.asyncio
  async def test_retries_exhausted(self, make_agent):
    def down(messages, tools, **kwargs):
      raise TimeoutError("timed out")

    agent = make_agent(model=MockModel(side_effect=down))
    with pytest.raises(TimeoutError):
      await Runner(config=RunConfig(max_retries=1, retry_backoff_base=0.0)).arun(agent, "hi")
    assert agent.model.call_count == 2


@pytest.mark.unit
class TestEvents:
  @pytest.mark.asyncio
  async def test_event_sequence(self, make_agent, weather_tool):
    seen: List[BaseRunEvent] = []
    bus = EventBus()
    bus.on(BaseRunEvent, seen.append)

    agent = make_agent([tool_response(tool_call("get_weather", {"city": "Pune"})), "Warm."], tools=[weather_tool])
    result = await Runner(event_bus=bus).arun(agent, "Pune?")

    assert [type(e) for e in seen] == [RunStartedEvent, ToolCallStartedEvent, ToolCallCompletedEvent, RunCompletedEvent]
    assert all(e.run_id == result.run_id for e in seen)
    assert seen[2].content == '{"city": "Pune", "temp": 30}'
    assert seen[-1].result is result
