"""
Unit tests for streaming runs.

Covers:
  - Chunks concatenate to the recorded answer
  - A StreamedRun can be consumed once
  - cancel() / closing the stream aborts the run
  - Awaiting without consuming drains the run
"""

import pytest

from relay.agent.cancellation import AgentCancelled
from relay.agent.events import RunCancelledEvent, RunCompletedEvent, RunContentEvent, RunStartedEvent, ToolCallStartedEvent
from relay.agent.guardrail.builtin import pii_filter
from relay.agent.runner import Runner, run_streaming
from relay.agent.testing import MockModel, tool_call, tool_response
from relay.model.message import AssistantMessage

STORY = "Once upon a time, a robot learned to paint."


@pytest.mark.unit
class TestStreamText:
  @pytest.mark.asyncio
  async def test_chunks_concatenate_to_the_answer(self, make_agent):
    agent = make_agent(model=MockModel(responses=[STORY], chunk_size=5))
    streamed = Runner().run_streaming(agent, "Tell me a story")

    chunks = [chunk async for chunk in streamed.stream_text()]
    result = await streamed

    assert len(chunks) == 9
    assert "".join(chunks) == STORY
    assert result.final_output == STORY
    assert result.history[-1].text == STORY
    assert streamed.is_complete

  @pytest.mark.asyncio
  async def test_same_transcript_as_non_streaming(self, make_agent, weather_tool):
    script = [tool_response(tool_call("get_weather", {"city": "Pune"}, id="c1")), "Warm in Pune."]
    streamed = Runner().run_streaming(make_agent(script, tools=[weather_tool]), "Pune?")
    async for _ in streamed.stream_text():
      pass
    streamed_result = await streamed.result()
    plain_result = await Runner().arun(make_agent(script, tools=[weather_tool]), "Pune?")

    assert streamed_result.history == plain_result.history

  @pytest.mark.asyncio
  async def test_interim_text_is_streamed(self, make_agent, weather_tool):
    agent = make_agent(
      [tool_response(tool_call("get_weather", {"city": "Goa"}), content="Checking. "), "Sunny."],
      tools=[weather_tool],
    )
    streamed = run_streaming(agent, "Goa?")
    text = "".join([chunk async for chunk in streamed.stream_text()])
    result = await streamed

    assert text == "Checking. Sunny."
    assert result.final_output == "Sunny."


@pytest.mark.unit
class TestStreamEvents:
  @pytest.mark.asyncio
  async def test_event_order(self, make_agent, weather_tool):
    agent = make_agent([tool_response(tool_call("get_weather", {"city": "Pune"})), "Hot."], tools=[weather_tool])
    events = [event async for event in Runner().run_streaming(agent, "Pune?").stream_events()]

    assert isinstance(events[0], RunStartedEvent)
    assert isinstance(events[-1], RunCompletedEvent)
    started = next(i for i, e in enumerate(events) if isinstance(e, ToolCallStartedEvent))
    content = [i for i, e in enumerate(events) if isinstance(e, RunContentEvent)]
    assert content and all(i > started for i in content)
    assert {e.turn for e in events if isinstance(e, RunContentEvent)} == {2}

  @pytest.mark.asyncio
  async def test_second_consumption_raises(self, make_agent):
    streamed = Runner().run_streaming(make_agent(["Hi"]), "Hello")
    async for _ in streamed.stream_events():
      pass
    with pytest.raises(RuntimeError, match="already been consumed"):
      async for _ in streamed.stream_text():
        pass

  @pytest.mark.asyncio
  async def test_await_without_consuming(self, make_agent):
    result = await Runner().run_streaming(make_agent(["Hi there"]), "Hello")
    assert result.final_output == "Hi there"

  @pytest.mark.asyncio
  async def test_output_guardrail_after_streaming(self, make_agent):
    agent = make_agent(["Mail ana@example.com"], output_guardrails=[pii_filter()])
    streamed = Runner().run_streaming(agent, "Contact?")
    text = "".join([chunk async for chunk in streamed.stream_text()])
    result = await streamed

    # Chunks already went out; the answer is not recorded
    assert text == "Mail ana@example.com"
    assert result.is_blocked
    assert not any(isinstance(i, AssistantMessage) for i in result.history)

  @pytest.mark.asyncio
  async def test_pause_and_resume_streaming(self, make_agent, email_tool, outbox):
    args = {"to": "ana@example.com", "subject": "Hi", "html": "<p>Hi</p>"}
    agent = make_agent([tool_response(tool_call("send_email", args)), "Sent."], tools=[email_tool])
    runner = Runner()
    paused = await runner.run_streaming(agent, "Email Ana")
    assert paused.is_paused

    streamed = runner.resume_streaming(paused.state, {paused.interruptions[0]: True})
    text = "".join([chunk async for chunk in streamed.stream_text()])
    result = await streamed
    assert text == "Sent."
    assert result.is_completed
    assert len(outbox) == 1


@pytest.mark.unit
class TestCancellation:
  @pytest.mark.asyncio
  async def test_cancel_mid_stream(self, make_agent):
    model = MockModel(responses=[STORY], chunk_size=3)
    streamed = Runner().run_streaming(make_agent(model=model), "Story")
    received = []

    with pytest.raises(AgentCancelled):
      async for chunk in streamed.stream_text():
        received.append(chunk)
        if len(received) == 2:
          streamed.cancel()

    assert received == [STORY[:3], STORY[3:6]]
    with pytest.raises(AgentCancelled):
      await streamed.result()
    assert streamed.final_output is None

  @pytest.mark.asyncio
  async def test_cancelled_event(self, make_agent):
    streamed = Runner().run_streaming(make_agent(model=MockModel(responses=[STORY])), "Story")
    seen = []
    with pytest.raises(AgentCancelled):
      async for event in streamed.stream_events():
        seen.append(event)
        if isinstance(event, RunContentEvent):
          streamed.cancel()
    assert isinstance(seen[-1], RunCancelledEvent)
    assert not any(isinstance(e, RunCompletedEvent) for e in seen)

  @pytest.mark.asyncio
  async def test_closing_the_stream_aborts_the_run(self, make_agent):
    streamed = Runner().run_streaming(make_agent(model=MockModel(responses=[STORY])), "Story")
    events = streamed.stream_events()
    await events.__anext__()
    await events.aclose()

    assert not streamed.is_complete
    with pytest.raises(AgentCancelled):
      await streamed.result()

  @pytest.mark.asyncio
  async def test_cancel_before_start(self, make_agent):
    agent = make_agent(["never"])
    streamed = Runner().run_streaming(agent, "Hello")
    streamed.cancel()
    with pytest.raises(AgentCancelled):
      await streamed
    assert agent.model.call_count == 0
