"""Streaming view of a run: live text chunks plus the eventual result."""

from typing import Any, AsyncGenerator, AsyncIterator, Generator, Optional

from relay.agent.cancellation import AgentCancelled, CancellationToken
from relay.agent.events import RunCompletedEvent, RunContentEvent, RunEvent, RunPausedEvent
from relay.agent.run.result import RunResult


class StreamedRun:
  """A run whose events are pulled by the caller.

  Iterate :meth:`stream_text` (answer chunks) or :meth:`stream_events`
  (every run event), then ``await streamed.result()``; awaiting the object
  itself does the same. Nothing runs until the stream is consumed.

  The stream is finite and can be consumed once. Closing it early, or
  calling :meth:`cancel`, aborts the in-flight model call and the run;
  ``result()`` then raises :class:`AgentCancelled`.

  Example::

      streamed = run_streaming(agent, "Tell me a story")
      async for chunk in streamed.stream_text():
          print(chunk, end="", flush=True)
      result = await streamed
  """

  def __init__(self, events: AsyncGenerator[RunEvent, None], cancellation_token: CancellationToken):
    self._events = events
    self._cancellation_token = cancellation_token
    self._consumed = False
    self._finished = False
    self._result: Optional[RunResult] = None
    self._error: Optional[Exception] = None

  async def stream_events(self) -> AsyncIterator[RunEvent]:
    """Yield every run event in order. Can only be called once."""
    if self._consumed:
      raise RuntimeError("This StreamedRun has already been consumed; start a new run to stream again")
    self._consumed = True
    try:
      async for event in self._events:
        if isinstance(event, (RunCompletedEvent, RunPausedEvent)):
          self._result = event.result
        yield event
      self._finished = True
    except Exception as e:
      self._error = e
      raise
    finally:
      await self._events.aclose()

  async def stream_text(self) -> AsyncIterator[str]:
    """Yield the text chunks of each model call as they arrive.

    This includes interim text from a model call that also requested tools
    (e.g. "Let me check the weather."). Such text is recorded as its own
    ``AssistantMessage`` before the tool calls, so when it occurs the joined
    chunks are longer than ``final_output``. Only the chunks after the last
    tool round make up the final answer. Filter ``stream_events()`` on
    ``RunContentEvent`` and reset at ``ToolCallStartedEvent`` if you need
    just the answer.
    """
    events = self.stream_events()
    try:
      async for event in events:
        if isinstance(event, RunContentEvent) and event.content:
          yield event.content
    finally:
      await events.aclose()  # type: ignore[attr-defined]

  def cancel(self) -> None:
    """Ask the run to stop at its next chunk or step."""
    self._cancellation_token.cancel()

  async def result(self) -> RunResult:
    """The run's result, draining the stream first if nobody consumed it."""
    if not self._consumed:
      async for _ in self.stream_events():
        pass
    if self._error is not None:
      raise self._error
    if not self._finished or self._result is None:
      raise AgentCancelled("The stream was closed before the run finished")
    return self._result

  def __await__(self) -> Generator[Any, None, RunResult]:
    return self.result().__await__()

  @property
  def is_complete(self) -> bool:
    return self._finished

  @property
  def final_output(self) -> Any:
    return self._result.final_output if self._result is not None else None

  def __repr__(self) -> str:
    state = "finished" if self._finished else ("streaming" if self._consumed else "pending")
    return f"StreamedRun({state})"
