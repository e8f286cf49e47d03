"""Caller-facing API: run, resume and stream agents.

Usage:
    from relay import Agent, run, resume

    result = run(agent, "Send Ana the weekly report")
    while result.is_paused:
        for interruption in result.interruptions:
            result.state.approve(interruption)
        result = resume(result.state)
    print(result.final_output)
"""

import asyncio
from typing import Any, AsyncGenerator, Awaitable, Callable, Mapping, Optional, Union

from relay.agent.agent import Agent
from relay.agent.cancellation import CancellationToken
from relay.agent.config import RunConfig
from relay.agent.event_bus import EventBus
from relay.agent.events import RunCompletedEvent, RunEvent, RunPausedEvent
from relay.agent.loop import AgentLoop
from relay.agent.run.result import RunResult
from relay.agent.run.state import Decision, DecisionKey, RunState
from relay.agent.streaming import StreamedRun
from relay.exceptions import RelayError, UnresolvedInterruption
from relay.model.message import normalize_transcript, validate_transcript
from relay.utils.log import log_debug

Decisions = Mapping[DecisionKey, Union[Decision, str, bool]]


class Runner:
  """Runs agents with a shared :class:`RunConfig` and optional :class:`EventBus`.

  A runner holds no per-run state; one instance can serve any number of
  concurrent runs.
  """

  def __init__(self, config: Optional[RunConfig] = None, event_bus: Optional[EventBus] = None):
    self.config = config or RunConfig()
    self.event_bus = event_bus

  # ------------------------------------------------------------------
  # Loop construction
  # ------------------------------------------------------------------

  def _config_for(self, max_turns: Optional[int]) -> RunConfig:
    return self.config if max_turns is None else self.config.with_updates(max_turns=max_turns)

  def _start(
    self,
    agent: Agent,
    transcript: Any,
    context: Any,
    *,
    max_turns: Optional[int],
    streaming: bool,
    cancellation_token: Optional[CancellationToken],
  ) -> AgentLoop:
    if not isinstance(agent, Agent):
      raise TypeError(f"Expected an Agent, got {type(agent).__name__}")
    config = self._config_for(max_turns)
    items = normalize_transcript(transcript)
    if config.validate_transcript:
      validate_transcript(items)
    log_debug(f"Starting run on agent '{agent.name}' with {len(items)} transcript item(s)")
    return AgentLoop.start(
      agent,
      items,
      context,
      config,
      streaming=streaming,
      cancellation_token=cancellation_token,
      event_bus=self.event_bus,
    )

  def _resume(
    self,
    state: RunState,
    decisions: Optional[Decisions],
    context: Any,
    *,
    max_turns: Optional[int],
    streaming: bool,
    cancellation_token: Optional[CancellationToken],
  ) -> AgentLoop:
    if not isinstance(state, RunState):
      raise TypeError(f"Expected a RunState, got {type(state).__name__}")
    merged = state.merged_decisions(decisions)
    unresolved = state.unresolved(merged)
    if unresolved:
      raise UnresolvedInterruption(unresolved)
    log_debug(f"Resuming run {state.run_id} on agent '{state.agent.name}' with {len(merged)} decision(s)")
    return AgentLoop.resume(
      state,
      merged,
      context,
      self._config_for(max_turns),
      streaming=streaming,
      cancellation_token=cancellation_token,
      event_bus=self.event_bus,
    )

  @staticmethod
  async def _drain(events: AsyncGenerator[RunEvent, None]) -> RunResult:
    result: Optional[RunResult] = None
    try:
      async for event in events:
        if isinstance(event, (RunCompletedEvent, RunPausedEvent)):
          result = event.result
    finally:
      await events.aclose()
    if result is None:
      raise RelayError("Run ended without a result")
    return result

  # ------------------------------------------------------------------
  # Async API
  # ------------------------------------------------------------------

  async def arun(
    self,
    agent: Agent,
    transcript: Any,
    context: Any = None,
    *,
    max_turns: Optional[int] = None,
    cancellation_token: Optional[CancellationToken] = None,
  ) -> RunResult:
    """Run *agent* on *transcript* until it completes, pauses or is blocked.

    Args:
        agent: The starting agent.
        transcript: A string (one user message), a transcript item, or a list
            of items / their dict form. Passing a paused ``RunState``
            resumes it with the decisions recorded on it.
        context: Opaque value handed to instructions, tools and guardrails.
        max_turns: Override ``RunConfig.max_turns`` for this run.
        cancellation_token: Token to cancel the run cooperatively.

    Returns:
        RunResult: status ``completed``, ``paused`` or ``blocked``.

    Raises:
        TurnLimitExceeded, OutputContractViolation, UnknownHandoff,
        TranscriptError, AgentCancelled, and guardrail errors when
        ``raise_on_guardrail`` is set.
    """
    if isinstance(transcript, RunState):
      return await self.aresume(transcript, context=context, max_turns=max_turns, cancellation_token=cancellation_token)
    loop = self._start(agent, transcript, context, max_turns=max_turns, streaming=False, cancellation_token=cancellation_token)
    return await self._drain(loop.run())

  async def aresume(
    self,
    state: RunState,
    decisions: Optional[Decisions] = None,
    context: Any = None,
    *,
    max_turns: Optional[int] = None,
    cancellation_token: Optional[CancellationToken] = None,
  ) -> RunResult:
    """Continue a paused run.

    Every interruption needs a decision, recorded with ``state.approve`` /
    ``state.reject`` or passed in *decisions* (keyed by interruption or call
    id). *state* is left untouched, so resuming it again with the same
    decisions replays the same continuation.

    Raises:
        UnresolvedInterruption: if any interruption has no decision.
    """
    loop = self._resume(state, decisions, context, max_turns=max_turns, streaming=False, cancellation_token=cancellation_token)
    return await self._drain(loop.run())

  def run_streaming(
    self,
    agent: Agent,
    transcript: Any,
    context: Any = None,
    *,
    max_turns: Optional[int] = None,
    cancellation_token: Optional[CancellationToken] = None,
  ) -> StreamedRun:
    """Start a streaming run. See :class:`StreamedRun`."""
    token = cancellation_token or CancellationToken()
    loop = self._start(agent, transcript, context, max_turns=max_turns, streaming=True, cancellation_token=token)
    return StreamedRun(loop.run(), token)

  def resume_streaming(
    self,
    state: RunState,
    decisions: Optional[Decisions] = None,
    context: Any = None,
    *,
    max_turns: Optional[int] = None,
    cancellation_token: Optional[CancellationToken] = None,
  ) -> StreamedRun:
    token = cancellation_token or CancellationToken()
    loop = self._resume(state, decisions, context, max_turns=max_turns, streaming=True, cancellation_token=token)
    return StreamedRun(loop.run(), token)

  # ------------------------------------------------------------------
  # Sync API
  # ------------------------------------------------------------------

  def run(self, agent: Agent, transcript: Any, context: Any = None, **kwargs: Any) -> RunResult:
    """Synchronous :meth:`arun`."""
    return _run_sync(lambda: self.arun(agent, transcript, context, **kwargs))

  def resume(self, state: RunState, decisions: Optional[Decisions] = None, context: Any = None, **kwargs: Any) -> RunResult:
    """Synchronous :meth:`aresume`."""
    return _run_sync(lambda: self.aresume(state, decisions, context, **kwargs))


def _run_sync(factory: Callable[[], Awaitable[RunResult]]) -> RunResult:
  try:
    running = asyncio.get_running_loop()
  except RuntimeError:
    running = None

  if running and running.is_running():
    # Called from async code: run on a private loop in a worker thread
    import concurrent.futures

    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
      return executor.submit(lambda: asyncio.run(factory())).result()  # type: ignore[arg-type]

  # A fresh loop per call avoids "Event loop is closed" errors from async
  # HTTP clients created on an earlier loop
  loop = asyncio.new_event_loop()
  try:
    asyncio.set_event_loop(loop)
    return loop.run_until_complete(factory())
  finally:
    try:
      loop.run_until_complete(loop.shutdown_asyncgens())
    finally:
      asyncio.set_event_loop(None)
      loop.close()


# ---------------------------------------------------------------------------
# Module-level shortcuts on a default runner
# ---------------------------------------------------------------------------

_default_runner = Runner()


async def arun(agent: Agent, transcript: Any, context: Any = None, **kwargs: Any) -> RunResult:
  return await _default_runner.arun(agent, transcript, context, **kwargs)


async def aresume(state: RunState, decisions: Optional[Decisions] = None, context: Any = None, **kwargs: Any) -> RunResult:
  return await _default_runner.aresume(state, decisions, context, **kwargs)


def run(agent: Agent, transcript: Any, context: Any = None, **kwargs: Any) -> RunResult:
  return _default_runner.run(agent, transcript, context, **kwargs)


def resume(state: RunState, decisions: Optional[Decisions] = None, context: Any = None, **kwargs: Any) -> RunResult:
  return _default_runner.resume(state, decisions, context, **kwargs)


def run_streaming(agent: Agent, transcript: Any, context: Any = None, **kwargs: Any) -> StreamedRun:
  return _default_runner.run_streaming(agent, transcript, context, **kwargs)


def resume_streaming(state: RunState, decisions: Optional[Decisions] = None, context: Any = None, **kwargs: Any) -> StreamedRun:
  return _default_runner.resume_streaming(state, decisions, context, **kwargs)
