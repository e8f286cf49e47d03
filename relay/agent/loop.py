"""Unified async-generator run loop.

Single implementation for streaming and non-streaming runs, and for fresh
runs and resumed ones. Yields run events throughout execution; the terminal
event (``RunCompletedEvent`` or ``RunPausedEvent``) carries the ``RunResult``.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, List, Optional
from uuid import uuid4

from relay.agent.agent import Agent
from relay.agent.cancellation import AgentCancelled, CancellationToken
from relay.agent.config import RunConfig
from relay.agent.event_bus import EventBus
from relay.agent.events import (
  BaseRunEvent,
  GuardrailTrippedEvent,
  HandoffEvent,
  RunCancelledEvent,
  RunCompletedEvent,
  RunContentEvent,
  RunErrorEvent,
  RunEvent,
  RunPausedEvent,
  RunStartedEvent,
  ToolCallCompletedEvent,
  ToolCallStartedEvent,
)
from relay.agent.guardrail.base import GuardrailOutcome, evaluate_guardrails
from relay.agent.run.result import RunResult, RunStatus
from relay.agent.run.state import Decision, Interruption, RunState
from relay.exceptions import (
  InputGuardrailTripped,
  ModelBehaviorError,
  OutputGuardrailTripped,
  ToolErrorKind,
  TurnLimitExceeded,
  UnknownHandoff,
)
from relay.model.message import (
  AssistantMessage,
  HandoffMarker,
  ToolCall,
  ToolResult,
  TranscriptItem,
  last_user_text,
  tool_call_ids,
)
from relay.model.response import ModelResponse, ToolCallRequest, Usage
from relay.tool.invoker import ToolOutcome, invoke_tool
from relay.utils.log import log_debug, log_error, log_info, log_warning

# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------


@dataclass
class ToolBatch:
  """Outcome of processing the tool calls of one model response."""

  results: Dict[str, ToolResult] = field(default_factory=dict)
  interruptions: List[Interruption] = field(default_factory=list)
  handoff_target: Optional[Agent] = None
  events: List[BaseRunEvent] = field(default_factory=list)


# ---------------------------------------------------------------------------
# AgentLoop
# ---------------------------------------------------------------------------


class AgentLoop:
  """Drives one run (or one resumption) to a terminal event.

  Build with :meth:`start` or :meth:`resume`, then iterate :meth:`run`. The
  loop works on its own copy of the transcript; neither the caller's list nor
  a resumed ``RunState`` is modified.
  """

  def __init__(
    self,
    *,
    agent: Agent,
    transcript: List[TranscriptItem],
    context: Any,
    config: RunConfig,
    streaming: bool = False,
    cancellation_token: Optional[CancellationToken] = None,
    event_bus: Optional[EventBus] = None,
    input_length: Optional[int] = None,
    turn: int = 0,
    usage: Optional[Usage] = None,
    run_id: Optional[str] = None,
    paused_state: Optional[RunState] = None,
    decisions: Optional[Dict[str, Decision]] = None,
  ) -> None:
    self._agent = agent
    self._transcript = transcript
    self._context = context
    self._config = config
    self._streaming = streaming
    self._cancellation_token = cancellation_token
    self._event_bus = event_bus
    self._input_length = len(transcript) if input_length is None else input_length
    self._turn = turn
    self._usage = usage or Usage()
    self._run_id = run_id or str(uuid4())
    self._paused_state = paused_state
    self._decisions = decisions or {}

    # Set by _stream_model for the caller to pick up
    self._streamed_response: Optional[ModelResponse] = None

  @classmethod
  def start(cls, agent: Agent, transcript: List[TranscriptItem], context: Any, config: RunConfig, **kwargs: Any) -> "AgentLoop":
    return cls(agent=agent, transcript=list(transcript), context=context, config=config, **kwargs)

  @classmethod
  def resume(cls, state: RunState, decisions: Dict[str, Decision], context: Any, config: RunConfig, **kwargs: Any) -> "AgentLoop":
    return cls(
      agent=state.agent,
      transcript=list(state.transcript),
      context=context,
      config=config,
      input_length=state.input_length,
      turn=state.turn,
      usage=state.usage,
      run_id=state.run_id,
      paused_state=state,
      decisions=decisions,
      **kwargs,
    )

  # ------------------------------------------------------------------
  # Public API
  # ------------------------------------------------------------------

  async def run(self) -> AsyncGenerator[RunEvent, None]:  # type: ignore[misc]
    """The loop. Yields events as they occur."""
    try:
      yield await self._emit(RunStartedEvent(resumed=self._paused_state is not None))

      if self._paused_state is not None:
        # 0. Finish the batch the run paused in; input guardrails already ran
        batch = await self._finish_paused_batch(self._paused_state)
        for event in batch.events:
          yield event  # type: ignore[misc]
        self._append_results(self._paused_state.batch, batch.results)
        if batch.handoff_target is not None:
          yield await self._handoff(batch.handoff_target)
          blocked = await self._check_input()
          if blocked is not None:
            yield blocked
            return
      else:
        # 1. Input guardrails
        blocked = await self._check_input()
        if blocked is not None:
          yield blocked
          return

      while True:
        # 2. Cancellation check
        if self._cancellation_token:
          self._cancellation_token.raise_if_cancelled()

        # 3. Turn budget
        self._turn += 1
        if self._turn > self._config.max_turns:
          log_warning(f"Run {self._run_id} hit max_turns={self._config.max_turns} on agent '{self._agent.name}'")
          raise TurnLimitExceeded(self._config.max_turns)
        log_debug(f"Turn {self._turn}: calling model {self._agent.model.id} for agent '{self._agent.name}'")

        # 4. Model call
        if self._streaming:
          stream = self._stream_model()
          try:
            async for event in stream:
              yield event
          finally:
            await stream.aclose()
          response = self._streamed_response
          assert response is not None
        else:
          response = await self._call_model_with_retry()
        if response.usage is not None:
          self._usage = self._usage + response.usage

        # 5. Final answer
        if not response.tool_calls and not response.handoff:
          yield await self._finish(response.content or "")
          return

        # 6. Tool calls (and handoff requests)
        if response.content:
          self._transcript.append(AssistantMessage(text=response.content, agent_name=self._agent.name))
        calls = self._record_calls(response.tool_calls)
        explicit_target = self._resolve_explicit_handoff(response.handoff)

        if self._cancellation_token:
          self._cancellation_token.raise_if_cancelled()
        batch = await self._execute_batch(calls, explicit_target=explicit_target)
        for event in batch.events:
          yield event  # type: ignore[misc]

        # 7. Pause for approvals
        if batch.interruptions:
          yield await self._pause(calls, batch)
          return

        self._append_results(calls, batch.results)

        # 8. Handoff
        if batch.handoff_target is not None:
          yield await self._handoff(batch.handoff_target)
          blocked = await self._check_input()
          if blocked is not None:
            yield blocked
            return

    except AgentCancelled as e:
      log_info(f"Run {self._run_id} cancelled")
      yield await self._emit(RunCancelledEvent(reason=str(e)))
      raise
    except Exception as e:
      log_error(f"Run {self._run_id} failed on agent '{self._agent.name}': {type(e).__name__}: {e}")
      yield await self._emit(RunErrorEvent(error_type=type(e).__name__, content=str(e)))
      raise

  # ------------------------------------------------------------------
  # Events
  # ------------------------------------------------------------------

  async def _emit(self, event: BaseRunEvent) -> Any:
    event.run_id = self._run_id
    if event.agent_name is None:
      event.agent_name = self._agent.name
    if self._event_bus is not None:
      await self._event_bus.emit(event)
    return event

  # ------------------------------------------------------------------
  # Guardrails
  # ------------------------------------------------------------------

  async def _check_input(self) -> Optional[RunCompletedEvent]:
    """Run the active agent's input guardrails on the newest user message.

    Returns the terminal event when the run is blocked.
    """
    if not self._agent.input_guardrails:
      return None
    subject = last_user_text(self._transcript)
    if subject is None:
      return None
    outcome = await evaluate_guardrails(self._agent.input_guardrails, subject, self._context, "input")
    if outcome.passed:
      return None
    return await self._block(outcome)

  async def _block(self, outcome: GuardrailOutcome) -> RunCompletedEvent:
    log_info(f"{outcome.guardrail_type.title()} guardrail '{outcome.guardrail_name}' blocked agent '{self._agent.name}': {outcome.detail}")
    await self._emit(
      GuardrailTrippedEvent(
        guardrail_name=outcome.guardrail_name or "",
        guardrail_type=outcome.guardrail_type,
        detail=outcome.detail,
      )
    )
    if self._config.raise_on_guardrail:
      raise InputGuardrailTripped(outcome) if outcome.guardrail_type == "input" else OutputGuardrailTripped(outcome)
    result = self._result(RunStatus.blocked, guardrail=outcome)
    return await self._emit(RunCompletedEvent(status=RunStatus.blocked.value, result=result))

  # ------------------------------------------------------------------
  # Model calls
  # ------------------------------------------------------------------

  async def _model_request(self) -> Dict[str, Any]:
    return {
      "instructions": await self._agent.get_instructions(self._context),
      "messages": list(self._transcript),
      "tools": self._agent.tool_declarations() or None,
      "handoffs": self._agent.handoff_declarations() or None,
      "output_schema": self._agent.output_schema,
    }

  async def _call_model_with_retry(self) -> ModelResponse:
    """Call model with retry on transient errors (exponential backoff)."""
    max_retries = self._config.max_retries if self._config.retry_transient_errors else 0
    backoff_base = self._config.retry_backoff_base
    request = await self._model_request()

    for attempt in range(max_retries + 1):
      try:
        response = await self._agent.model.ainvoke(**request)
        if not isinstance(response, ModelResponse):
          raise ModelBehaviorError(f"Model {self._agent.model.id} returned {type(response).__name__}, expected ModelResponse")
        return response
      except Exception as e:
        is_transient = isinstance(e, (ConnectionError, TimeoutError, OSError))
        if not self._config.retry_transient_errors or not is_transient:
          raise
        if attempt >= max_retries:
          raise
        delay = min(backoff_base * (2**attempt), 60.0)
        log_debug(f"Transient error (attempt {attempt + 1}/{max_retries + 1}): {e}. Retrying in {delay:.1f}s")
        await asyncio.sleep(delay)

    raise RuntimeError("Exhausted retries")  # pragma: no cover

  async def _stream_model(self) -> AsyncGenerator[RunContentEvent, None]:
    """Streaming model call: yields content chunks, then sets ``_streamed_response``.

    The model stream is closed on every exit path, so abandoning this
    generator aborts the in-flight call.
    """
    self._streamed_response = None
    request = await self._model_request()
    chunks: List[str] = []
    response: Optional[ModelResponse] = None

    stream = self._agent.model.ainvoke_stream(**request)
    try:
      async for delta in stream:
        if self._cancellation_token:
          self._cancellation_token.raise_if_cancelled()
        if delta.content:
          chunks.append(delta.content)
          yield await self._emit(RunContentEvent(content=delta.content, turn=self._turn))
        if delta.response is not None:
          response = delta.response
    finally:
      aclose = getattr(stream, "aclose", None)
      if aclose is not None:
        await aclose()

    if response is None:
      raise ModelBehaviorError(f"Model {self._agent.model.id} ended its stream without a final response")
    if chunks:
      # The recorded answer is exactly what was streamed
      response = response.model_copy(update={"content": "".join(chunks)})
    self._streamed_response = response

  # ------------------------------------------------------------------
  # Response interpretation
  # ------------------------------------------------------------------

  def _record_calls(self, requests: List[ToolCallRequest]) -> List[ToolCall]:
    """Append one ToolCall per request, assigning ids that are unique in the transcript."""
    taken = tool_call_ids(self._transcript)
    calls = []
    for request in requests:
      call_id = request.id
      if not call_id or call_id in taken:
        call_id = f"call_{uuid4().hex[:24]}"
      taken.add(call_id)
      call = ToolCall(id=call_id, tool_name=request.name, arguments=request.arguments or "{}", agent_name=self._agent.name)
      self._transcript.append(call)
      calls.append(call)
    return calls

  def _resolve_explicit_handoff(self, target_name: Optional[str]) -> Optional[Agent]:
    if not target_name:
      return None
    target = self._agent.get_handoff(target_name)
    if target is None:
      raise UnknownHandoff(self._agent.name, target_name)
    return target

  # ------------------------------------------------------------------
  # Tool dispatch
  # ------------------------------------------------------------------

  async def _execute_batch(
    self,
    calls: List[ToolCall],
    *,
    explicit_target: Optional[Agent] = None,
    completed: Optional[Dict[str, ToolResult]] = None,
    decisions: Optional[Dict[str, Decision]] = None,
  ) -> ToolBatch:
    """Classify and run the calls of one response.

    Ordinary tools run concurrently (unless disabled in the config); calls
    that need approval and have no decision become interruptions. Results
    already in *completed* are reused, never re-run.
    """
    batch = ToolBatch(handoff_target=explicit_target)
    runnable: List[ToolCall] = []
    handoff_recorded = False

    for call in calls:
      if completed and call.id in completed:
        batch.results[call.id] = completed[call.id]
        continue

      if self._agent.is_handoff(call.tool_name):
        target = self._agent.get_handoff(call.tool_name)
        assert target is not None
        # An explicit handoff may already have picked this target; its first call confirms it
        if not handoff_recorded and batch.handoff_target in (None, target):
          batch.handoff_target = target
          handoff_recorded = True
          batch.results[call.id] = ToolResult(call_id=call.id, tool_name=call.tool_name, value=f"Transferred to {target.name}")
        else:
          batch.results[call.id] = ToolResult(
            call_id=call.id,
            tool_name=call.tool_name,
            error=f"Only one handoff can run per turn; already transferring to {batch.handoff_target.name}",
          )
        continue

      fn = self._agent.get_tool(call.tool_name)
      if fn is None:
        log_warning(f"Agent '{self._agent.name}' has no tool named '{call.tool_name}'")
        outcome = ToolOutcome.failure(ToolErrorKind.unknown_tool, f"Tool '{call.tool_name}' not found", call.tool_name)
        batch.results[call.id] = outcome.to_result(call)
        continue

      if fn.needs_approval:
        decision = (decisions or {}).get(call.id)
        if decision is None:
          batch.interruptions.append(
            Interruption(call_id=call.id, agent_name=self._agent.name, tool_name=call.tool_name, arguments=call.arguments)
          )
          continue
        if decision == Decision.rejected:
          log_debug(f"Tool call {call.id} ({call.tool_name}) rejected")
          batch.results[call.id] = ToolResult(
            call_id=call.id,
            tool_name=call.tool_name,
            error=self._config.rejection_message,
            rejected=True,
          )
          continue

      runnable.append(call)

    for call in runnable:
      batch.events.append(await self._emit(ToolCallStartedEvent(call_id=call.id, tool_name=call.tool_name, arguments=call.arguments)))

    if self._config.parallel_tool_calls and len(runnable) > 1:
      outcomes = await asyncio.gather(*(self._invoke(call) for call in runnable))
    else:
      outcomes = [await self._invoke(call) for call in runnable]

    for call, outcome in zip(runnable, outcomes):
      batch.results[call.id] = outcome.to_result(call)

    ran = {call.id for call in runnable}
    for call in calls:
      tool_result = batch.results.get(call.id)
      if tool_result is not None and (call.id in ran or tool_result.rejected):
        batch.events.append(await self._emit(ToolCallCompletedEvent.from_result(tool_result)))

    return batch

  async def _invoke(self, call: ToolCall) -> ToolOutcome:
    fn = self._agent.get_tool(call.tool_name)
    assert fn is not None
    return await invoke_tool(fn, call.arguments, self._context)

  async def _finish_paused_batch(self, state: RunState) -> ToolBatch:
    pending = {i.call_id for i in state.interruptions}
    completed = {call_id: r for call_id, r in state.completed_results.items() if call_id not in pending}
    explicit_target = self._agent.get_handoff(state.handoff_target) if state.handoff_target else None
    batch = await self._execute_batch(state.batch, explicit_target=explicit_target, completed=completed, decisions=self._decisions)
    if batch.interruptions:
      # The runner checks decisions before building the loop
      raise ModelBehaviorError(f"Paused batch still has {len(batch.interruptions)} undecided call(s)")
    return batch

  def _append_results(self, calls: List[ToolCall], results: Dict[str, ToolResult]) -> None:
    """Append results in the order their calls were requested."""
    for call in calls:
      self._transcript.append(results[call.id])

  # ------------------------------------------------------------------
  # Terminal transitions
  # ------------------------------------------------------------------

  async def _handoff(self, target: Agent) -> HandoffEvent:
    source = self._agent
    self._transcript.append(HandoffMarker(from_agent=source.name, to_agent=target.name))
    self._agent = target
    log_info(f"Handoff: '{source.name}' -> '{target.name}'")
    return await self._emit(HandoffEvent(agent_name=target.name, from_agent=source.name, to_agent=target.name))

  async def _pause(self, calls: List[ToolCall], batch: ToolBatch) -> RunPausedEvent:
    state = RunState(
      agent=self._agent,
      transcript=list(self._transcript),
      batch=list(calls),
      interruptions=list(batch.interruptions),
      completed_results=dict(batch.results),
      handoff_target=batch.handoff_target.name if batch.handoff_target is not None else None,
      turn=self._turn,
      input_length=self._input_length,
      usage=self._usage,
      run_id=self._run_id,
    )
    log_info(f"Run {self._run_id} paused: {len(batch.interruptions)} tool call(s) awaiting approval")
    result = self._result(RunStatus.paused, interruptions=list(batch.interruptions), state=state)
    return await self._emit(RunPausedEvent(interruptions=list(batch.interruptions), result=result))

  async def _finish(self, text: str) -> RunCompletedEvent:
    final_output = self._agent.parse_output(text)
    outcome = await evaluate_guardrails(self._agent.output_guardrails, final_output, self._context, "output")
    if outcome.tripped:
      return await self._block(outcome)
    self._transcript.append(AssistantMessage(text=text, agent_name=self._agent.name))
    log_debug(f"Run {self._run_id} completed on agent '{self._agent.name}' after {self._turn} turn(s)")
    result = self._result(RunStatus.completed, final_output=final_output)
    return await self._emit(RunCompletedEvent(content=final_output, result=result))

  def _result(self, status: RunStatus, **kwargs: Any) -> RunResult:
    return RunResult(
      status=status,
      history=list(self._transcript),
      new_items=list(self._transcript[self._input_length :]),
      last_agent=self._agent,
      usage=self._usage,
      run_id=self._run_id,
      **kwargs,
    )

  # ------------------------------------------------------------------
  # Accessors
  # ------------------------------------------------------------------

  @property
  def transcript(self) -> List[TranscriptItem]:
    """Working transcript (appended to during the loop)."""
    return self._transcript

  @property
  def agent(self) -> Agent:
    """Currently active agent."""
    return self._agent
