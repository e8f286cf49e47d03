"""Stopping a run from outside the loop.

A :class:`CancellationToken` is shared between the caller and one run. The
loop polls it at step boundaries: before a model call, between streamed
chunks, and before a tool batch. A step that was interrupted leaves no trace
in the transcript.
"""

import threading
from typing import Optional

from relay.exceptions import RelayError


class AgentCancelled(RelayError):
  """The run was stopped through its cancellation token (or its stream was closed)."""

  user_message = "The request was cancelled."

  def __init__(self, reason: str = "Run was cancelled"):
    super().__init__(reason)
    self.reason = reason


class CancellationToken:
  """One-shot stop signal for a run.

  The sync ``Runner.run`` drives its loop on a worker thread when called
  from inside an event loop, so the flag is a :class:`threading.Event`:
  ``cancel()`` is safe from any thread or coroutine. Only the first
  ``cancel()`` sets the reason.

  Example::

      token = CancellationToken()
      task = asyncio.create_task(Runner().arun(agent, "Summarise", cancellation_token=token))
      token.cancel("user pressed stop")
  """

  def __init__(self) -> None:
    self._event = threading.Event()
    self._reason: Optional[str] = None

  def cancel(self, reason: Optional[str] = None) -> None:
    if not self._event.is_set():
      self._reason = reason
      self._event.set()

  @property
  def is_cancelled(self) -> bool:
    return self._event.is_set()

  @property
  def reason(self) -> Optional[str]:
    return self._reason

  def raise_if_cancelled(self) -> None:
    if self._event.is_set():
      raise AgentCancelled(self._reason or "Run was cancelled")

  def __repr__(self) -> str:
    state = f"cancelled, reason={self._reason!r}" if self.is_cancelled else "active"
    return f"CancellationToken({state})"
