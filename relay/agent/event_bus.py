"""Caller-side hooks into a run's event stream."""

import inspect
from typing import Any, Callable, List, Optional, Tuple

from relay.utils.log import log_warning

Handler = Callable[[Any], Any]


class EventBus:
  """Fan run events out to caller handlers.

  A handler subscribes to an event class and receives every event that is an
  instance of it, so subscribing to ``BaseRunEvent`` sees the whole run.
  Handlers run in the order they were registered, one at a time, inside the
  run; a slow handler slows the run down. A handler that raises is logged and
  skipped.

  Example::

      bus = EventBus()

      @bus.on(ToolCallStartedEvent)
      def audit(event):
          audit_log.append((event.run_id, event.tool_name))

      Runner(event_bus=bus).run(agent, "Email Ana the report")
  """

  def __init__(self) -> None:
    self._subscriptions: List[Tuple[type, Handler]] = []

  def on(self, event_type: type, handler: Optional[Handler] = None) -> Any:
    """Subscribe *handler* to *event_type*; usable as ``@bus.on(EventType)``."""
    if handler is None:
      return lambda fn: self.on(event_type, fn)
    self._subscriptions.append((event_type, handler))
    return handler

  def off(self, event_type: type, handler: Handler) -> None:
    """Unsubscribe; unknown pairs are ignored."""
    self._subscriptions = [(t, h) for t, h in self._subscriptions if (t, h) != (event_type, handler)]

  async def emit(self, event: Any) -> None:
    for event_type, handler in list(self._subscriptions):
      if not isinstance(event, event_type):
        continue
      try:
        outcome = handler(event)
        if inspect.isawaitable(outcome):
          await outcome
      except Exception as exc:
        name = getattr(handler, "__name__", repr(handler))
        log_warning(f"Event handler {name} failed on {type(event).__name__} (run {getattr(event, 'run_id', None)}): {exc}")
