"""Core guardrail types: result, protocols, and the fail-fast evaluator."""

from __future__ import annotations

import inspect
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Protocol, Sequence, runtime_checkable

from relay.utils.log import log_debug, log_warning


@dataclass
class GuardrailResult:
  """Result returned by a guardrail check.

  Attributes:
    tripped: True when the subject must not proceed.
    detail: Short diagnostic, shown to the caller when the guardrail trips.
    metadata: Optional extra data for tracing / debugging.
  """

  tripped: bool = False
  detail: Optional[str] = None
  metadata: Optional[Dict[str, Any]] = None

  # ------------------------------------------------------------------
  # Factory helpers
  # ------------------------------------------------------------------

  @staticmethod
  def allow(detail: Optional[str] = None) -> GuardrailResult:
    return GuardrailResult(tripped=False, detail=detail)

  @staticmethod
  def block(reason: str) -> GuardrailResult:
    return GuardrailResult(tripped=True, detail=reason)


@dataclass
class GuardrailOutcome:
  """Verdict of a whole guardrail list.

  ``guardrail_name`` and ``detail`` describe the guardrail that tripped, if any.
  ``results`` holds every evaluated result in order (later guardrails are not
  evaluated once one trips).
  """

  guardrail_type: Literal["input", "output"]
  tripped: bool = False
  guardrail_name: Optional[str] = None
  detail: Optional[str] = None
  results: List[GuardrailResult] = field(default_factory=list)

  @property
  def passed(self) -> bool:
    return not self.tripped


# ------------------------------------------------------------------
# Protocols
# ------------------------------------------------------------------


@runtime_checkable
class InputGuardrail(Protocol):
  """Checks the newest user message before the model is called."""

  name: str

  async def check(self, subject: Any, context: Any) -> GuardrailResult: ...


@runtime_checkable
class OutputGuardrail(Protocol):
  """Checks the candidate final output before it reaches the caller."""

  name: str

  async def check(self, subject: Any, context: Any) -> GuardrailResult: ...


def validate_guardrail(guardrail: Any, guardrail_type: str) -> None:
  """Reject objects without a ``name`` and a ``check`` callable."""
  name = getattr(guardrail, "name", None)
  if not isinstance(name, str) or not name:
    raise TypeError(f"{guardrail_type.title()} guardrail {guardrail!r} needs a non-empty 'name'")
  if not callable(getattr(guardrail, "check", None)):
    raise TypeError(f"{guardrail_type.title()} guardrail '{name}' needs a 'check(subject, context)' method")


# ------------------------------------------------------------------
# Evaluator
# ------------------------------------------------------------------


async def evaluate_guardrails(
  guardrails: Sequence[Any],
  subject: Any,
  context: Any,
  guardrail_type: Literal["input", "output"] = "input",
) -> GuardrailOutcome:
  """Run *guardrails* in order and stop at the first that trips.

  A guardrail that raises counts as tripped (``"Guardrail error: ..."``).
  """
  outcome = GuardrailOutcome(guardrail_type=guardrail_type)
  for guardrail in guardrails:
    start = time.perf_counter()
    try:
      result = guardrail.check(subject, context)
      if inspect.isawaitable(result):
        result = await result
      if not isinstance(result, GuardrailResult):
        raise TypeError(f"check() returned {type(result).__name__}, expected GuardrailResult")
    except Exception as exc:
      log_warning(f"{guardrail_type.title()} guardrail '{guardrail.name}' raised: {exc}")
      result = GuardrailResult.block(f"Guardrail error: {exc}")
    elapsed = (time.perf_counter() - start) * 1000
    result.metadata = {**(result.metadata or {}), "duration_ms": elapsed, "guardrail_name": guardrail.name}
    outcome.results.append(result)
    log_debug(f"{guardrail_type.title()} guardrail '{guardrail.name}' → {'tripped' if result.tripped else 'passed'} ({elapsed:.1f}ms)")
    if result.tripped:
      outcome.tripped = True
      outcome.guardrail_name = guardrail.name
      outcome.detail = result.detail
      break
  return outcome
