"""Decorators for creating guardrails from plain functions.

Usage::

    @input_guardrail
    async def no_profanity(text: str, context) -> GuardrailResult:
        if "badword" in text.lower():
            return GuardrailResult.block("Profanity detected")
        return GuardrailResult.allow()

    @output_guardrail(name="custom_name")
    def my_output_guard(output, context) -> GuardrailResult:
        ...
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Optional

from relay.agent.guardrail.base import GuardrailResult


class _GuardrailWrapper:
  kind = "Guardrail"

  def __init__(self, fn: Callable, name: str):
    self.name = name
    self._fn = fn

  async def check(self, subject: Any, context: Any) -> GuardrailResult:
    result = self._fn(subject, context)
    if inspect.isawaitable(result):
      result = await result
    return result

  def __repr__(self) -> str:
    return f"{self.kind}({self.name!r})"


class _InputGuardrailWrapper(_GuardrailWrapper):
  """Wraps a function into an InputGuardrail-compliant object."""

  kind = "InputGuardrail"


class _OutputGuardrailWrapper(_GuardrailWrapper):
  """Wraps a function into an OutputGuardrail-compliant object."""

  kind = "OutputGuardrail"


def input_guardrail(fn: Optional[Callable] = None, *, name: Optional[str] = None):
  """Decorator to create an :class:`InputGuardrail` from a sync or async function.

  Supports both ``@input_guardrail`` and ``@input_guardrail(name=...)``.
  """
  if fn is not None:
    return _InputGuardrailWrapper(fn, name=name or fn.__name__)

  def decorator(f: Callable) -> _InputGuardrailWrapper:
    return _InputGuardrailWrapper(f, name=name or f.__name__)

  return decorator


def output_guardrail(fn: Optional[Callable] = None, *, name: Optional[str] = None):
  """Decorator to create an :class:`OutputGuardrail` from a sync or async function.

  Supports both ``@output_guardrail`` and ``@output_guardrail(name=...)``.
  """
  if fn is not None:
    return _OutputGuardrailWrapper(fn, name=name or fn.__name__)

  def decorator(f: Callable) -> _OutputGuardrailWrapper:
    return _OutputGuardrailWrapper(f, name=name or f.__name__)

  return decorator
