"""Built-in input guardrails: max_length, block_topics, regex_filter."""

from __future__ import annotations

import re
from typing import Any, List

from pydantic import BaseModel

from relay.agent.guardrail.base import GuardrailResult


def subject_text(subject: Any) -> str:
  """Text form of a guardrail subject (structured outputs become JSON)."""
  if isinstance(subject, str):
    return subject
  if isinstance(subject, BaseModel):
    return subject.model_dump_json()
  return "" if subject is None else str(subject)


# ------------------------------------------------------------------
# max_length
# ------------------------------------------------------------------


class _MaxLengthGuardrail:
  """Trip on subjects longer than a character limit."""

  def __init__(self, n: int):
    self.name = "max_length"
    self._limit = n

  async def check(self, subject: Any, context: Any) -> GuardrailResult:
    length = len(subject_text(subject))
    if length > self._limit:
      return GuardrailResult.block(f"Text exceeds length limit ({length} > {self._limit})")
    return GuardrailResult.allow()


def max_length(n: int) -> _MaxLengthGuardrail:
  """Create a guardrail that trips on text longer than *n* characters."""
  return _MaxLengthGuardrail(n)


# ------------------------------------------------------------------
# block_topics
# ------------------------------------------------------------------


class _BlockTopicsGuardrail:
  """Block input containing any of the given topic keywords (case-insensitive)."""

  def __init__(self, topics: List[str]):
    self.name = "block_topics"
    self._topics = [t.lower() for t in topics]

  async def check(self, subject: Any, context: Any) -> GuardrailResult:
    lower = subject_text(subject).lower()
    for topic in self._topics:
      if topic in lower:
        return GuardrailResult.block(f"Blocked topic detected: {topic}")
    return GuardrailResult.allow()


def block_topics(topics: List[str]) -> _BlockTopicsGuardrail:
  """Create an input guardrail that blocks input containing any of *topics*."""
  return _BlockTopicsGuardrail(topics)


# ------------------------------------------------------------------
# regex_filter
# ------------------------------------------------------------------


class _RegexFilterGuardrail:
  """Block input matching any of the given regex patterns."""

  def __init__(self, patterns: List[str]):
    self.name = "regex_filter"
    self._patterns = [re.compile(p) for p in patterns]

  async def check(self, subject: Any, context: Any) -> GuardrailResult:
    text = subject_text(subject)
    for pattern in self._patterns:
      if pattern.search(text):
        return GuardrailResult.block(f"Input matched blocked pattern: {pattern.pattern}")
    return GuardrailResult.allow()


def regex_filter(patterns: List[str]) -> _RegexFilterGuardrail:
  """Create an input guardrail that blocks input matching any of *patterns*."""
  return _RegexFilterGuardrail(patterns)
