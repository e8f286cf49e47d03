"""Built-in output guardrails: pii_filter."""

from __future__ import annotations

import re
from typing import Any, List, Optional

from relay.agent.guardrail.base import GuardrailResult
from relay.agent.guardrail.builtin.input import subject_text

# ------------------------------------------------------------------
# PII regex patterns
# ------------------------------------------------------------------

_EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b")
_PHONE_RE = re.compile(r"\b(?:\+?1[-.\s]?)?(?:\(?\d{3}\)?[-.\s]?)?\d{3}[-.\s]?\d{4}\b")
_SSN_RE = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")
_CREDIT_CARD_RE = re.compile(r"\b(?:\d{4}[-\s]?){3}\d{4}\b")

# Most specific first so a card number is not reported as a phone number.
_PII_PATTERNS = [
  (_CREDIT_CARD_RE, "credit card number"),
  (_SSN_RE, "social security number"),
  (_EMAIL_RE, "email address"),
  (_PHONE_RE, "phone number"),
]


class _PIIFilterGuardrail:
  """Block output that contains personal data."""

  def __init__(self, kinds: Optional[List[str]] = None):
    self.name = "pii_filter"
    self._patterns = [(p, label) for p, label in _PII_PATTERNS if kinds is None or label in kinds]

  async def check(self, subject: Any, context: Any) -> GuardrailResult:
    text = subject_text(subject)
    for pattern, label in self._patterns:
      if pattern.search(text):
        return GuardrailResult.block(f"Output contains a {label}")
    return GuardrailResult.allow()


def pii_filter(kinds: Optional[List[str]] = None) -> _PIIFilterGuardrail:
  """Create an output guardrail that blocks output containing PII.

  Args:
    kinds: Restrict detection to these labels ("email address", "phone number",
      "social security number", "credit card number"). Defaults to all.
  """
  return _PIIFilterGuardrail(kinds)
