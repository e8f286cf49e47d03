"""Run configuration with immutable settings."""

import os
from dataclasses import dataclass, fields
from typing import Any

DEFAULT_REJECTION_MESSAGE = "The user rejected this tool call. Do not retry it unless the user asks."


@dataclass(frozen=True)
class RunConfig:
  """
  Execution settings for a run.

  Uses a frozen dataclass so a config cannot change while a run is in
  flight; derive variants with :meth:`with_updates`.

  Attributes:
      max_turns: Maximum model calls per run (handoffs included) before
          ``TurnLimitExceeded`` is raised.
      parallel_tool_calls: Dispatch the tool calls of one model response
          concurrently. Results are recorded in request order either way.
      raise_on_guardrail: Raise ``InputGuardrailTripped`` /
          ``OutputGuardrailTripped`` instead of returning a blocked result.
      rejection_message: Tool result text recorded for rejected calls.
      validate_transcript: Check the input transcript for orphaned tool
          results before the run starts.
      retry_transient_errors: Retry model calls on connection/timeout errors.
      max_retries: Maximum number of retry attempts.
      retry_backoff_base: Base for exponential backoff (seconds).
  """

  max_turns: int = 10
  parallel_tool_calls: bool = True
  raise_on_guardrail: bool = False
  rejection_message: str = DEFAULT_REJECTION_MESSAGE
  validate_transcript: bool = True

  # Error handling
  retry_transient_errors: bool = True
  max_retries: int = 2
  retry_backoff_base: float = 0.5

  def __post_init__(self) -> None:
    if self.max_turns < 1:
      raise ValueError("max_turns must be at least 1")
    if self.max_retries < 0:
      raise ValueError("max_retries must be non-negative")

  def with_updates(self, **kwargs: Any) -> "RunConfig":
    """
    Create new config with updated values (immutable pattern).

    Example:
        strict = config.with_updates(max_turns=3, raise_on_guardrail=True)
    """
    current = {f.name: getattr(self, f.name) for f in fields(self)}
    current.update(kwargs)
    return RunConfig(**current)

  @classmethod
  def from_env(cls, **overrides: Any) -> "RunConfig":
    """Build a config from ``RELAY_MAX_TURNS`` / ``RELAY_MAX_RETRIES``, then apply *overrides*."""
    values: dict = {}
    if os.getenv("RELAY_MAX_TURNS"):
      values["max_turns"] = int(os.environ["RELAY_MAX_TURNS"])
    if os.getenv("RELAY_MAX_RETRIES"):
      values["max_retries"] = int(os.environ["RELAY_MAX_RETRIES"])
    values.update(overrides)
    return cls(**values)

  def __repr__(self) -> str:
    return f"RunConfig(max_turns={self.max_turns}, parallel_tool_calls={self.parallel_tool_calls}, max_retries={self.max_retries})"
